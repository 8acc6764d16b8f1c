import os
import sys

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from trek_costing.config.settings import Settings
from trek_costing.engine import PricingEngine, Quote, SectionState, CostRow, DiscountType


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temp dir so nothing touches the real data folder."""
    s = Settings.load(project_root=tmp_path)
    s.store_backend = "memory"
    return s


@pytest.fixture
def engine(settings):
    return PricingEngine(settings=settings)


def row(rate, quantity=1, times=1, **flags):
    return CostRow(description=flags.pop('description', 'item'), rate=rate, quantity=quantity, times=times, **flags)


@pytest.fixture
def composed_quote():
    """
    permits 300 less 10% = 270, services 200 less 20 flat = 180,
    extra details empty; 5% overall discount.
    """
    quote = Quote(group_name="EBC-test", trek_name="Everest Base Camp Trek", group_size=3)
    quote.permits = SectionState(
        id='permits', name='Permits & Documents',
        rows=[row(50, 3, 1, description='Park permit'), row(150, 1, 1, description='Municipality fee')],
        discount_type=DiscountType.PERCENTAGE, discount_value=10,
    )
    quote.services = SectionState(
        id='services', name='Services',
        rows=[row(25, 2, 4, description='Guide')],
        discount_type=DiscountType.AMOUNT, discount_value=20,
    )
    quote.overall_discount_type = DiscountType.PERCENTAGE
    quote.overall_discount_value = 5
    return quote
