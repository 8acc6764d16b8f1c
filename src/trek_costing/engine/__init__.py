"""Engine subpackage - cost-matrix pricing and payment classification."""
from .pricing_engine import PricingEngine
from .models import (
    CostRow,
    DiscountType,
    PaymentDetails,
    PaymentStatus,
    Quote,
    QuoteTotals,
    SectionState,
    SectionTotals,
    Transaction,
)
from .quantity_basis import QuantityBasis
from .payments import classify_payment_status, build_payment_details

__all__ = [
    'PricingEngine',
    'CostRow',
    'DiscountType',
    'PaymentDetails',
    'PaymentStatus',
    'Quote',
    'QuoteTotals',
    'SectionState',
    'SectionTotals',
    'Transaction',
    'QuantityBasis',
    'classify_payment_status',
    'build_payment_details',
]
