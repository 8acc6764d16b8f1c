"""
Quantity basis - how a row's rate multiplies into its total.

Rows carry three independent flags (per_person, per_day, one_time). They are
folded once into a QuantityBasis with a fixed precedence so that rows with
conflicting flags still price deterministically:

1. one_time wins over everything
2. per_person together with per_day
3. per_person alone
4. per_day alone
5. no flags: rate x quantity x times
"""
import math
from enum import Enum

from .models import CostRow, to_number


class QuantityBasis(Enum):
    ONE_TIME = "one_time"
    PER_PERSON_PER_DAY = "per_person_per_day"
    PER_PERSON = "per_person"
    PER_DAY = "per_day"
    DEFAULT = "default"

    @classmethod
    def from_flags(cls, per_person: bool = False, per_day: bool = False, one_time: bool = False) -> 'QuantityBasis':
        if one_time:
            return cls.ONE_TIME
        if per_person and per_day:
            return cls.PER_PERSON_PER_DAY
        if per_person:
            return cls.PER_PERSON
        if per_day:
            return cls.PER_DAY
        return cls.DEFAULT

    @classmethod
    def of(cls, row: CostRow) -> 'QuantityBasis':
        return cls.from_flags(
            per_person=bool(getattr(row, 'per_person', False)),
            per_day=bool(getattr(row, 'per_day', False)),
            one_time=bool(getattr(row, 'one_time', False)),
        )

    def resolve_total(self, rate, quantity, times) -> float:
        """Apply this basis to raw rate/quantity/times; missing values count as 0."""
        rate = to_number(rate)
        quantity = to_number(quantity)
        times = to_number(times)

        if self is QuantityBasis.ONE_TIME:
            return rate
        if self is QuantityBasis.PER_PERSON:
            return rate * quantity
        if self is QuantityBasis.PER_DAY:
            return rate * times
        # PER_PERSON_PER_DAY and DEFAULT
        return rate * quantity * times


def derive_quantity(row: CostRow, group_size: int) -> int:
    """
    Quantity a template row should start with for a given group size.

    Capacity-limited items (e.g. a jeep seating 7) need one unit per
    max_capacity travellers; per-person items need one per traveller.
    """
    group_size = int(to_number(group_size))
    capacity = int(to_number(row.max_capacity)) if row.max_capacity else 0
    if capacity > 0:
        return math.ceil(group_size / capacity)
    if row.per_person:
        return group_size
    return 1


def derive_times(row: CostRow, trek_days: int) -> int:
    """Repetitions a template row should start with: trek length for per-day items."""
    if row.per_day:
        return max(int(to_number(trek_days)), 1)
    return 1
