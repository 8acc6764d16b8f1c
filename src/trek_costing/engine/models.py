"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Totals carried on rows are derived values; the engine recomputes them
from rate, quantity, times and the quantity-basis flags.
"""
import logging
import math
import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


def to_number(value, default: float = 0.0) -> float:
    """Coerce a user-entered numeric value to float, falling back to 0."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug("Coerced non-numeric value %r to %s", value, default)
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def to_bool(value) -> bool:
    """Coerce checkbox-style values ("true", 1, None) to bool."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def new_id() -> str:
    return str(uuid.uuid4())


class DiscountType(str, Enum):
    AMOUNT = "amount"
    PERCENTAGE = "percentage"

    @classmethod
    def parse(cls, value) -> 'DiscountType':
        """Parse a discount type; the booking API spells flat amounts as "flat"."""
        if isinstance(value, DiscountType):
            return value
        if str(value or "").strip().lower() == "percentage":
            return cls.PERCENTAGE
        return cls.AMOUNT

    def to_api(self) -> str:
        return "percentage" if self is DiscountType.PERCENTAGE else "flat"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially paid"
    FULLY_PAID = "fully paid"
    OVERPAID = "overpaid"


@dataclass
class CostRow:
    """A single priced line item in a section."""
    description: str = ""
    rate: float = 0.0
    quantity: float = 0.0
    times: float = 0.0
    total: float = 0.0
    per_person: bool = False
    per_day: bool = False
    one_time: bool = False
    max_capacity: Optional[int] = None
    is_default: bool = False
    is_editable: bool = True
    from_place: str = ""
    to_place: str = ""
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'CostRow':
        """Build a row from stored or API data; aliases: no/numbers, name."""
        quantity = data.get('quantity', data.get('no', data.get('numbers')))
        max_capacity = data.get('max_capacity')
        capacity = int(to_number(max_capacity)) if max_capacity not in (None, "") else None
        return cls(
            id=str(data.get('id') or new_id()),
            description=str(data.get('description') or data.get('name') or ''),
            rate=to_number(data.get('rate')),
            quantity=to_number(quantity),
            times=to_number(data.get('times')),
            total=to_number(data.get('total')),
            per_person=to_bool(data.get('per_person', False)),
            per_day=to_bool(data.get('per_day', False)),
            one_time=to_bool(data.get('one_time', False)),
            max_capacity=capacity,
            is_default=to_bool(data.get('is_default', False)),
            is_editable=to_bool(data.get('is_editable', True)),
            from_place=str(data.get('from_place') or ''),
            to_place=str(data.get('to_place') or ''),
        )


@dataclass
class SectionState:
    """A named group of rows sharing one discount."""
    id: str
    name: str
    rows: list[CostRow] = field(default_factory=list)
    discount_type: DiscountType = DiscountType.AMOUNT
    discount_value: float = 0.0
    discount_remarks: str = ""

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'rows': [row.to_dict() for row in self.rows],
            'discount_type': self.discount_type.value,
            'discount_value': self.discount_value,
            'discount_remarks': self.discount_remarks,
        }

    @classmethod
    def from_dict(cls, data: dict, default_id: str = "", default_name: str = "") -> 'SectionState':
        return cls(
            id=str(data.get('id') or default_id or new_id()),
            name=str(data.get('name') or default_name),
            rows=[CostRow.from_dict(r) for r in data.get('rows') or []],
            discount_type=DiscountType.parse(data.get('discount_type')),
            discount_value=to_number(data.get('discount_value')),
            discount_remarks=str(data.get('discount_remarks') or ''),
        )


# Named sections: (attribute, section id, display name), in canonical order.
NAMED_SECTIONS = (
    ('permits', 'permits', 'Permits & Documents'),
    ('services', 'services', 'Services'),
    ('accommodation', 'accommodation', 'Accommodation'),
    ('transportation', 'transportation', 'Transportation'),
    ('extra_details', 'extraDetails', 'Extra Details'),
    ('extra_services', 'extraServices', 'Extra Services'),
)


def _section(attr: str):
    for name, section_id, label in NAMED_SECTIONS:
        if name == attr:
            return lambda: SectionState(id=section_id, name=label)
    raise KeyError(attr)


@dataclass
class Quote:
    """The editable pricing document for one trek booking."""
    group_id: str = field(default_factory=new_id)
    trek_id: Optional[str] = None
    trek_name: str = ""
    group_name: str = ""
    group_size: int = 1
    trek_days: int = 1
    start_date: Optional[str] = None  # ISO date string

    permits: SectionState = field(default_factory=_section('permits'))
    services: SectionState = field(default_factory=_section('services'))
    accommodation: SectionState = field(default_factory=_section('accommodation'))
    transportation: SectionState = field(default_factory=_section('transportation'))
    extra_details: SectionState = field(default_factory=_section('extra_details'))
    extra_services: SectionState = field(default_factory=_section('extra_services'))
    custom_sections: list[SectionState] = field(default_factory=list)

    overall_discount_type: DiscountType = DiscountType.AMOUNT
    overall_discount_value: float = 0.0
    overall_discount_remarks: str = ""
    service_charge: float = 10.0

    # section id -> row quantity follows group size
    use_pax: dict[str, bool] = field(default_factory=dict)

    def sections(self) -> Iterator[SectionState]:
        """Iterate all sections in display order, custom sections last."""
        for attr, _, _ in NAMED_SECTIONS:
            yield getattr(self, attr)
        yield from self.custom_sections

    def get_section(self, section_id: str) -> Optional[SectionState]:
        for section in self.sections():
            if section.id == section_id:
                return section
        return None

    def to_dict(self) -> dict:
        data = {
            'group_id': self.group_id,
            'trek_id': self.trek_id,
            'trek_name': self.trek_name,
            'group_name': self.group_name,
            'group_size': self.group_size,
            'trek_days': self.trek_days,
            'start_date': self.start_date,
            'custom_sections': [s.to_dict() for s in self.custom_sections],
            'overall_discount_type': self.overall_discount_type.value,
            'overall_discount_value': self.overall_discount_value,
            'overall_discount_remarks': self.overall_discount_remarks,
            'service_charge': self.service_charge,
            'use_pax': dict(self.use_pax),
        }
        for attr, _, _ in NAMED_SECTIONS:
            data[attr] = getattr(self, attr).to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Quote':
        kwargs = {}
        for attr, section_id, label in NAMED_SECTIONS:
            if data.get(attr) is not None:
                kwargs[attr] = SectionState.from_dict(data[attr], section_id, label)
        trek_id = data.get('trek_id')
        return cls(
            group_id=str(data.get('group_id') or new_id()),
            trek_id=str(trek_id) if trek_id not in (None, "") else None,
            trek_name=str(data.get('trek_name') or ''),
            group_name=str(data.get('group_name') or ''),
            group_size=int(to_number(data.get('group_size'), 1)),
            trek_days=int(to_number(data.get('trek_days'), 1)),
            start_date=data.get('start_date') or None,
            custom_sections=[SectionState.from_dict(s) for s in data.get('custom_sections') or []],
            overall_discount_type=DiscountType.parse(data.get('overall_discount_type')),
            overall_discount_value=to_number(data.get('overall_discount_value')),
            overall_discount_remarks=str(data.get('overall_discount_remarks') or ''),
            service_charge=to_number(data.get('service_charge'), 10.0),
            use_pax={str(k): to_bool(v) for k, v in (data.get('use_pax') or {}).items()},
            **kwargs,
        )


@dataclass(frozen=True)
class SectionTotals:
    """Computed totals for one section."""
    subtotal: float
    discount_amount: float
    total: float


@dataclass
class QuoteTotals:
    """Computed totals for a whole quote."""
    sections: dict[str, SectionTotals]
    grand_subtotal: float
    overall_discount_amount: float
    final_total: float
    service_charge_amount: float = 0.0
    total_with_service_charge: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Transaction:
    """A payment or refund recorded against a group."""
    group_id: str
    amount: float
    type: str = "payment"  # "payment" or "refund"
    date: Optional[str] = None
    note: str = ""
    payment_method: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def is_refund(self) -> bool:
        return self.type == "refund"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'Transaction':
        kind = str(data.get('type') or data.get('payment_type') or 'payment').lower()
        return cls(
            id=str(data.get('id') or new_id()),
            group_id=str(data.get('group_id') or data.get('package_id') or ''),
            amount=to_number(data.get('amount')),
            type="refund" if kind == "refund" else "payment",
            date=data.get('date'),
            note=str(data.get('note') or data.get('remarks') or ''),
            payment_method=data.get('payment_method'),
        )


@dataclass
class PaymentDetails:
    """Read-only payment summary for one booking."""
    total_cost: float
    total_paid: float
    balance: float
    payment_status: PaymentStatus
    total_refund: float = 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data['payment_status'] = self.payment_status.value
        return data
