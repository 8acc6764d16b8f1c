"""
Invoice Payload - converts quotes to and from the booking API format.

The booking API wants rates and discount values as strings, counts as
integers, and extra services grouped under a service name. Responses
are mapped back into a Quote and repriced so totals never come from
the wire.
"""
from datetime import date
from typing import Optional

from ..engine.models import (
    NAMED_SECTIONS,
    CostRow,
    DiscountType,
    Quote,
    SectionState,
    new_id,
    to_number,
)
from ..engine.pricing_engine import PricingEngine

# Section attribute -> discount field prefix on the payload.
DISCOUNT_PREFIXES = {
    'permits': 'permit',
    'services': 'service',
    'accommodation': 'accommodation',
    'transportation': 'transportation',
    'extra_details': 'extra_service',
}

EXTRA_SERVICE_SEPARATOR = " - "


def _decimal_string(value) -> str:
    """Stringify a number the way the API expects ("10", "12.5")."""
    number = to_number(value)
    if number == int(number):
        return str(int(number))
    return repr(number)


def _count(value, default: int = 1) -> int:
    if value is None or value == "":
        return default
    return int(to_number(value, default))


def row_to_param(row: CostRow, name: Optional[str] = None) -> dict:
    """Serialize one row as a {name, rate, numbers, times, ...} line."""
    return {
        'name': row.description if name is None else name,
        'rate': _decimal_string(row.rate),
        'times': _count(row.times),
        'numbers': _count(row.quantity),
        'per_person': bool(row.per_person),
        'per_day': bool(row.per_day),
        'one_time': bool(row.one_time),
        'is_default': bool(row.is_default),
        'is_editable': bool(row.is_editable),
        'max_capacity': int(row.max_capacity) if row.max_capacity is not None else None,
        'from_place': row.from_place or '',
        'to_place': row.to_place or '',
    }


def group_extra_services(quote: Quote) -> list[dict]:
    """
    Group extra rows by service name.

    Extra-detail descriptions of the form "Service - Option" become a param
    named "Option" under "Service"; extra-service rows are their own service.
    """
    grouped: dict[str, dict] = {}

    for row in quote.extra_details.rows:
        if EXTRA_SERVICE_SEPARATOR in row.description:
            service_name, param_name = row.description.split(EXTRA_SERVICE_SEPARATOR, 1)
        else:
            service_name = param_name = row.description
        grouped.setdefault(service_name, {'service_name': service_name, 'params': []})
        grouped[service_name]['params'].append(row_to_param(row, param_name))

    for row in quote.extra_services.rows:
        service_name = row.description or 'Extra Service'
        grouped.setdefault(service_name, {'service_name': service_name, 'params': []})
        grouped[service_name]['params'].append(row_to_param(row))

    return list(grouped.values())


def build_invoice_payload(quote: Quote) -> dict:
    """
    Build the groups-and-package payload for a quote.

    The booking API has no field for custom sections, so they are not sent;
    a quote mapped back with quote_from_api carries the named sections only.
    """
    start = quote.start_date or date.today().isoformat()
    short_id = quote.group_id[:4] if len(quote.group_id) > 4 else quote.group_id

    payload = {
        'package': {
            'name': quote.group_name or f"{quote.trek_name} {short_id}",
            'total_space': quote.group_size,
            'start_date': start,
            'end_date': start,
            'trip': _count(quote.trek_id, 0),
        },
        'status': 'draft',
        'permits': [row_to_param(r) for r in quote.permits.rows],
        'services': [row_to_param(r) for r in quote.services.rows],
        'accommodation': [row_to_param(r) for r in quote.accommodation.rows],
        'transportation': [row_to_param(r) for r in quote.transportation.rows],
        'extra_services': group_extra_services(quote),
    }

    for attr, prefix in DISCOUNT_PREFIXES.items():
        section: SectionState = getattr(quote, attr)
        payload[f'{prefix}_discount'] = _decimal_string(section.discount_value)
        payload[f'{prefix}_discount_type'] = section.discount_type.to_api()
        payload[f'{prefix}_discount_remarks'] = section.discount_remarks or ''

    payload['overall_discount'] = _decimal_string(quote.overall_discount_value)
    payload['overall_discount_type'] = quote.overall_discount_type.to_api()
    payload['overall_discount_remarks'] = quote.overall_discount_remarks or ''
    payload['service_charge'] = _decimal_string(quote.service_charge)
    return payload


def _section_from_api(item: dict, attr: str, rows: list[dict]) -> SectionState:
    section_id, label = next((sid, name) for a, sid, name in NAMED_SECTIONS if a == attr)
    prefix = DISCOUNT_PREFIXES.get(attr)
    discount_type = DiscountType.AMOUNT
    discount_value = 0.0
    remarks = ''
    if prefix:
        discount_type = DiscountType.parse(item.get(f'{prefix}_discount_type'))
        discount_value = to_number(item.get(f'{prefix}_discount'))
        remarks = item.get(f'{prefix}_discount_remarks') or ''
    return SectionState(
        id=section_id,
        name=label,
        rows=[CostRow.from_dict({**r, 'id': f'{section_id}-{i}'}) for i, r in enumerate(rows)],
        discount_type=discount_type,
        discount_value=discount_value,
        discount_remarks=remarks,
    )


def _extra_description(service_name, param_name) -> str:
    service_name = service_name or ''
    param_name = param_name or ''
    if not service_name or service_name == param_name:
        return param_name or service_name
    return f"{service_name}{EXTRA_SERVICE_SEPARATOR}{param_name}"


def quote_from_api(item: dict, engine: Optional[PricingEngine] = None) -> Quote:
    """
    Map a groups-and-package API record back into a repriced Quote.

    Extra-service params are flattened into the extra-details section as
    "Service - Option" rows, so building the payload again regroups them.
    """
    engine = engine or PricingEngine()
    package = item.get('package') or {}

    extra_rows = [
        {**param, 'name': _extra_description(service.get('service_name'), param.get('name'))}
        for service in item.get('extra_services') or []
        for param in service.get('params') or []
    ]

    quote = Quote(
        group_id=str(item.get('id') or item.get('group_id') or new_id()),
        trek_id=str(package['trip']) if package.get('trip') is not None else None,
        trek_name=package.get('name') or '',
        group_name=package.get('name') or '',
        group_size=_count(package.get('total_space'), 1),
        start_date=package.get('start_date'),
        permits=_section_from_api(item, 'permits', item.get('permits') or []),
        services=_section_from_api(item, 'services', item.get('services') or []),
        accommodation=_section_from_api(item, 'accommodation', item.get('accommodation') or []),
        transportation=_section_from_api(item, 'transportation', item.get('transportation') or []),
        extra_details=_section_from_api(item, 'extra_details', extra_rows),
        overall_discount_type=DiscountType.parse(item.get('overall_discount_type')),
        overall_discount_value=to_number(item.get('overall_discount')),
        overall_discount_remarks=item.get('overall_discount_remarks') or '',
        service_charge=to_number(item.get('service_charge')),
    )
    return engine.reprice_quote(quote)
