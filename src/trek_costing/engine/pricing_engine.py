"""
Pricing Engine - cost-matrix arithmetic for trek quotes.

Single home for the row / section / quote math that every caller
(invoice payload, exports, API, catalog seeding) depends on:
- Row totals via the quantity-basis rule
- Section subtotal, discount and total
- Quote grand subtotal, overall discount and final total
- Service charge reported separately from the final total
- Group-size propagation for sections whose quantity follows pax

The engine never mutates its input and never raises on bad numbers;
invalid inputs degrade to 0 so a pricing screen keeps rendering mid-edit.
"""
import logging
from dataclasses import replace
from typing import Optional

from ..config.settings import get_settings, Settings
from .models import (
    CostRow,
    DiscountType,
    Quote,
    QuoteTotals,
    SectionState,
    SectionTotals,
    to_number,
)
from .quantity_basis import QuantityBasis, derive_quantity, derive_times

logger = logging.getLogger(__name__)


class PricingEngine:
    """
    Pure value transformer over Quote snapshots.

    Discounts compound: each section's discount is applied to its own
    subtotal first, then the overall discount applies to the sum of the
    discounted section totals.
    """

    def __init__(self, clamp_at_zero: Optional[bool] = None, settings: Optional[Settings] = None):
        """Initialize with the negative-total policy (defaults from settings)."""
        self.settings = settings or get_settings()
        self.clamp_at_zero = self.settings.clamp_at_zero if clamp_at_zero is None else clamp_at_zero

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def compute_row_total(self, row: CostRow) -> float:
        """Total for one row under its quantity basis."""
        basis = QuantityBasis.of(row)
        return basis.resolve_total(row.rate, row.quantity, row.times)

    def reprice_row(self, row: CostRow) -> CostRow:
        """Copy of the row with its total recomputed."""
        return replace(row, total=self.compute_row_total(row))

    def seed_rows(self, rows: list[CostRow], group_size: int, trek_days: int) -> list[CostRow]:
        """
        Derive quantity and times from each row's flags, then price it.

        Used when a trek template is applied to a group.
        """
        seeded = []
        for row in rows:
            quantity = derive_quantity(row, group_size)
            times = derive_times(row, trek_days)
            seeded.append(self.reprice_row(replace(row, quantity=quantity, times=times)))
        return seeded

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @staticmethod
    def compute_discount(base: float, discount_type, discount_value) -> float:
        """Amount discounts are taken as-is; percentages apply to the base."""
        value = to_number(discount_value)
        if DiscountType.parse(discount_type) is DiscountType.PERCENTAGE:
            return base * value / 100
        return value

    def _apply_policy(self, total: float) -> float:
        if self.clamp_at_zero and total < 0:
            return 0.0
        return total

    def compute_section_totals(self, section: SectionState) -> SectionTotals:
        """Subtotal, discount amount and total for one section."""
        subtotal = sum(self.compute_row_total(row) for row in section.rows)
        discount_amount = self.compute_discount(subtotal, section.discount_type, section.discount_value)
        total = self._apply_policy(subtotal - discount_amount)
        return SectionTotals(subtotal=subtotal, discount_amount=discount_amount, total=total)

    def reprice_section(self, section: SectionState) -> SectionState:
        """Copy of the section with every row total recomputed."""
        return replace(section, rows=[self.reprice_row(row) for row in section.rows])

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def compute_quote_totals(self, quote: Quote) -> QuoteTotals:
        """
        Grand subtotal, overall discount and final total for a quote.

        The service charge is reported as its own amount and never folded
        into final_total; callers pick total_with_service_charge if they
        bill it.
        """
        section_totals: dict[str, SectionTotals] = {}
        grand_subtotal = 0.0
        for section in quote.sections():
            totals = self.compute_section_totals(section)
            section_totals[section.id] = totals
            grand_subtotal += totals.total

        overall_discount_amount = self.compute_discount(
            grand_subtotal, quote.overall_discount_type, quote.overall_discount_value
        )
        final_total = self._apply_policy(grand_subtotal - overall_discount_amount)

        service_charge_amount = final_total * to_number(quote.service_charge) / 100

        return QuoteTotals(
            sections=section_totals,
            grand_subtotal=grand_subtotal,
            overall_discount_amount=overall_discount_amount,
            final_total=final_total,
            service_charge_amount=service_charge_amount,
            total_with_service_charge=final_total + service_charge_amount,
        )

    def _map_sections(self, quote: Quote, fn) -> Quote:
        return replace(
            quote,
            permits=fn(quote.permits),
            services=fn(quote.services),
            accommodation=fn(quote.accommodation),
            transportation=fn(quote.transportation),
            extra_details=fn(quote.extra_details),
            extra_services=fn(quote.extra_services),
            custom_sections=[fn(s) for s in quote.custom_sections],
            use_pax=dict(quote.use_pax),
        )

    def reprice_quote(self, quote: Quote) -> Quote:
        """Copy of the quote with every row total recomputed."""
        return self._map_sections(quote, self.reprice_section)

    def apply_group_size(self, quote: Quote, group_size: int, use_pax: Optional[dict[str, bool]] = None) -> Quote:
        """
        Copy of the quote for a new group size.

        Rows in sections flagged in use_pax take the group size as their
        quantity; rows elsewhere keep their quantity. Every row total is
        recomputed under its own quantity basis.
        """
        group_size = int(to_number(group_size))
        pax = quote.use_pax if use_pax is None else use_pax

        def update(section: SectionState) -> SectionState:
            if pax.get(section.id, False):
                rows = [self.reprice_row(replace(row, quantity=group_size)) for row in section.rows]
            else:
                rows = [self.reprice_row(row) for row in section.rows]
            return replace(section, rows=rows)

        updated = self._map_sections(quote, update)
        logger.debug("Group %s resized %s -> %s", quote.group_id, quote.group_size, group_size)
        return replace(updated, group_size=group_size, use_pax=dict(pax))
