#!/usr/bin/env python
"""
Price a quote file and export its cost tables.

Usage:
    python scripts/price_quote.py path/to/quote.json [--xlsx [out.xlsx]]

Without an explicit path the workbook goes to the configured export folder
(TREK_COSTING_EXPORT_DIR, data/exports by default).
"""
import json
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from trek_costing.config.settings import get_settings
from trek_costing.engine import PricingEngine, Quote
from trek_costing.export.tables import export_excel, default_export_path


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    quote_path = Path(sys.argv[1])
    if not quote_path.exists():
        print(f"ERROR: {quote_path} not found")
        sys.exit(1)

    with open(quote_path, 'r', encoding='utf-8') as f:
        quote = Quote.from_dict(json.load(f))

    settings = get_settings()
    engine = PricingEngine(settings=settings)
    totals = engine.compute_quote_totals(quote)
    cur = settings.currency_symbol

    print("=" * 60)
    print(f"QUOTE {quote.group_name or quote.group_id}")
    print("=" * 60)
    for section in quote.sections():
        section_totals = totals.sections[section.id]
        if not section.rows:
            continue
        print(f"  {section.name:<30} {cur}{section_totals.subtotal:>11.2f}"
              f"  -{section_totals.discount_amount:>10.2f}  = {cur}{section_totals.total:>11.2f}")
    print()
    print(f"  Subtotal:          {cur}{totals.grand_subtotal:>11.2f}")
    print(f"  Overall discount:  {cur}{totals.overall_discount_amount:>11.2f}")
    print(f"  Final total:       {cur}{totals.final_total:>11.2f}")
    print(f"  Service charge:    {cur}{totals.service_charge_amount:>11.2f}")

    if '--xlsx' in sys.argv:
        idx = sys.argv.index('--xlsx')
        if idx + 1 < len(sys.argv):
            out = Path(sys.argv[idx + 1])
        else:
            out = default_export_path(quote, 'xlsx', settings)
        export_excel(quote, out, engine=engine)
        print(f"\nWorkbook saved to: {out}")


if __name__ == "__main__":
    main()
