"""
Cost table export - section tables and summary as Excel or CSV.

Each non-empty section becomes a table of its priced rows followed by
Subtotal / Discount / Total rows; a Summary table lists each section's
total and the grand total. Rows with a zero total are left out.
"""
import io
import logging
import re
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.models import Quote, SectionState
from ..engine.pricing_engine import PricingEngine

logger = logging.getLogger(__name__)

SECTION_COLUMNS = ['Description', 'Rate', 'No', 'Times', 'Total']
SUMMARY_COLUMNS = ['Item', 'Amount']

# Excel limits sheet names to 31 characters.
MAX_SHEET_NAME = 31
# Characters Excel rejects in sheet names.
INVALID_SHEET_CHARS = re.compile(r"[:\\/?*\[\]]")

SUMMARY_TITLE = 'Summary'


def exportable_sections(quote: Quote, engine: PricingEngine) -> list[SectionState]:
    """Sections with their zero-total rows dropped; empty sections omitted."""
    sections = []
    for section in engine.reprice_quote(quote).sections():
        rows = [row for row in section.rows if row.total != 0]
        if rows:
            sections.append(SectionState(
                id=section.id,
                name=section.name,
                rows=rows,
                discount_type=section.discount_type,
                discount_value=section.discount_value,
                discount_remarks=section.discount_remarks,
            ))
    return sections


def section_table(section: SectionState, engine: PricingEngine) -> pd.DataFrame:
    """One section's rows plus its trailing Subtotal / Discount / Total lines."""
    records = [
        {
            'Description': row.description,
            'Rate': row.rate,
            'No': row.quantity,
            'Times': row.times,
            'Total': row.total,
        }
        for row in section.rows
    ]
    totals = engine.compute_section_totals(section)
    records.append({'Description': 'Subtotal', 'Rate': None, 'No': None, 'Times': None, 'Total': totals.subtotal})
    if totals.discount_amount > 0:
        records.append({'Description': 'Discount', 'Rate': None, 'No': None, 'Times': None, 'Total': -totals.discount_amount})
    records.append({'Description': 'Total', 'Rate': None, 'No': None, 'Times': None, 'Total': totals.total})
    return pd.DataFrame(records, columns=SECTION_COLUMNS)


def summary_table(sections: list[SectionState], engine: PricingEngine) -> pd.DataFrame:
    """Per-section totals followed by the grand total of the exported sections."""
    records = []
    grand_total = 0.0
    for section in sections:
        total = engine.compute_section_totals(section).total
        grand_total += total
        records.append({'Item': f"{section.name} Total", 'Amount': total})
    records.append({'Item': 'Grand Total', 'Amount': grand_total})
    return pd.DataFrame(records, columns=SUMMARY_COLUMNS)


def build_tables(quote: Quote, engine: Optional[PricingEngine] = None) -> list[tuple[str, pd.DataFrame]]:
    """
    (title, DataFrame) pairs, one per exported section, Summary last.

    Titles are section names as entered and may repeat; they are made
    unique only when written out as sheet names or CSV blocks.
    """
    engine = engine or PricingEngine()
    sections = exportable_sections(quote, engine)
    tables = [(section.name, section_table(section, engine)) for section in sections]
    if sections:
        tables.append((SUMMARY_TITLE, summary_table(sections, engine)))
    return tables


def _unique_title(name: str, used: set[str], limit: Optional[int] = None) -> str:
    # Compared case-insensitively, as Excel does for sheet names
    base = (name[:limit] if limit else name) or 'Section'
    candidate = base
    counter = 1
    while candidate.lower() in used:
        suffix = f" ({counter})"
        stem = base[:limit - len(suffix)] if limit else base
        candidate = stem + suffix
        counter += 1
    used.add(candidate.lower())
    return candidate


def _sheet_name(name: str, used: set[str]) -> str:
    cleaned = INVALID_SHEET_CHARS.sub('-', name).strip("'")
    return _unique_title(cleaned, used, MAX_SHEET_NAME)


def _titled(tables: list[tuple[str, pd.DataFrame]], namer) -> list[tuple[str, pd.DataFrame]]:
    """Give every table a unique title; the trailing Summary keeps its own."""
    used = {SUMMARY_TITLE.lower()}
    titled = []
    for index, (title, df) in enumerate(tables):
        if index == len(tables) - 1:
            titled.append((SUMMARY_TITLE, df))
        else:
            titled.append((namer(title, used), df))
    return titled


def export_excel(quote: Quote, target: Union[str, Path, io.BytesIO, None] = None,
                 engine: Optional[PricingEngine] = None) -> Union[Path, bytes]:
    """
    Write the cost tables to an .xlsx workbook, one sheet per table.

    Returns the path when a file target is given, otherwise the workbook bytes.
    """
    tables = build_tables(quote, engine)
    buffer = io.BytesIO() if target is None else target

    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        if not tables:
            pd.DataFrame(columns=SUMMARY_COLUMNS).to_excel(writer, sheet_name=SUMMARY_TITLE, index=False)
        for name, df in _titled(tables, _sheet_name):
            df.to_excel(writer, sheet_name=name, index=False)

    logger.info("Exported %d tables for quote %s", len(tables), quote.group_id)
    if target is None:
        return buffer.getvalue()
    if isinstance(target, (str, Path)):
        return Path(target)
    return target.getvalue()


def export_csv(quote: Quote, engine: Optional[PricingEngine] = None) -> str:
    """All tables in one CSV document, each preceded by its name."""
    parts = []
    for name, df in _titled(build_tables(quote, engine), _unique_title):
        parts.append(name)
        parts.append(df.to_csv(index=False))
    return "\n".join(parts)


def default_filename(quote: Quote, extension: str) -> str:
    return f"cost-report-{quote.group_id[:8]}.{extension}"


def default_export_path(quote: Quote, extension: str, settings: Optional[Settings] = None) -> Path:
    """Report path inside the configured export folder, created if missing."""
    settings = settings or get_settings()
    settings.export_dir.mkdir(parents=True, exist_ok=True)
    return settings.export_dir / default_filename(quote, extension)
