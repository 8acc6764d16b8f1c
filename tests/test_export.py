"""
Cost table export tests.
"""
import io

import pandas as pd
import pytest

from trek_costing.engine.models import CostRow, Quote, SectionState
from trek_costing.export.tables import (
    build_tables,
    default_export_path,
    default_filename,
    export_csv,
    export_excel,
)


def test_tables_per_section_with_summary_last(engine, composed_quote):
    tables = build_tables(composed_quote, engine)
    assert [title for title, _ in tables] == ['Permits & Documents', 'Services', 'Summary']

    permits = tables[0][1]
    assert list(permits['Description']) == ['Park permit', 'Municipality fee', 'Subtotal', 'Discount', 'Total']
    assert list(permits['Total']) == pytest.approx([150, 150, 300, -30, 270])

    summary = tables[-1][1]
    assert list(summary['Item']) == ['Permits & Documents Total', 'Services Total', 'Grand Total']
    assert list(summary['Amount']) == pytest.approx([270, 180, 450])


def test_zero_total_rows_dropped_and_no_discount_line(engine):
    quote = Quote(group_name="g")
    quote.extra_details = SectionState(id='extraDetails', name='Extra Details', rows=[
        CostRow(description='Satellite device', rate=0, one_time=True),
        CostRow(description='Oxygen', rate=60, quantity=1, times=2),
    ])
    tables = build_tables(quote, engine)

    title, extras = tables[0]
    assert title == 'Extra Details'
    assert list(extras['Description']) == ['Oxygen', 'Subtotal', 'Total']


def test_empty_quote_has_no_tables(engine):
    assert build_tables(Quote(group_name="g"), engine) == []


def custom(name, rate, section_id=None):
    return SectionState(id=section_id or name.lower(), name=name,
                        rows=[CostRow(description=f'{name} line', rate=rate, quantity=1, times=1)])


def test_sections_with_same_name_each_get_a_table(engine):
    quote = Quote(group_name="g", custom_sections=[custom('Porters', 100, 'p1'), custom('Porters', 50, 'p2')])
    tables = build_tables(quote, engine)

    assert [title for title, _ in tables] == ['Porters', 'Porters', 'Summary']
    section_totals = [df['Total'].iloc[-1] for _, df in tables[:-1]]
    grand_total = tables[-1][1]['Amount'].iloc[-1]
    assert section_totals == pytest.approx([100, 50])
    assert grand_total == pytest.approx(sum(section_totals)), "grand total matches the exported tables"

    sheets = pd.read_excel(io.BytesIO(export_excel(quote, engine=engine)), sheet_name=None)
    assert list(sheets) == ['Porters', 'Porters (1)', 'Summary']


def test_section_named_summary_is_kept(engine):
    quote = Quote(group_name="g", custom_sections=[custom('summary', 75)])
    tables = build_tables(quote, engine)
    assert [title for title, _ in tables] == ['summary', 'Summary']
    assert list(tables[0][1]['Description'])[0] == 'summary line'

    sheets = pd.read_excel(io.BytesIO(export_excel(quote, engine=engine)), sheet_name=None)
    assert list(sheets) == ['summary (1)', 'Summary']

    text = export_csv(quote, engine=engine)
    assert text.startswith('summary (1)\n')
    assert 'summary line' in text


def test_sheet_names_drop_characters_excel_rejects(engine):
    quote = Quote(group_name="g", custom_sections=[custom('Food/Drinks', 40), custom('[Misc]: a*b?', 10)])
    sheets = pd.read_excel(io.BytesIO(export_excel(quote, engine=engine)), sheet_name=None)
    assert list(sheets) == ['Food-Drinks', '-Misc-- a-b-', 'Summary']


def test_excel_bytes_round_trip(engine, composed_quote):
    content = export_excel(composed_quote, engine=engine)
    assert isinstance(content, bytes)

    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
    assert list(sheets) == ['Permits & Documents', 'Services', 'Summary']
    assert sheets['Summary']['Amount'].iloc[-1] == pytest.approx(450)


def test_excel_to_path(tmp_path, engine, composed_quote):
    target = tmp_path / default_filename(composed_quote, 'xlsx')
    result = export_excel(composed_quote, target, engine=engine)
    assert result == target
    assert target.exists()


def test_excel_for_empty_quote_has_summary_sheet(engine):
    sheets = pd.read_excel(io.BytesIO(export_excel(Quote(group_name="g"), engine=engine)), sheet_name=None)
    assert list(sheets) == ['Summary']


def test_csv_contains_every_table(engine, composed_quote):
    text = export_csv(composed_quote, engine=engine)
    assert text.startswith('Permits & Documents\n')
    assert 'Grand Total,450.0' in text


def test_default_filename(composed_quote):
    name = default_filename(composed_quote, 'csv')
    assert name == f"cost-report-{composed_quote.group_id[:8]}.csv"


def test_default_export_path_uses_export_dir(settings, engine, composed_quote):
    path = default_export_path(composed_quote, 'xlsx', settings)
    assert path.parent == settings.export_dir
    assert settings.export_dir.is_dir()

    assert export_excel(composed_quote, path, engine=engine) == path
    assert path.exists()
