"""
Quote service tests: CRUD, validation, transactions and stores.
"""
import json

import pytest

from trek_costing.engine.models import CostRow, PaymentStatus, Quote, SectionState, Transaction
from trek_costing.services.quote_service import (
    InMemoryQuoteStore,
    JsonQuoteStore,
    QuoteService,
    create_store,
)


@pytest.fixture
def service(settings, engine):
    return QuoteService(store=InMemoryQuoteStore(), engine=engine, settings=settings)


def test_create_reprices_and_stores(service, composed_quote):
    composed_quote.permits.rows[0].total = 12345
    created = service.create_quote(composed_quote)

    assert created.permits.rows[0].total == 150
    assert service.get_quote(composed_quote.group_id) == created
    assert len(service.list_quotes()) == 1


def test_create_duplicate_raises(service, composed_quote):
    service.create_quote(composed_quote)
    with pytest.raises(ValueError, match="already exists"):
        service.create_quote(composed_quote)


def test_create_requires_a_name(service):
    with pytest.raises(ValueError, match="name is required"):
        service.create_quote(Quote())


def test_list_filters_by_trek(service):
    service.create_quote(Quote(group_name="a", trek_id="32"))
    service.create_quote(Quote(group_name="b", trek_id="41"))
    assert [q.group_name for q in service.list_quotes("41")] == ["b"]


def test_update_keeps_group_id(service, composed_quote):
    service.create_quote(composed_quote)
    replacement = Quote(group_name="renamed", group_size=5)
    updated = service.update_quote(composed_quote.group_id, replacement)

    assert updated.group_id == composed_quote.group_id
    assert service.get_quote(composed_quote.group_id).group_name == "renamed"


def test_update_and_delete_missing_raise(service):
    with pytest.raises(ValueError, match="not found"):
        service.update_quote("missing", Quote(group_name="x"))
    with pytest.raises(ValueError, match="not found"):
        service.delete_quote("missing")


def test_delete_removes_transactions(service, composed_quote):
    service.create_quote(composed_quote)
    service.record_transaction(Transaction(group_id=composed_quote.group_id, amount=100))
    service.delete_quote(composed_quote.group_id)

    assert service.get_quote(composed_quote.group_id) is None
    assert service.store.list_transactions(composed_quote.group_id) == []


def test_validation_warnings_do_not_block(service):
    quote = Quote(group_name="g")
    quote.services = SectionState(id='services', name='Services',
                                  rows=[CostRow(description='Refund line', rate=-10, quantity=1, times=1)],
                                  discount_value=50)
    quote.overall_discount_value = 1000

    result = service.validate_quote(quote)
    assert result.valid
    assert any("Negative rate" in w for w in result.warnings)
    assert any("Discount exceeds subtotal" in w for w in result.warnings)
    assert "Overall discount exceeds quote subtotal" in result.warnings


def test_negative_group_size_is_an_error(service):
    result = service.validate_quote(Quote(group_name="g", group_size=-1))
    assert not result.valid
    assert "Group size cannot be negative" in result.errors


def test_change_group_size_persists(service, composed_quote):
    composed_quote.use_pax = {'permits': True}
    service.create_quote(composed_quote)

    resized = service.change_group_size(composed_quote.group_id, 5)
    assert [r.quantity for r in resized.permits.rows] == [5, 5]
    assert service.get_quote(composed_quote.group_id).group_size == 5


def test_record_transaction_rules(service, composed_quote):
    service.create_quote(composed_quote)
    with pytest.raises(ValueError, match="greater than 0"):
        service.record_transaction(Transaction(group_id=composed_quote.group_id, amount=0))
    with pytest.raises(ValueError, match="not found"):
        service.record_transaction(Transaction(group_id="missing", amount=10))

    tx = service.record_transaction(Transaction(group_id=composed_quote.group_id, amount=10))
    assert tx.date, "date defaults to today"


def test_payment_details_track_final_total(service, composed_quote):
    service.create_quote(composed_quote)
    gid = composed_quote.group_id

    assert service.get_payment_details(gid).payment_status is PaymentStatus.UNPAID

    service.record_transaction(Transaction(group_id=gid, amount=200))
    details = service.get_payment_details(gid)
    assert details.total_cost == pytest.approx(427.5)
    assert details.balance == pytest.approx(227.5)
    assert details.payment_status is PaymentStatus.PARTIALLY_PAID

    service.record_transaction(Transaction(group_id=gid, amount=227.5))
    assert service.get_payment_details(gid).payment_status is PaymentStatus.FULLY_PAID

    service.record_transaction(Transaction(group_id=gid, amount=50))
    assert service.get_payment_details(gid).payment_status is PaymentStatus.OVERPAID

    service.record_transaction(Transaction(group_id=gid, amount=50, type="refund"))
    assert service.get_payment_details(gid).payment_status is PaymentStatus.FULLY_PAID


def test_stats(service, composed_quote):
    service.create_quote(composed_quote)
    service.create_quote(Quote(group_name="empty"))
    service.record_transaction(Transaction(group_id=composed_quote.group_id, amount=100))

    stats = service.get_stats()
    assert stats['total'] == 2
    assert stats['by_status'] == {'partially paid': 1, 'unpaid': 1}
    assert stats['total_revenue'] == pytest.approx(427.5)
    assert stats['total_outstanding'] == pytest.approx(327.5)


def test_json_store_survives_reload(tmp_path, settings, engine, composed_quote):
    path = tmp_path / "quotes.json"
    service = QuoteService(store=JsonQuoteStore(path), engine=engine, settings=settings)
    service.create_quote(composed_quote)
    service.record_transaction(Transaction(group_id=composed_quote.group_id, amount=75))

    data = json.loads(path.read_text(encoding='utf-8'))
    assert len(data['quotes']) == 1
    assert len(data['transactions']) == 1

    reloaded = JsonQuoteStore(path)
    quote = reloaded.get(composed_quote.group_id)
    assert quote.group_name == "EBC-test"
    assert quote.permits.discount_value == 10
    assert reloaded.list_transactions(composed_quote.group_id)[0].amount == 75


def test_json_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "quotes.json"
    path.write_text("{not json", encoding='utf-8')
    assert JsonQuoteStore(path).list() == []


def test_create_store_backend(settings):
    assert isinstance(create_store(settings), InMemoryQuoteStore)
    settings.store_backend = "json"
    store = create_store(settings)
    assert isinstance(store, JsonQuoteStore)
    assert store.path == settings.quotes_file
