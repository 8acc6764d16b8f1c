"""
Quote Service - CRUD operations for trek quotes and their payments.

Stores are swappable behind the QuoteStore interface: an in-memory store
for development and tests, and a JSON-file store for a single workstation.
The pricing engine never touches a store; the service prices snapshots
it reads from one.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config.settings import get_settings, Settings
from ..engine.models import Quote, Transaction, PaymentDetails
from ..engine.payments import build_payment_details
from ..engine.pricing_engine import PricingEngine

logger = logging.getLogger(__name__)


class QuoteStore(ABC):
    """Repository interface for quotes and their transactions."""

    @abstractmethod
    def get(self, group_id: str) -> Optional[Quote]:
        ...

    @abstractmethod
    def save(self, quote: Quote) -> Quote:
        ...

    @abstractmethod
    def list(self, trek_id: Optional[str] = None) -> list[Quote]:
        ...

    @abstractmethod
    def delete(self, group_id: str) -> bool:
        ...

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> Transaction:
        ...

    @abstractmethod
    def list_transactions(self, group_id: Optional[str] = None) -> list[Transaction]:
        ...


class InMemoryQuoteStore(QuoteStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self):
        self._quotes: dict[str, dict] = {}
        self._transactions: list[dict] = []

    def get(self, group_id: str) -> Optional[Quote]:
        data = self._quotes.get(group_id)
        return Quote.from_dict(data) if data is not None else None

    def save(self, quote: Quote) -> Quote:
        # Stored as plain dicts so callers never share mutable state with the store
        self._quotes[quote.group_id] = quote.to_dict()
        return Quote.from_dict(self._quotes[quote.group_id])

    def list(self, trek_id: Optional[str] = None) -> list[Quote]:
        quotes = [Quote.from_dict(d) for d in self._quotes.values()]
        if trek_id is not None:
            quotes = [q for q in quotes if q.trek_id == str(trek_id)]
        return quotes

    def delete(self, group_id: str) -> bool:
        if group_id not in self._quotes:
            return False
        del self._quotes[group_id]
        self._transactions = [t for t in self._transactions if t['group_id'] != group_id]
        return True

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions.append(transaction.to_dict())
        return transaction

    def list_transactions(self, group_id: Optional[str] = None) -> list[Transaction]:
        return [
            Transaction.from_dict(t)
            for t in self._transactions
            if group_id is None or t['group_id'] == group_id
        ]


class JsonQuoteStore(InMemoryQuoteStore):
    """Store backed by one JSON document, rewritten on every change."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read quote store %s: %s", self.path, e)
            return
        self._quotes = {q['group_id']: q for q in data.get('quotes', []) if q.get('group_id')}
        self._transactions = list(data.get('transactions', []))

    def _write(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(
                {'quotes': list(self._quotes.values()), 'transactions': self._transactions},
                f,
                indent=2,
            )

    def save(self, quote: Quote) -> Quote:
        saved = super().save(quote)
        self._write()
        return saved

    def delete(self, group_id: str) -> bool:
        deleted = super().delete(group_id)
        if deleted:
            self._write()
        return deleted

    def add_transaction(self, transaction: Transaction) -> Transaction:
        added = super().add_transaction(transaction)
        self._write()
        return added


def create_store(settings: Optional[Settings] = None) -> QuoteStore:
    """Build the store configured in settings."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        return InMemoryQuoteStore()
    return JsonQuoteStore(settings.quotes_file)


@dataclass
class ValidationResult:
    """Result of quote validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class QuoteService:
    """Service for managing quotes and recording payments."""

    def __init__(
        self,
        store: Optional[QuoteStore] = None,
        engine: Optional[PricingEngine] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or create_store(self.settings)
        self.engine = engine or PricingEngine(settings=self.settings)

    def list_quotes(self, trek_id: Optional[str] = None) -> list[Quote]:
        """List all quotes, optionally for one trek."""
        return self.store.list(trek_id)

    def get_quote(self, group_id: str) -> Optional[Quote]:
        """Get a single quote by group ID."""
        return self.store.get(group_id)

    def create_quote(self, quote: Quote) -> Quote:
        """Create a new quote."""
        if self.store.get(quote.group_id):
            raise ValueError(f"Quote with ID '{quote.group_id}' already exists")

        validation = self.validate_quote(quote)
        if not validation.valid:
            raise ValueError("; ".join(validation.errors))

        saved = self.store.save(self.engine.reprice_quote(quote))
        logger.info("Created quote %s (%s)", saved.group_id, saved.group_name)
        return saved

    def update_quote(self, group_id: str, quote: Quote) -> Quote:
        """Replace an existing quote, keeping its group ID."""
        if not self.store.get(group_id):
            raise ValueError(f"Quote with ID '{group_id}' not found")

        quote = replace(quote, group_id=group_id)
        validation = self.validate_quote(quote)
        if not validation.valid:
            raise ValueError("; ".join(validation.errors))

        saved = self.store.save(self.engine.reprice_quote(quote))
        logger.info("Updated quote %s", group_id)
        return saved

    def delete_quote(self, group_id: str) -> bool:
        """Delete a quote and its transactions."""
        if not self.store.delete(group_id):
            raise ValueError(f"Quote with ID '{group_id}' not found")
        logger.info("Deleted quote %s", group_id)
        return True

    def change_group_size(self, group_id: str, group_size: int, use_pax: Optional[dict[str, bool]] = None) -> Quote:
        """Resize a stored quote's group and save the repriced result."""
        quote = self._require(group_id)
        if group_size < 0:
            raise ValueError("Group size cannot be negative")
        return self.store.save(self.engine.apply_group_size(quote, group_size, use_pax))

    def validate_quote(self, quote: Quote) -> ValidationResult:
        """Validate a quote before saving. Pricing oddities are warnings only."""
        result = ValidationResult(valid=True)

        if not quote.group_name.strip():
            result.errors.append("Group name is required")
            result.valid = False

        if quote.group_size < 0:
            result.errors.append("Group size cannot be negative")
            result.valid = False

        for section in quote.sections():
            for row in section.rows:
                if row.rate < 0:
                    result.warnings.append(f"Negative rate on '{row.description}' in {section.name}")

            totals = self.engine.compute_section_totals(section)
            if totals.discount_amount > totals.subtotal:
                result.warnings.append(f"Discount exceeds subtotal in {section.name}")

        totals = self.engine.compute_quote_totals(quote)
        if totals.overall_discount_amount > totals.grand_subtotal:
            result.warnings.append("Overall discount exceeds quote subtotal")

        return result

    def _require(self, group_id: str) -> Quote:
        quote = self.store.get(group_id)
        if not quote:
            raise ValueError(f"Quote with ID '{group_id}' not found")
        return quote

    def record_transaction(self, transaction: Transaction) -> Transaction:
        """Record a payment or refund against an existing quote."""
        self._require(transaction.group_id)
        if transaction.amount <= 0:
            raise ValueError("Amount must be greater than 0")
        if not transaction.date:
            transaction = replace(transaction, date=datetime.now().strftime('%Y-%m-%d'))
        added = self.store.add_transaction(transaction)
        logger.info("Recorded %s of %.2f for %s", added.type, added.amount, added.group_id)
        return added

    def get_payment_details(self, group_id: str) -> PaymentDetails:
        """Payment summary for a quote: final total against recorded transactions."""
        quote = self._require(group_id)
        totals = self.engine.compute_quote_totals(quote)
        return build_payment_details(
            totals.final_total,
            transactions=self.store.list_transactions(group_id),
            epsilon=self.settings.payment_epsilon,
        )

    def get_stats(self) -> dict:
        """Get statistics about quotes and collections."""
        quotes = self.store.list()
        by_status: dict[str, int] = {}
        revenue = 0.0
        collected = 0.0
        for quote in quotes:
            details = self.get_payment_details(quote.group_id)
            by_status[details.payment_status.value] = by_status.get(details.payment_status.value, 0) + 1
            revenue += details.total_cost
            collected += details.total_paid

        return {
            'total': len(quotes),
            'by_status': by_status,
            'total_revenue': revenue,
            'total_collected': collected,
            'total_outstanding': revenue - collected,
        }
