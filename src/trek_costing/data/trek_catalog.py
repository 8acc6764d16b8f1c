"""
Trek Catalog - loads trek templates and seeds new quotes from them.

Reads two CSV files:
- treks.csv:   trek_id, name, days
- permits.csv: trek_id, name, rate, per_person, per_day, one_time, max_capacity
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from ..engine.models import CostRow, Quote, to_bool, to_number
from ..engine.pricing_engine import PricingEngine

logger = logging.getLogger(__name__)

TREK_COLUMNS = ['trek_id', 'name', 'days']
PERMIT_COLUMNS = ['trek_id', 'name', 'rate', 'per_person', 'per_day', 'one_time', 'max_capacity']

# Placeholder extras every new quote starts with; staff fill in the rates.
EXTRA_DETAIL_PLACEHOLDERS = ('Satellite device', 'Adv less')


@dataclass
class TrekTemplate:
    """A trek with its default permits."""
    trek_id: str
    name: str
    days: int = 1
    permits: list[CostRow] = field(default_factory=list)


def short_name(name: str) -> str:
    """Initials of a trek name: "Everest Base Camp" -> "EBC"."""
    return "".join(word[0] for word in name.split() if word).upper()


class TrekCatalog:
    """Trek templates keyed by trek ID."""

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[PricingEngine] = None):
        """Load treks and permits from the configured CSV files."""
        self.settings = settings or get_settings()
        self.engine = engine or PricingEngine(settings=self.settings)
        self.treks = self._load_csv(self.settings.treks_csv, TREK_COLUMNS)
        self.permits = self._load_csv(self.settings.permits_csv, PERMIT_COLUMNS)

    def _load_csv(self, path: Path, columns: list[str]) -> pd.DataFrame:
        if not path.exists():
            logger.warning("Trek catalog file not found: %s", path)
            return pd.DataFrame(columns=columns)

        df = pd.read_csv(path, dtype=str).fillna('')
        df.columns = [c.strip() for c in df.columns]
        for col in df.columns:
            df[col] = df[col].astype(str).str.strip()
        for col in columns:
            if col not in df.columns:
                df[col] = ''
        return df

    def reload_data(self):
        """Reload CSV data from disk."""
        self.treks = self._load_csv(self.settings.treks_csv, TREK_COLUMNS)
        self.permits = self._load_csv(self.settings.permits_csv, PERMIT_COLUMNS)

    def list_treks(self) -> list[TrekTemplate]:
        return [self._template(row) for _, row in self.treks.iterrows()]

    def get_trek(self, trek_id: str) -> Optional[TrekTemplate]:
        match = self.treks[self.treks['trek_id'] == str(trek_id).strip()]
        if match.empty:
            return None
        return self._template(match.iloc[0])

    def _template(self, row: pd.Series) -> TrekTemplate:
        trek_id = row['trek_id']
        permits = self.permits[self.permits['trek_id'] == trek_id]
        return TrekTemplate(
            trek_id=trek_id,
            name=row['name'],
            days=max(int(to_number(row['days'], 1)), 1),
            permits=[
                CostRow(
                    description=p['name'],
                    rate=to_number(p['rate']),
                    per_person=to_bool(p['per_person']),
                    per_day=to_bool(p['per_day']),
                    one_time=to_bool(p['one_time']),
                    max_capacity=int(to_number(p['max_capacity'])) if p['max_capacity'] else None,
                )
                for _, p in permits.iterrows()
            ],
        )

    def new_quote(self, trek_id: str, group_size: int = 1, start_date: Optional[str] = None) -> Quote:
        """
        Create a fresh quote for a trek.

        Permits come from the template with quantity and times derived from
        their flags; extra details get the fixed one-time placeholders.
        """
        trek = self.get_trek(trek_id)
        if trek is None:
            raise ValueError(f"Trek '{trek_id}' not found")

        quote = Quote(
            trek_id=trek.trek_id,
            trek_name=trek.name,
            group_name=f"{short_name(trek.name)}-{int(datetime.now().timestamp() * 1000)}",
            group_size=group_size,
            trek_days=trek.days,
            start_date=start_date or date.today().isoformat(),
            service_charge=self.settings.default_service_charge,
        )
        quote.permits.rows = self.engine.seed_rows(trek.permits, group_size, trek.days)
        quote.extra_details.rows = self.engine.seed_rows(
            [CostRow(description=d, one_time=True) for d in EXTRA_DETAIL_PLACEHOLDERS],
            group_size,
            trek.days,
        )
        return quote
