"""
Centralized settings and path configuration for trek costing.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


ENV_PREFIX = "TREK_COSTING_"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Input files
    treks_csv: Path
    permits_csv: Path

    # Storage / output
    quotes_file: Path
    export_dir: Path
    store_backend: str = "json"  # "json" or "memory"

    # Pricing policy
    clamp_at_zero: bool = False
    payment_epsilon: float = 0.01
    default_service_charge: float = 10.0
    currency_symbol: str = "$"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and TREK_COSTING_* env vars."""
        root = project_root or get_project_root()

        data_dir = Path(_env("DATA_DIR") or root / 'data')

        return cls(
            project_root=root,
            data_dir=data_dir,
            treks_csv=Path(_env("TREKS_CSV") or data_dir / 'treks.csv'),
            permits_csv=Path(_env("PERMITS_CSV") or data_dir / 'permits.csv'),
            quotes_file=Path(_env("QUOTES_FILE") or data_dir / 'quotes.json'),
            export_dir=Path(_env("EXPORT_DIR") or data_dir / 'exports'),
            store_backend=(_env("STORE_BACKEND") or "json").lower(),
            clamp_at_zero=_env_bool("CLAMP_AT_ZERO", False),
            payment_epsilon=_env_float("PAYMENT_EPSILON", 0.01),
            default_service_charge=_env_float("DEFAULT_SERVICE_CHARGE", 10.0),
            currency_symbol=_env("CURRENCY_SYMBOL") or "$",
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
