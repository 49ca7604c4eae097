"""Engine settings.

Provides get_settings() / set_settings() to swap the active settings:
- defaults (overridable through ``PREORDERS_*`` environment variables)
- explicit instances injected by tests
"""

import os
from dataclasses import dataclass, fields

_ENV_PREFIX = "PREORDERS_"


@dataclass(frozen=True)
class EngineSettings:
    """Business constants that shape cart, validation and pricing rules."""

    cart_ttl_hours: int = 24
    max_item_quantity: int = 100
    booking_horizon_days: int = 30
    conflict_window_minutes: int = 30
    capacity_warning_ratio: float = 0.8
    low_inventory_factor: int = 2
    large_quantity_threshold: int = 10
    tax_rate: float = 0.16
    currency: str = "KES"
    max_write_attempts: int = 3

    @classmethod
    def from_env(cls, environ=None) -> "EngineSettings":
        """Build settings from ``PREORDERS_<FIELD>`` variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for field in fields(cls):
            raw = environ.get(f"{_ENV_PREFIX}{field.name.upper()}")
            if raw is None or raw == "":
                continue
            overrides[field.name] = field.type(raw)
        return cls(**overrides)


_current_settings: EngineSettings | None = None


def get_settings() -> EngineSettings:
    """Return the active settings. Defaults to values read from the environment."""
    global _current_settings
    if _current_settings is None:
        _current_settings = EngineSettings.from_env()
    return _current_settings


def set_settings(settings: EngineSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Reset to environment-derived defaults."""
    global _current_settings
    _current_settings = None
