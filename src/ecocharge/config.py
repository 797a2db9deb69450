# File: src/ecocharge/config.py
"""
Engine configuration

Defaults match the EcoCharge booking form: 30-minute slots from 06:00 to
22:30, sessions of 0.5 to 8 hours in half-hour steps, and 2 loyalty points
per rupee spent. Values can be overlaid from a dictionary (for example a
parsed JSON file) or from ECOCHARGE_* environment variables.
"""

from dataclasses import dataclass, fields, replace
from typing import Dict, Any, Optional, Mapping
import os


ENV_PREFIX = "ECOCHARGE_"


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by the services"""
    currency: str = "INR"
    loyalty_points_per_currency_unit: int = 2
    first_slot_hour: int = 6
    last_slot_hour: int = 22
    slot_step_minutes: int = 30
    min_duration_hours: float = 0.5
    max_duration_hours: float = 8.0
    duration_step_hours: float = 0.5
    snapshot_url: str = "memory://"
    catalog_path: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")
        if self.loyalty_points_per_currency_unit < 0:
            raise ValueError("Loyalty rate cannot be negative")
        if not 0 <= self.first_slot_hour <= self.last_slot_hour <= 23:
            raise ValueError("Slot hours must satisfy 0 <= first <= last <= 23")
        if not 0 < self.min_duration_hours <= self.max_duration_hours:
            raise ValueError("Duration bounds must satisfy 0 < min <= max")
        if self.duration_step_hours <= 0:
            raise ValueError("Duration step must be positive")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: Optional['EngineConfig'] = None) -> 'EngineConfig':
        """Overlay known keys from ``data`` on ``base`` (or the defaults)"""
        base = base or cls()
        known = {f.name: f for f in fields(cls)}
        overrides = {}
        for key, value in data.items():
            if key not in known:
                raise ValueError(f"Unknown configuration key: {key}")
            overrides[key] = value
        return replace(base, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'EngineConfig':
        """Read ECOCHARGE_<FIELD> variables, converting to each field's type"""
        environ = os.environ if environ is None else environ
        defaults = cls()
        overrides: Dict[str, Any] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            default = getattr(defaults, f.name)
            if isinstance(default, bool):
                overrides[f.name] = raw.lower() in ("1", "true", "yes")
            elif isinstance(default, int):
                overrides[f.name] = int(raw)
            elif isinstance(default, float):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw
        return replace(defaults, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
