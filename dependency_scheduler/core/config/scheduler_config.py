from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import yaml

from dependency_scheduler.core.model import DEFAULT_DEPENDENCY_TYPE, DEPENDENCY_TYPES
from dependency_scheduler.core.validate.validate_snapshot import parse_datetime


TIME_UNITS: dict[str, timedelta] = {
    "minutes": timedelta(minutes=1),
    "hours": timedelta(hours=1),
    "days": timedelta(days=1),
}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class SchedulerConfig:
    default_dependency_type: str = DEFAULT_DEPENDENCY_TYPE
    # unit used when rendering slack
    time_unit: str = "days"
    # fallback anchor for undated tasks when the scope has no dates at all
    anchor: Optional[datetime] = None

    def to_units(self, delta: timedelta) -> float:
        return delta / TIME_UNITS[self.time_unit]


DEFAULT_CONFIG = SchedulerConfig()


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load scheduler settings from a YAML file.

    Format:
      default_dependency_type: finish-to-start
      time_unit: days
      anchor: 2024-01-01T00:00:00Z

    Unknown keys are rejected. Returns the validated overrides.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("config file must be a mapping")

    out: dict[str, Any] = {}
    for k, v in raw.items():
        if k == "default_dependency_type":
            if v not in DEPENDENCY_TYPES:
                raise ConfigError(f"default_dependency_type must be one of {list(DEPENDENCY_TYPES)}")
            out[k] = v
        elif k == "time_unit":
            if v not in TIME_UNITS:
                raise ConfigError(f"time_unit must be one of {sorted(TIME_UNITS)}")
            out[k] = v
        elif k == "anchor":
            anchor = parse_datetime(v)
            if v is not None and anchor is None:
                raise ConfigError("anchor must be an ISO-8601 date or datetime")
            out[k] = anchor
        else:
            raise ConfigError(f"unknown config key: {k}")
    return out


def load_and_merge(config_file: str | None) -> SchedulerConfig:
    if not config_file:
        return DEFAULT_CONFIG
    return replace(DEFAULT_CONFIG, **load_config_file(config_file))
