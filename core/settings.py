from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
SAMPLE_TABLE_PATH = DATA_DIR / "astm_table_sample.csv"

DEFAULT_TOLERANCE = 2.5  # kg/m³
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_DENSITY_UNIT = "kg/m³"

ENV_TABLE_SOURCE = "DENSITY_TABLE_SOURCE"
ENV_TOLERANCE = "DENSITY_TOLERANCE"
ENV_FETCH_TIMEOUT = "DENSITY_FETCH_TIMEOUT"
ENV_ENFORCE_RANGE = "DENSITY_ENFORCE_RANGE"

_TRUE_TOKENS = {"1", "true", "yes", "on", "y"}


@dataclass(frozen=True)
class Settings:
    table_source: str = str(SAMPLE_TABLE_PATH)
    tolerance: float = DEFAULT_TOLERANCE
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    enforce_table_range: bool = False
    density_unit: str = DEFAULT_DENSITY_UNIT


def _as_float(value: object, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        out = float(value)  # type: ignore[arg-type]
    except Exception:
        return default
    if out != out:
        return default
    return out


def _as_bool(value: object, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_TOKENS


def normalize_settings(raw: Optional[Mapping[str, object]] = None) -> Settings:
    raw = raw or {}

    table_source = str(raw.get("table_source") or "").strip() or str(SAMPLE_TABLE_PATH)

    tolerance = _as_float(raw.get("tolerance"), DEFAULT_TOLERANCE)
    tolerance = max(0.0, tolerance)

    fetch_timeout = _as_float(raw.get("fetch_timeout"), DEFAULT_FETCH_TIMEOUT)
    fetch_timeout = max(1.0, min(120.0, fetch_timeout))

    density_unit = str(raw.get("density_unit") or DEFAULT_DENSITY_UNIT)
    return Settings(
        table_source=table_source,
        tolerance=tolerance,
        fetch_timeout=fetch_timeout,
        enforce_table_range=_as_bool(raw.get("enforce_table_range")),
        density_unit=density_unit,
    )


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return normalize_settings(
        {
            "table_source": env.get(ENV_TABLE_SOURCE),
            "tolerance": env.get(ENV_TOLERANCE),
            "fetch_timeout": env.get(ENV_FETCH_TIMEOUT),
            "enforce_table_range": env.get(ENV_ENFORCE_RANGE),
        }
    )
