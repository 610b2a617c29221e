from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from core.data import ReferenceTable
from core.errors import TableNotLoadedError
from core.lookup import check_within_range, compute_standardized_density, parse_observation
from core.settings import DEFAULT_DENSITY_UNIT, DEFAULT_TOLERANCE, Settings

logger = logging.getLogger(__name__)

VERDICT_ACCEPTABLE = "ACCEPTABLE"
VERDICT_UNACCEPTABLE = "UNACCEPTABLE"


@dataclass(frozen=True)
class Observation:
    temperature: float
    density: float


@dataclass(frozen=True)
class CalculationResult:
    dispatch_density_15c: float
    receiving_density_15c: float
    absolute_difference: float
    acceptable: bool
    tolerance: float = DEFAULT_TOLERANCE


def compare(d1: float, d2: float, tolerance: float = DEFAULT_TOLERANCE) -> CalculationResult:
    """Classify two standardized densities; a difference equal to the tolerance passes."""
    if math.isnan(tolerance) or tolerance < 0:
        raise ValueError(f"tolerance must be a non-negative number, got {tolerance!r}")
    diff = abs(d1 - d2)
    return CalculationResult(
        dispatch_density_15c=d1,
        receiving_density_15c=d2,
        absolute_difference=diff,
        acceptable=diff <= tolerance,
        tolerance=tolerance,
    )


def _standardize(obs: Observation, table: ReferenceTable, prefix: str, enforce_range: bool) -> float:
    temperature = parse_observation(obs.temperature, f"{prefix}_temperature")
    density = parse_observation(obs.density, f"{prefix}_density")
    if enforce_range:
        check_within_range(temperature, density, table)
    return compute_standardized_density(temperature, density, table)


def calculate_density_variation(
    dispatch: Observation,
    receiving: Observation,
    table: Optional[ReferenceTable],
    tolerance: float = DEFAULT_TOLERANCE,
    *,
    enforce_range: bool = False,
) -> CalculationResult:
    if table is None:
        raise TableNotLoadedError()
    d1 = _standardize(dispatch, table, "dispatch", enforce_range)
    d2 = _standardize(receiving, table, "receiving", enforce_range)
    result = compare(d1, d2, tolerance)
    logger.info(
        "Variation %.3f (tolerance %.1f): %s",
        result.absolute_difference,
        tolerance,
        VERDICT_ACCEPTABLE if result.acceptable else VERDICT_UNACCEPTABLE,
    )
    return result


# ---------------- Formatting ----------------
def format_density(value: Optional[float], unit: str = DEFAULT_DENSITY_UNIT) -> str:
    if value is None or math.isnan(value):
        return "N/A"
    return f"{value:.3f} {unit}"


def format_tolerance(tolerance: float, unit: str = DEFAULT_DENSITY_UNIT) -> str:
    return f"±{tolerance:.1f} {unit}"


def verdict_message(result: CalculationResult, unit: str = DEFAULT_DENSITY_UNIT) -> str:
    limit = format_tolerance(result.tolerance, unit)
    if result.acceptable:
        return f"The variation is within the limit of {limit}."
    return f"The variation of {format_density(result.absolute_difference, unit)} exceeds the limit of {limit}."


def compute_variation(
    dispatch: Observation,
    receiving: Observation,
    table: Optional[ReferenceTable],
    settings: Settings,
    *,
    tolerance: Optional[float] = None,
) -> Dict[str, Any]:
    tol = settings.tolerance if tolerance is None else tolerance
    result = calculate_density_variation(
        dispatch, receiving, table, tol, enforce_range=settings.enforce_table_range
    )
    return variation_payload(result, settings.density_unit)


def variation_payload(result: CalculationResult, unit: str = DEFAULT_DENSITY_UNIT) -> Dict[str, Any]:
    return {
        "result": asdict(result),
        "verdict": VERDICT_ACCEPTABLE if result.acceptable else VERDICT_UNACCEPTABLE,
        "message": verdict_message(result, unit),
        "formatted": {
            "dispatch_density_15c": format_density(result.dispatch_density_15c, unit),
            "receiving_density_15c": format_density(result.receiving_density_15c, unit),
            "absolute_difference": format_density(result.absolute_difference, unit),
            "tolerance": format_tolerance(result.tolerance, unit),
        },
        "unit": unit,
    }
