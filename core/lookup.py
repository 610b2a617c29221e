"""Nearest-neighbor lookup of density at 15°C.

Both axes are searched independently by a full linear scan, so axis order does
not matter. There is no interpolation and no range check: a value far outside
the table still maps to the closest tabulated boundary. ``check_within_range``
is a separate, opt-in policy for callers that want to reject such values.
"""

from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Optional, Sequence

from core.data import ReferenceTable, finite_bounds
from core.errors import (
    EmptyAxisError,
    InvalidInputError,
    NonNumericCellError,
    OutOfRangeError,
    TableNotLoadedError,
)

logger = logging.getLogger(__name__)


def nearest_index(target: float, axis: Sequence[float]) -> Optional[int]:
    """Index of the entry closest to ``target``; the first one wins ties.

    Returns None when the axis has no comparable entry (empty, or all NaN).
    """
    best_diff = math.inf
    best_index: Optional[int] = None
    for i, value in enumerate(axis):
        diff = abs(target - value)
        if math.isnan(diff):
            continue
        # diff overflows to inf for finite values near the float limits
        if best_index is None or diff < best_diff:
            best_diff = diff
            best_index = i
    return best_index


def resolve_density_at_15c(temperature: float, density: float, table: ReferenceTable) -> float:
    temp_index = nearest_index(temperature, table.temperatures)
    density_index = nearest_index(density, table.densities)

    if temp_index is None or density_index is None:
        axis = "temperature" if temp_index is None else "density"
        logger.warning("Lookup failed for T=%s, D=%s: empty %s axis", temperature, density, axis)
        raise EmptyAxisError(axis)

    value = table.matrix[density_index][temp_index]
    if math.isnan(value):
        logger.warning("Lookup hit non-numeric cell [%d][%d]", density_index, temp_index)
        raise NonNumericCellError(density_index, temp_index)
    return value


def parse_observation(value: object, field: str) -> float:
    """Coerce a user-supplied reading to a finite float or raise InvalidInputError."""
    if isinstance(value, bool):
        raise InvalidInputError(field, value)
    if isinstance(value, str):
        text = value.strip()
        try:
            out = float(text)
        except ValueError:
            raise InvalidInputError(field, value) from None
    elif isinstance(value, Real):
        out = float(value)
    else:
        raise InvalidInputError(field, value)
    if not math.isfinite(out):
        raise InvalidInputError(field, value)
    return out


def compute_standardized_density(temperature: object, density: object, table: Optional[ReferenceTable]) -> float:
    if table is None:
        raise TableNotLoadedError()
    t = parse_observation(temperature, "temperature")
    d = parse_observation(density, "density")
    return resolve_density_at_15c(t, d, table)


def check_within_range(temperature: float, density: float, table: ReferenceTable) -> None:
    """Reject readings outside the tabulated span of either axis."""
    for field, value, axis in (
        ("temperature", temperature, table.temperatures),
        ("density", density, table.densities),
    ):
        bounds = finite_bounds(axis)
        if bounds is None:
            raise EmptyAxisError(field)
        lo, hi = bounds
        if value < lo or value > hi:
            raise OutOfRangeError(field, value, bounds)
