from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
import requests

from core.errors import TableAcquisitionError, TableParseError
from core.settings import DEFAULT_FETCH_TIMEOUT

logger = logging.getLogger(__name__)

URL_PREFIXES = ("http://", "https://")


@dataclass(frozen=True)
class ReferenceTable:
    """Density-at-15°C correction table.

    ``matrix[i][j]`` is the density at 15°C for ``densities[i]`` observed at
    ``temperatures[j]``. Cells that were not numeric in the source are NaN.
    """

    temperatures: Tuple[float, ...] = ()
    densities: Tuple[float, ...] = ()
    matrix: Tuple[Tuple[float, ...], ...] = ()

    def __post_init__(self) -> None:
        try:
            temperatures = tuple(float(v) for v in self.temperatures)
            densities = tuple(float(v) for v in self.densities)
            matrix = tuple(tuple(float(v) for v in row) for row in self.matrix)
        except (TypeError, ValueError) as exc:
            raise TableParseError(f"Reference table values must be numeric: {exc}") from exc

        if len(matrix) != len(densities):
            raise TableParseError(f"Reference table has {len(matrix)} rows for {len(densities)} densities")
        for i, row in enumerate(matrix):
            if len(row) != len(temperatures):
                raise TableParseError(
                    f"Reference table row {i} has {len(row)} cells for {len(temperatures)} temperatures"
                )

        object.__setattr__(self, "temperatures", temperatures)
        object.__setattr__(self, "densities", densities)
        object.__setattr__(self, "matrix", matrix)

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self.densities), len(self.temperatures)

    @property
    def is_degenerate(self) -> bool:
        return not self.temperatures or not self.densities

    @property
    def non_numeric_cells(self) -> int:
        return sum(1 for row in self.matrix for v in row if math.isnan(v))

    def to_frame(self) -> pd.DataFrame:
        values = np.array(self.matrix, dtype=float).reshape(self.shape)
        return pd.DataFrame(
            values,
            index=pd.Index(self.densities, name="observed_density"),
            columns=pd.Index(self.temperatures, name="temperature"),
        )


def split_cells(line: str) -> List[str]:
    return [c.strip() for c in line.split(",")]


def to_floats(cells: Iterable[str]) -> Tuple[float, ...]:
    """Parse cells as floats; anything unparseable becomes NaN."""
    series = pd.to_numeric(pd.Series(list(cells), dtype=object), errors="coerce")
    return tuple(float(v) for v in series.astype(float).tolist())


def fit_row(values: Tuple[float, ...], width: int) -> Tuple[float, ...]:
    if len(values) >= width:
        return values[:width]
    return values + (math.nan,) * (width - len(values))


def parse_table_csv(text: str) -> ReferenceTable:
    lines = text.lstrip("\ufeff").strip().split("\n")

    temperatures = to_floats(split_cells(lines[0])[1:])
    width = len(temperatures)

    densities: List[float] = []
    matrix: List[Tuple[float, ...]] = []
    for line in lines[1:]:
        parts = split_cells(line)
        if len(parts) < 2:
            continue
        row = to_floats(parts)
        densities.append(row[0])
        matrix.append(fit_row(row[1:], width))

    return ReferenceTable(temperatures=temperatures, densities=tuple(densities), matrix=tuple(matrix))


def load_table(raw_text: Optional[str]) -> ReferenceTable:
    if not isinstance(raw_text, str):
        raise TableParseError(f"Reference table text must be a string, got {type(raw_text).__name__}")

    table = parse_table_csv(raw_text)
    rows, cols = table.shape
    if table.is_degenerate:
        logger.warning("Reference table is degenerate: %d density rows x %d temperature columns", rows, cols)
    else:
        logger.info("Reference table parsed: %d density rows x %d temperature columns", rows, cols)
    bad_cells = table.non_numeric_cells
    if bad_cells:
        logger.warning("Reference table has %d non-numeric cells", bad_cells)
    return table


# ---------------- Acquisition ----------------
def is_url(source: str) -> bool:
    return source.strip().lower().startswith(URL_PREFIXES)


def fetch_table_text(source: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> str:
    if is_url(source):
        logger.info("Fetching reference table from %s", source)
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TableAcquisitionError(source, str(exc)) from exc
        return response.text

    path = Path(source).expanduser()
    logger.info("Reading reference table from %s", path)
    try:
        return path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise TableAcquisitionError(source, str(exc)) from exc


def source_signature(source: str) -> Tuple[str, Optional[float]]:
    if is_url(source):
        return source, None
    try:
        return source, Path(source).expanduser().stat().st_mtime
    except OSError:
        return source, None


@lru_cache(maxsize=4)
def _load_reference_table_cached(signature: Tuple[str, Optional[float]], timeout: float) -> ReferenceTable:
    source, _ = signature
    return load_table(fetch_table_text(source, timeout=timeout))


def load_reference_table(source: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> ReferenceTable:
    return _load_reference_table_cached(source_signature(source), timeout)


def reload_reference_table() -> None:
    _load_reference_table_cached.cache_clear()


def finite_bounds(values: Tuple[float, ...]) -> Optional[Tuple[float, float]]:
    finite = [v for v in values if not math.isnan(v)]
    if not finite:
        return None
    return min(finite), max(finite)


def table_summary(table: ReferenceTable) -> Dict[str, object]:
    rows, cols = table.shape
    return {
        "rows": rows,
        "columns": cols,
        "temperatures": list(table.temperatures),
        "densities": list(table.densities),
        "temperature_range": finite_bounds(table.temperatures),
        "density_range": finite_bounds(table.densities),
        "non_numeric_cells": table.non_numeric_cells,
        "degenerate": table.is_degenerate,
    }
