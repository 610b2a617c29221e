"""Failure taxonomy for table loading and density lookups.

Every error carries a stable ``kind`` shared by all surfaces (API, UI):

- ``table_unavailable``: the reference table could not be obtained or is not loaded.
- ``invalid_input``: an observed temperature/density is not a usable number.
- ``out_of_range``: the lookup could not produce a value from the table.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

TABLE_UNAVAILABLE = "table_unavailable"
INVALID_INPUT = "invalid_input"
OUT_OF_RANGE = "out_of_range"

USER_MESSAGES = {
    TABLE_UNAVAILABLE: "Reference table unavailable. Please check the published CSV source.",
    INVALID_INPUT: "Please enter valid numerical values for all fields.",
    OUT_OF_RANGE: "Conversion failed. Check if input values are within the reference table range.",
}


class DensityCalcError(Exception):
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        return USER_MESSAGES.get(self.kind, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "type": type(self).__name__, "kind": self.kind, "message": self.user_message}


class TableUnavailableError(DensityCalcError):
    kind = TABLE_UNAVAILABLE


class TableAcquisitionError(TableUnavailableError):
    """Raw table text could not be fetched or read."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Could not load reference table from {source}: {reason}")
        self.source = source
        self.reason = reason


class TableNotLoadedError(TableUnavailableError):
    def __init__(self, message: str = "Reference table has not been loaded.") -> None:
        super().__init__(message)


class TableParseError(TableUnavailableError, ValueError):
    pass


class InvalidInputError(DensityCalcError, ValueError):
    kind = INVALID_INPUT

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"{field} must be a finite number, got {value!r}")
        self.field = field
        self.value = value


class LookupFailure(DensityCalcError):
    kind = OUT_OF_RANGE


class EmptyAxisError(LookupFailure):
    def __init__(self, axis: str) -> None:
        super().__init__(f"Reference table has no usable {axis} axis entries.")
        self.axis = axis


class NonNumericCellError(LookupFailure):
    def __init__(self, density_index: int, temperature_index: int) -> None:
        super().__init__(
            f"Reference table cell [{density_index}][{temperature_index}] is not numeric."
        )
        self.density_index = density_index
        self.temperature_index = temperature_index


class OutOfRangeError(LookupFailure):
    def __init__(self, field: str, value: float, bounds: Optional[tuple] = None) -> None:
        lo, hi = bounds if bounds else (None, None)
        super().__init__(f"{field} {value} is outside the table range [{lo}, {hi}].")
        self.field = field
        self.value = value
        self.bounds = bounds
