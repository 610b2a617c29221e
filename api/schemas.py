from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

# Readings are passed through unconverted; core.lookup.parse_observation validates them.
Reading = Any


class ObservationModel(BaseModel):
    temperature: Reading = None
    density: Reading = None


class VariationRequestModel(BaseModel):
    dispatch: ObservationModel = Field(default_factory=ObservationModel)
    receiving: ObservationModel = Field(default_factory=ObservationModel)
    tolerance: Optional[float] = Field(default=None, ge=0)


class CompareRequestModel(BaseModel):
    dispatch_density_15c: Reading = None
    receiving_density_15c: Reading = None
    tolerance: Optional[float] = Field(default=None, ge=0)


class ErrorResponse(BaseModel):
    error: str
    type: str
    kind: Optional[str] = None
    message: Optional[str] = None
