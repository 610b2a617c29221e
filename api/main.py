from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from api.schemas import CompareRequestModel, ErrorResponse, ObservationModel, VariationRequestModel
from core.charts import table_heatmap, to_vega_spec
from core.data import ReferenceTable, load_reference_table, reload_reference_table, table_summary
from core.errors import INVALID_INPUT, OUT_OF_RANGE, TABLE_UNAVAILABLE, USER_MESSAGES, DensityCalcError
from core.logging_config import setup_logging
from core.lookup import check_within_range, compute_standardized_density, parse_observation
from core.settings import Settings, settings_from_env
from core.variation import Observation, compare, compute_variation, variation_payload

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    TABLE_UNAVAILABLE: 503,
    INVALID_INPUT: 400,
    OUT_OF_RANGE: 422,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid numeric input"},
    422: {"model": ErrorResponse, "description": "Value out of the table's representable range"},
    503: {"model": ErrorResponse, "description": "Reference table unavailable"},
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    settings = settings_from_env()
    try:
        _table(settings)
    except DensityCalcError as exc:
        logger.error("Reference table not loaded at startup: %s", exc)
    yield


app = FastAPI(title="Density Variation API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
def request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("request validation failed: %s", exc.errors())
    return JSONResponse(
        status_code=STATUS_BY_KIND[INVALID_INPUT],
        content={
            "error": "; ".join(str(e.get("msg", "")) for e in exc.errors()),
            "type": type(exc).__name__,
            "kind": INVALID_INPUT,
            "message": USER_MESSAGES[INVALID_INPUT],
        },
    )


def _table(settings: Settings) -> ReferenceTable:
    return load_reference_table(settings.table_source, timeout=settings.fetch_timeout)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception, endpoint: str) -> JSONResponse:
    if isinstance(exc, DensityCalcError):
        logger.warning("%s failed (%s): %s", endpoint, exc.kind, exc)
        return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 500), content=exc.to_dict())
    logger.exception("%s failed", endpoint)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _table_payload(settings: Settings, table: ReferenceTable, include_matrix: bool) -> dict:
    payload = {"source": settings.table_source, **table_summary(table)}
    if include_matrix:
        payload["matrix"] = [list(row) for row in table.matrix]
    return payload


@app.get("/health")
def health():
    settings = settings_from_env()
    try:
        table = _table(settings)
        rows, cols = table.shape
        return _json({"status": "ok", "table_loaded": True, "rows": rows, "columns": cols})
    except DensityCalcError as exc:
        logger.warning("health: %s", exc)
        return _json({"status": "degraded", "table_loaded": False, "detail": exc.to_dict()})


@app.get("/table", responses=ERROR_RESPONSES)
def table(include_matrix: bool = Query(default=False)):
    try:
        settings = settings_from_env()
        return _json(_table_payload(settings, _table(settings), include_matrix))
    except Exception as exc:
        return _error(exc, "table")


@app.get("/table/chart", responses=ERROR_RESPONSES)
def table_chart():
    try:
        settings = settings_from_env()
        chart = table_heatmap(_table(settings), unit=settings.density_unit)
        return _json(to_vega_spec(chart))
    except Exception as exc:
        return _error(exc, "table_chart")


@app.post("/table/reload", responses=ERROR_RESPONSES)
def table_reload():
    try:
        settings = settings_from_env()
        reload_reference_table()
        return _json(_table_payload(settings, _table(settings), include_matrix=False))
    except Exception as exc:
        return _error(exc, "table_reload")


@app.post("/density", responses=ERROR_RESPONSES)
def density(observation: ObservationModel):
    try:
        settings = settings_from_env()
        ref_table = _table(settings)
        t = parse_observation(observation.temperature, "temperature")
        d = parse_observation(observation.density, "density")
        if settings.enforce_table_range:
            check_within_range(t, d, ref_table)
        value = compute_standardized_density(t, d, ref_table)
        return _json({"temperature": t, "density": d, "density_15c": value, "unit": settings.density_unit})
    except Exception as exc:
        return _error(exc, "density")


@app.post("/compare", responses=ERROR_RESPONSES)
def compare_densities(request: CompareRequestModel):
    try:
        settings = settings_from_env()
        tolerance = settings.tolerance if request.tolerance is None else request.tolerance
        d1 = parse_observation(request.dispatch_density_15c, "dispatch_density_15c")
        d2 = parse_observation(request.receiving_density_15c, "receiving_density_15c")
        result = compare(d1, d2, tolerance)
        return _json(variation_payload(result, settings.density_unit))
    except Exception as exc:
        return _error(exc, "compare")


@app.post("/variation", responses=ERROR_RESPONSES)
def variation(request: VariationRequestModel):
    try:
        settings = settings_from_env()
        ref_table = _table(settings)
        dispatch = Observation(request.dispatch.temperature, request.dispatch.density)
        receiving = Observation(request.receiving.temperature, request.receiving.density)
        return _json(compute_variation(dispatch, receiving, ref_table, settings, tolerance=request.tolerance))
    except Exception as exc:
        return _error(exc, "variation")
