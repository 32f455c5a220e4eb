from __future__ import annotations

from datetime import date
import logging
import math
from typing import Literal, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import ErrorResponse, FilterOptionsModel, MetaListResponse
from rail_core.data import DataLoadError, load_train_data, records_frame
from rail_core.filters import FilterOptions, normalize_filters
from rail_core.metrics_analytics import compute_analytics
from rail_core.metrics_debug import compute_debug
from rail_core.metrics_delays import compute_delays_table, export_delays_csv
from rail_core.metrics_overview import compute_overview
from rail_core.metrics_routes import (
    compute_route_analysis,
    compute_route_detail,
    route_export_filename,
    route_export_payload,
)
from rail_core.metrics_search import compute_search
from rail_core.processing import get_unique_routes, get_unique_train_numbers


app = FastAPI(title="Rail Delay Tracker API", version="0.1.0")
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    500: {"model": ErrorResponse, "description": "Unexpected failure"},
    503: {"model": ErrorResponse, "description": "Delay export could not be loaded"},
}

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: FilterOptionsModel) -> FilterOptions:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
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
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(name: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, DataLoadError):
        logger.error("%s failed: %s", name, exc.message)
        body = ErrorResponse(error=exc.message, type=type(exc).__name__)
        return JSONResponse(status_code=503, content=body.model_dump())
    logger.exception("%s failed", name)
    body = ErrorResponse(error=str(exc), type=type(exc).__name__)
    return JSONResponse(status_code=500, content=body.model_dump())


@app.get("/meta/trains", response_model=MetaListResponse, responses=ERROR_RESPONSES)
def meta_trains():
    try:
        data_ctx = load_train_data()
        return _json({"values": get_unique_train_numbers(records_frame(data_ctx))})
    except Exception as exc:
        return _error("meta_trains", exc)


@app.get("/meta/routes", response_model=MetaListResponse, responses=ERROR_RESPONSES)
def meta_routes(q: str = Query(default="")):
    try:
        data_ctx = load_train_data()
        routes = get_unique_routes(records_frame(data_ctx))
        query = (q or "").strip().lower()
        if query:
            routes = [r for r in routes if query in r.lower()]
        return _json({"values": routes[:500]})
    except Exception as exc:
        return _error("meta_routes", exc)


@app.get("/overview", responses=ERROR_RESPONSES)
def overview():
    try:
        return _json(compute_overview(load_train_data()))
    except Exception as exc:
        return _error("overview", exc)


@app.get("/analytics", responses=ERROR_RESPONSES)
def analytics(route_limit: int = Query(default=20, ge=1, le=1000)):
    try:
        return _json(compute_analytics(load_train_data(), route_limit=route_limit))
    except Exception as exc:
        return _error("analytics", exc)


@app.post("/delays", responses=ERROR_RESPONSES)
def delays(filters: FilterOptionsModel):
    try:
        data_ctx = load_train_data()
        return _json(compute_delays_table(_filters_from_model(filters), data_ctx))
    except Exception as exc:
        return _error("delays", exc)


@app.post("/export/delays", responses=ERROR_RESPONSES)
def export_delays(filters: FilterOptionsModel):
    try:
        data_ctx = load_train_data()
        csv_text = export_delays_csv(_filters_from_model(filters), data_ctx)
    except Exception as exc:
        return _error("export_delays", exc)
    filename = f"train_delays_{date.today().isoformat()}.csv"
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.get("/routes", responses=ERROR_RESPONSES)
def routes(
    q: str = Query(default=""),
    sort_by: Literal["average_delay", "total_records", "max_delay"] = Query(default="average_delay"),
    sort_direction: Literal["asc", "desc"] = Query(default="desc"),
    limit: int = Query(default=20, ge=1, le=1000),
):
    try:
        data_ctx = load_train_data()
        return _json(compute_route_analysis(data_ctx, q=q, sort_by=sort_by, sort_direction=sort_direction, limit=limit))
    except Exception as exc:
        return _error("routes", exc)


@app.get("/routes/detail", responses=ERROR_RESPONSES)
def route_detail(route: str = Query(...)):
    try:
        return _json(compute_route_detail(load_train_data(), route))
    except Exception as exc:
        return _error("route_detail", exc)


@app.get("/routes/export", responses=ERROR_RESPONSES)
def route_export(route: str = Query(...)):
    try:
        detail = compute_route_detail(load_train_data(), route)
        payload = route_export_payload(detail)
    except Exception as exc:
        return _error("route_export", exc)
    response = _json(payload)
    response.headers["Content-Disposition"] = f"attachment; filename={route_export_filename(route)}"
    return response


@app.get("/search", responses=ERROR_RESPONSES)
def search(
    q: str = Query(default=""),
    category: Literal["all", "trains", "routes"] = Query(default="all"),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    min_delay: Optional[float] = Query(default=None),
    max_delay: Optional[float] = Query(default=None),
    sort_by: Literal["relevance", "delay", "date"] = Query(default="relevance"),
):
    try:
        data_ctx = load_train_data()
        return _json(
            compute_search(
                data_ctx,
                q=q,
                category=category,
                start=start,
                end=end,
                min_delay=min_delay,
                max_delay=max_delay,
                sort_by=sort_by,
            )
        )
    except Exception as exc:
        return _error("search", exc)


@app.get("/debug", responses=ERROR_RESPONSES)
def debug():
    try:
        return _json(compute_debug(load_train_data()))
    except Exception as exc:
        return _error("debug", exc)
