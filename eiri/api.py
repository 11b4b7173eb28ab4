#!/usr/bin/env python3
"""
eiri.api — EIRI read-only API server.

Serves the precomputed EV Infrastructure Readiness Index dataset and
the derived views the dashboard needs. The dataset is loaded once,
cached in memory, and never mutated; every endpoint is a pure query
over that cached tuple of records.

Endpoints:
    GET /                      → API metadata
    GET /health                → Liveness probe
    GET /ready                 → Readiness probe with dataset diagnostics
    GET /summary               → Headline indicators
    GET /countries             → All countries, sortable (?sort=&direction=)
    GET /country/{code}        → One country with readiness band and gap category
    GET /rankings/{field}      → Top-N by a numeric field (?n=)
    GET /gap                   → Gap-analysis subset (?category=&min_stations=)
    GET /map                   → Plottable points for a metric (?metric=)

Environment variables:
    ENV               — "dev" or "prod" (default: "prod")
    EIRI_DATA_PATH    — Dataset file (default: bundled eiri/data/countries.json)
    ALLOWED_ORIGINS   — Comma-separated extra CORS origins
    ENABLE_DOCS       — "1" to force-enable /docs in prod
    REQUIRE_DATA      — "1" to hard-fail startup if the dataset is unusable
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.gzip import GZipMiddleware

from eiri.classification import classify_gap, classify_readiness, gap_label
from eiri.constants import (
    API_VERSION,
    DEFAULT_DATA_PATH,
    DEFAULT_MIN_STATIONS,
    DEFAULT_TOP_N,
    MAX_TOP_N,
)
from eiri.filtering import GapCategory, filter_by_gap_category, map_points
from eiri.loader import DatasetError, dataset_fingerprint, load_records
from eiri.metrics import summarize
from eiri.models import CountryMetrics, MetricType
from eiri.security import DatasetCacheMiddleware, RequestContextMiddleware
from eiri.sorting import SortDirection, parse_sort_field, rank_top_n, sort_by


# ---------------------------------------------------------------------------
# Logging configuration — structured JSON to stdout
# ---------------------------------------------------------------------------

_log_level = logging.DEBUG if os.getenv("ENV", "prod") == "dev" else logging.INFO
logging.basicConfig(
    level=_log_level,
    format="%(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger("eiri.api")


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

ENV = os.getenv("ENV", "prod").lower().strip()
ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS", "").strip()
ENABLE_DOCS = os.getenv("ENABLE_DOCS", "").strip() == "1"
REQUIRE_DATA = os.getenv("REQUIRE_DATA", "").strip() == "1"
DATA_PATH = Path(os.getenv("EIRI_DATA_PATH", "").strip() or DEFAULT_DATA_PATH)


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["240/minute"],
    storage_uri="memory://",
    strategy="fixed-window",
)


# ---------------------------------------------------------------------------
# Dataset cache — loaded once, never mutated
# ---------------------------------------------------------------------------

_dataset_lock = threading.Lock()
_dataset: dict[str, Any] = {}


def _load_dataset() -> None:
    """Populate the dataset cache. Records the failure instead of raising."""
    with _dataset_lock:
        if _dataset:
            return
        try:
            records = load_records(DATA_PATH)
            fingerprint = dataset_fingerprint(DATA_PATH)
        except (OSError, DatasetError) as exc:
            logger.error(json.dumps({
                "event": "dataset_unavailable",
                "error_type": type(exc).__name__,
                "error": str(exc),
            }))
            _dataset.update({"records": None, "error": type(exc).__name__, "fingerprint": None})
            return
        _dataset.update({
            "records": records,
            "error": None,
            "fingerprint": fingerprint,
        })


def reload_dataset() -> None:
    """Drop and reload the cached dataset. Used in testing only."""
    with _dataset_lock:
        _dataset.clear()
    _load_dataset()


def current_fingerprint() -> str | None:
    """SHA-256 of the loaded dataset, or None when it could not be loaded."""
    _load_dataset()
    return _dataset.get("fingerprint")


def get_records() -> tuple[CountryMetrics, ...]:
    """Cached records, or 503 if the dataset could not be loaded."""
    _load_dataset()
    records = _dataset.get("records")
    if records is None:
        raise HTTPException(status_code=503, detail="Dataset not available.")
    return records


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def _record_payload(record: CountryMetrics) -> dict[str, Any]:
    """Wire record plus display name and qualitative labels."""
    return {
        **record.to_dict(),
        "name": record.display_name,
        "readiness_band": classify_readiness(record.eiri),
        "gap_category": classify_gap(record.gap_value),
    }


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the dataset at startup. REQUIRE_DATA=1 turns a failure into exit(1)."""
    logger.info(json.dumps({
        "event": "startup",
        "env": ENV,
        "require_data": REQUIRE_DATA,
        "data_file": DATA_PATH.name,
        "cors_origins": len(_CORS_ORIGINS),
    }))

    _load_dataset()
    if _dataset.get("records") is None:
        if REQUIRE_DATA:
            logger.error(json.dumps({
                "event": "startup_abort",
                "reason": "REQUIRE_DATA=1 but dataset could not be loaded",
            }))
            sys.exit(1)
        logger.warning(json.dumps({
            "event": "startup_degraded",
            "reason": "Dataset missing or invalid",
        }))

    yield

    logger.info(json.dumps({"event": "shutdown"}))


def _build_docs_kwargs() -> dict[str, Any]:
    if ENV == "prod" and not ENABLE_DOCS:
        return {"docs_url": None, "redoc_url": None, "openapi_url": None}
    return {"docs_url": "/docs", "redoc_url": "/redoc"}


app = FastAPI(
    title="EIRI API",
    description="EV Infrastructure Readiness Index — read-only API",
    version=API_VERSION,
    lifespan=_lifespan,
    **_build_docs_kwargs(),
)

app.state.limiter = limiter


# ---------------------------------------------------------------------------
# CORS — GET-only, explicit allow-list
# ---------------------------------------------------------------------------

DEV_ORIGINS: list[str] = [
    "http://localhost:3000",
    "http://localhost:5173",
]

_CORS_ORIGINS: list[str] = list(DEV_ORIGINS)

if ALLOWED_ORIGINS_RAW:
    for _o in ALLOWED_ORIGINS_RAW.split(","):
        _o = _o.strip()
        if _o and _o not in _CORS_ORIGINS:
            _CORS_ORIGINS.append(_o)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)

# Starlette runs middleware in reverse registration order:
# GZip → RequestContext → DatasetCache → CORS
app.add_middleware(DatasetCacheMiddleware, fingerprint=current_fingerprint)
app.add_middleware(RequestContextMiddleware, fingerprint=current_fingerprint)
app.add_middleware(GZipMiddleware, minimum_size=500)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Try again later."},
        headers={"Retry-After": "60"},
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(json.dumps({
        "event": "unhandled_exception",
        "exception_type": type(exc).__name__,
        "request_id": request_id,
        "path": request.url.path,
    }))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request) -> dict:
    """API metadata."""
    return {
        "name": "EIRI API",
        "version": API_VERSION,
        "metrics": [m.value for m in MetricType],
        "gap_categories": [c.value for c in GapCategory],
    }


@app.get("/health", include_in_schema=False)
async def health(request: Request) -> JSONResponse:
    """Liveness probe. Always 200, touches nothing."""
    return JSONResponse(status_code=200, content={"status": "ok", "version": API_VERSION})


@app.get("/ready")
@limiter.limit("60/minute")
async def ready(request: Request) -> JSONResponse:
    """Readiness probe. Always 200; the 'ready' field carries the verdict."""
    _load_dataset()
    records = _dataset.get("records")
    body = {
        "ready": records is not None,
        "status": "healthy" if records is not None else "degraded",
        "version": API_VERSION,
        "record_count": len(records) if records is not None else 0,
        "dataset_sha256": _dataset.get("fingerprint"),
        "error": _dataset.get("error"),
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return JSONResponse(status_code=200, content=body)


@app.get("/summary")
@limiter.limit("120/minute")
async def get_summary(request: Request) -> dict:
    """Total stations, average EIRI, readiness leader and largest demand gap."""
    return summarize(get_records()).to_dict()


@app.get("/countries")
@limiter.limit("120/minute")
async def list_countries(
    request: Request,
    sort: str = "EIRI",
    direction: str = "desc",
) -> dict:
    """All countries, ordered by any column."""
    try:
        field = parse_sort_field(sort)
        order = SortDirection.parse(direction)
    except ValueError as exc:
        raise _bad_request(exc) from exc

    rows = sort_by(get_records(), field, order)
    return {
        "sort": field.value,
        "direction": order.value,
        "count": len(rows),
        "countries": [_record_payload(r) for r in rows],
    }


@app.get("/country/{code}")
@limiter.limit("120/minute")
async def get_country(code: str, request: Request) -> dict:
    """One country by code (case-insensitive)."""
    wanted = code.strip().casefold()
    for record in get_records():
        if record.country_code.casefold() == wanted:
            return _record_payload(record)
    raise HTTPException(status_code=404, detail=f"Country '{code.strip()}' not found.")


@app.get("/rankings/{field}")
@limiter.limit("120/minute")
async def get_ranking(
    field: str,
    request: Request,
    n: int = DEFAULT_TOP_N,
) -> dict:
    """Top-N countries by a numeric field, descending."""
    try:
        sort_field = parse_sort_field(field)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if sort_field.is_text:
        raise HTTPException(status_code=400, detail=f"Field '{field}' is not numeric.")
    if not 1 <= n <= MAX_TOP_N:
        raise HTTPException(status_code=400, detail=f"n must be between 1 and {MAX_TOP_N}.")

    rows = rank_top_n(get_records(), sort_field, n)
    return {
        "field": sort_field.value,
        "n": n,
        "countries": [_record_payload(r) for r in rows],
    }


@app.get("/gap")
@limiter.limit("120/minute")
async def get_gap(
    request: Request,
    category: str = "all",
    min_stations: int = DEFAULT_MIN_STATIONS,
) -> dict:
    """Gap-analysis subset: station threshold first, then category."""
    try:
        cat = GapCategory.parse(category)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if min_stations < 0:
        raise HTTPException(status_code=400, detail="min_stations must be >= 0.")

    rows = filter_by_gap_category(get_records(), min_stations, cat)
    return {
        "category": cat.value,
        "label": gap_label(cat.value),
        "min_stations": min_stations,
        "count": len(rows),
        "countries": [_record_payload(r) for r in rows],
    }


@app.get("/map")
@limiter.limit("120/minute")
async def get_map(request: Request, metric: str = "EIRI") -> dict:
    """Points with finite coordinates, largest station count first."""
    try:
        selected = MetricType.parse(metric)
    except ValueError as exc:
        raise _bad_request(exc) from exc

    points = map_points(get_records(), selected)
    return {
        "metric": selected.value,
        "count": len(points),
        "points": [p.to_dict() for p in points],
    }


# ---------------------------------------------------------------------------
# Entry point (development only)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    os.environ.setdefault("ENV", "dev")
    print(f"EIRI API {API_VERSION} — serving {DATA_PATH}")
    uvicorn.run(app, host="0.0.0.0", port=8000)  # noqa: S104
