"""
eiri.security — HTTP middleware for the EIRI API.

The dataset is static for the lifetime of a process, so every data
response is fully determined by (dataset fingerprint, path, query).
That makes conditional GET free: the ETag is derived from those three
values and a matching If-None-Match is answered with 304 before any
endpoint runs.

Provides:
    - DatasetCacheMiddleware: dataset-keyed weak ETag, 304 short-circuit,
      Cache-Control per path and dataset state
    - RequestContextMiddleware: X-Request-ID, X-Dataset-Version,
      hardening headers, one structured log line per request
    - dataset_etag / dataset_version: the derivations both use
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("eiri.security")

FingerprintProvider = Callable[[], Optional[str]]

UNCACHED_PATHS: frozenset[str] = frozenset(("/health", "/ready"))
"""Never cached, never tagged."""

DATASET_VERSION_LENGTH: int = 12


def dataset_version(fingerprint: str | None) -> str:
    """Short form of the dataset SHA-256 for headers and logs."""
    if not fingerprint:
        return "unavailable"
    return fingerprint[:DATASET_VERSION_LENGTH]


def dataset_etag(fingerprint: str, path: str, query: str) -> str:
    """Weak ETag for one data response of one dataset."""
    digest = hashlib.sha256(f"{fingerprint}\n{path}\n{query}".encode()).hexdigest()
    return f'W/"{digest[:32]}"'


def _etag_matches(if_none_match: str, etag: str) -> bool:
    if not if_none_match:
        return False
    candidates = {t.strip() for t in if_none_match.split(",")}
    return "*" in candidates or etag in candidates


class DatasetCacheMiddleware(BaseHTTPMiddleware):
    """Conditional GET keyed on the loaded dataset.

    - /health, /ready           → Cache-Control: no-store
    - dataset unavailable        → no-store (a 503 must not be cached)
    - GET data path, ETag match  → 304, endpoint not called
    - GET data path, 200         → ETag + public, revalidating Cache-Control
    """

    def __init__(self, app: Any, *, fingerprint: FingerprintProvider, max_age: int = 60) -> None:
        super().__init__(app)
        self.fingerprint = fingerprint
        self.max_age = max_age

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        path = request.url.path
        if path in UNCACHED_PATHS:
            response = await call_next(request)
            response.headers["Cache-Control"] = "no-store"
            return response

        fp = self.fingerprint()
        if fp is None or request.method != "GET":
            response = await call_next(request)
            response.headers["Cache-Control"] = "no-store"
            return response

        etag = dataset_etag(fp, path, request.url.query)
        cache_control = f"public, max-age={self.max_age}, must-revalidate"

        if _etag_matches(request.headers.get("if-none-match", ""), etag):
            return Response(
                status_code=304,
                headers={"ETag": etag, "Cache-Control": cache_control},
            )

        response = await call_next(request)
        if response.status_code == 200:
            response.headers["ETag"] = etag
            response.headers["Cache-Control"] = cache_control
        else:
            response.headers["Cache-Control"] = "no-store"
        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request ID, dataset version header, hardening headers, request log."""

    def __init__(self, app: Any, *, fingerprint: FingerprintProvider) -> None:
        super().__init__(app)
        self.fingerprint = fingerprint

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id
        started = time.monotonic()

        response = await call_next(request)

        version = dataset_version(self.fingerprint())
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Dataset-Version"] = version
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        entry = {
            "event": "http_request",
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query or None,
            "status": response.status_code,
            "latency_ms": round((time.monotonic() - started) * 1000, 1),
            "dataset": version,
            "request_id": request_id,
        }
        level = logging.ERROR if response.status_code >= 500 else (
            logging.WARNING if response.status_code >= 400 else logging.INFO
        )
        logger.log(level, json.dumps(entry))
        return response
