"""
Request middleware: correlation IDs, timing and access logging.

Every response carries ``X-Request-ID`` (echoed when the caller sent one)
and ``X-Process-Time``. Requests that carry a location in their query
string (``lat``/``lng``) have it copied into the log context so provider
and locator logs can be traced back to the origin being queried.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.logging_config import set_request_context

logger = logging.getLogger(__name__)

# Probes and docs are not access-logged
_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health/live")


def _request_context(request: Request, request_id: str) -> Dict[str, Any]:
    ctx: Dict[str, Any] = {
        "request_id": request_id,
        "client_ip": request.client.host if request.client else "unknown",
        "endpoint": request.url.path,
        "method": request.method,
    }
    lat = request.query_params.get("lat")
    lng = request.query_params.get("lng")
    if lat is not None and lng is not None:
        ctx["origin"] = f"{lat},{lng}"
    return ctx


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Time each request, tag it with a correlation ID and log the outcome."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        ctx = _request_context(request, request_id)
        set_request_context(**ctx)
        path = ctx["endpoint"]

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception(
                "%s %s crashed after %.1fms",
                request.method, path, elapsed,
                extra={"duration_ms": elapsed, "status_code": 500, "endpoint": path},
            )
            set_request_context()
            raise

        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.1f}ms"

        if not path.startswith(_QUIET_PREFIXES):
            level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                level,
                "%s %s -> %d (%.1fms)",
                request.method, path, response.status_code, elapsed,
                extra={
                    "duration_ms": elapsed,
                    "status_code": response.status_code,
                    "endpoint": path,
                },
            )

        set_request_context()
        return response
