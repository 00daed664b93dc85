"""
Application errors and the FastAPI handlers that render them.

Every error that reaches a client uses the same envelope:

    {"error": {"code": "LOCATOR_UNAVAILABLE", "message": "...", "status": 503}}

``details`` is added when the error carries any; ``path`` and ``method``
are added outside production.

Usage:
    from backend.app.core.errors import LocatorUnavailable, NotFoundError

    raise NotFoundError("EmergencyReport", id=42)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class DisasterSenseError(Exception):
    """Base class; subclasses fix the HTTP status and machine-readable code."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}


class NotFoundError(DisasterSenseError):
    """A stored record does not exist (404)."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, **identifiers: Any):
        super().__init__(f"{resource} not found", {"resource": resource, **identifiers})


class ExternalServiceError(DisasterSenseError):
    """A signal provider (weather, seismic feed, chat model) failed (502)."""

    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: str = "", **details: Any):
        super().__init__(f"External service '{service}' failed: {message}", {"service": service, **details})
        self.service = service


class LocatorUnavailable(DisasterSenseError):
    """
    The responder lookup could not produce a complete result (503).

    Raised for transport failures, non-success responses, timeouts and
    malformed provider payloads alike. ``reason`` is one of ``timeout``,
    ``transport`` or ``malformed`` and is logged, never returned to the
    caller; the underlying cause is chained via ``raise ... from``.
    """

    status_code = 503
    error_code = "LOCATOR_UNAVAILABLE"

    def __init__(self, reason: str = ""):
        super().__init__("Emergency services lookup temporarily unavailable")
        self.reason = reason


# ═══════════════════════════════════════════════════════════════════════════
# Envelope
# ═══════════════════════════════════════════════════════════════════════════

def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    error: Dict[str, Any] = {"code": error_code, "message": message, "status": status_code}
    if details:
        error["details"] = details
    if not settings.is_production:
        error["path"] = request.url.path
        error["method"] = request.method
    return JSONResponse(status_code=status_code, content={"error": error})


def _validation_details(exc: RequestValidationError) -> list:
    # pydantic error contexts can hold exception objects; keep the JSON-safe parts
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


_HTTP_CODES = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Install handlers so every failure leaves in the same envelope."""

    @app.exception_handler(DisasterSenseError)
    async def handle_app_error(request: Request, exc: DisasterSenseError):
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        logger.log(
            level,
            "%s on %s: %s | details=%s reason=%s cause=%r",
            exc.error_code, request.url.path, exc.message, exc.details,
            getattr(exc, "reason", "-"), exc.__cause__,
            extra={"status_code": exc.status_code, "endpoint": request.url.path},
        )
        return error_response(request, exc.status_code, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        logger.warning("Rejected input on %s: %s", request.url.path, details)
        return error_response(request, 422, "VALIDATION_ERROR", "Invalid request parameters", details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return error_response(request, exc.status_code, code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s", request.url.path)
        message = str(exc) if settings.DEBUG else "Internal server error"
        return error_response(request, 500, "INTERNAL_ERROR", message)
