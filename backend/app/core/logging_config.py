"""
Logging setup for DisasterSense.

Two output formats share one set of structured fields:
    • ``json``   one object per line, for log shipping in production
    • ``pretty`` coloured single-line console output for development

``LOG_FORMAT=auto`` (the default) picks ``json`` when ENVIRONMENT is
production and ``pretty`` otherwise.

Domain fields passed via ``extra=`` (origin, radius, score, provider,
timing...) are carried into both formats, together with the request
context installed by the middleware.

Usage:
    from backend.app.core.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("Located responders", extra={"radius_m": 5000, "responder_count": 4})
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from backend.app.core.config import settings

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context", default={}
)

# Attributes copied from ``extra=`` into the output, in display order
STRUCTURED_FIELDS = (
    "provider", "lat", "lon", "radius_m", "responder_count",
    "risk_score", "risk_level", "unavailable", "status_code",
    "endpoint", "duration_ms",
)

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosqlite", "asyncio")


def set_request_context(**kwargs: Any) -> None:
    """Install request-scoped fields; call with no arguments to clear."""
    _request_context.set(kwargs)


def get_request_context() -> Dict[str, Any]:
    return _request_context.get()


def _structured_fields(record: logging.LogRecord) -> List[Tuple[str, Any]]:
    return [(key, getattr(record, key)) for key in STRUCTURED_FIELDS if hasattr(record, key)]


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        ctx = get_request_context()
        if ctx:
            entry["context"] = ctx

        entry.update(_structured_fields(record))

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class PrettyFormatter(logging.Formatter):
    """``12:00:01 INFO     [a1b2c3d4] backend.app.x: message  key=value``"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        ts = self.formatTime(record, "%H:%M:%S")

        ctx = get_request_context()
        rid = f" [{ctx['request_id'][:8]}]" if ctx.get("request_id") else ""

        line = f"{color}{ts} {record.levelname:8s}{self.RESET}{rid} {record.name}: {record.getMessage()}"

        fields = _structured_fields(record)
        if fields:
            rendered = " ".join(
                f"{k}={v:.1f}" if isinstance(v, float) else f"{k}={v}" for k, v in fields
            )
            line += f"  {self.DIM}{rendered}{self.RESET}"

        if record.exc_info and record.exc_info[1]:
            line += f"\n  {type(record.exc_info[1]).__name__}: {record.exc_info[1]}"

        return line


def _select_formatter() -> logging.Formatter:
    fmt = settings.LOG_FORMAT.lower()
    if fmt == "json" or (fmt == "auto" and settings.is_production):
        return JSONFormatter()
    return PrettyFormatter()


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for handler in list(root.handlers):
        if getattr(handler, "_disastersense", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_select_formatter())
    handler._disastersense = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
