"""
Logging for littr.

Loggers carry an immutable context mapping. ``with_context`` returns a new
logger with the merged context instead of mutating a shared one, so the same
logger can be used from concurrent requests.
"""

import logging
import sys
import time
import uuid
from types import MappingProxyType
from typing import Any, Mapping, Optional

from fastapi import Request

LOGGER_NAME = "uvicorn.error"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


def _format_value(value: Any) -> str:
    text = str(value)
    if text == "" or any(c.isspace() for c in text) or "=" in text:
        return '"' + text.replace('"', '\\"') + '"'
    return text


def format_context(ctx: Mapping[str, Any]) -> str:
    """Render a context as sorted ``key=value`` pairs."""
    return " ".join(f"{k}={_format_value(v)}" for k, v in sorted(ctx.items()))


class ContextLogger(logging.LoggerAdapter):
    """LoggerAdapter appending a read-only context to every record."""

    def __init__(self, logger: logging.Logger, context: Optional[Mapping[str, Any]] = None):
        super().__init__(logger, MappingProxyType(dict(context or {})))

    @property
    def context(self) -> Mapping[str, Any]:
        return self.extra

    def with_context(self, **ctx: Any) -> "ContextLogger":
        merged = dict(self.extra)
        merged.update(ctx)
        return ContextLogger(self.logger, merged)

    def process(self, msg, kwargs):
        ctx = dict(self.extra)
        ctx.update(kwargs.pop("context", None) or {})
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = MappingProxyType(ctx)
        kwargs["extra"] = extra
        if ctx:
            msg = f"{msg} {format_context(ctx)}" if msg else format_context(ctx)
        return msg, kwargs


def get_logger(name: str = LOGGER_NAME, **ctx: Any) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), ctx)


def _configure(level: int) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger(LOGGER_NAME).setLevel(level)


def dev(level: str | int = logging.DEBUG) -> ContextLogger:
    """Verbose logging to stdout."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.DEBUG
    _configure(level)
    return get_logger()


def prod() -> ContextLogger:
    """Warnings and above to stdout."""
    _configure(logging.WARNING)
    return get_logger()


def request_context(request: Request, request_id: str) -> dict[str, Any]:
    return {
        "met": request.method,
        "host": request.headers.get("host", ""),
        "uri": request.url.path + (f"?{request.url.query}" if request.url.query else ""),
        "proto": f"HTTP/{request.scope.get('http_version', '1.1')}",
        "https": request.url.scheme == "https",
        "id": request_id,
    }


def request_logger(log: ContextLogger, show_headers: bool = False):
    """Build an http middleware writing one log line per request."""

    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id
        entry = log.with_context(**request_context(request, request_id))
        if show_headers:
            for name, value in request.headers.items():
                entry.debug(f"{name}: {value}")

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            entry.with_context(duration=f"{time.perf_counter() - start:.6f}s").critical("", exc_info=True)
            raise

        elapsed = time.perf_counter() - start
        response.headers["X-Request-Id"] = request_id
        done = entry.with_context(
            duration=f"{elapsed:.6f}s",
            length=response.headers.get("content-length", 0),
            status=response.status_code,
        )
        if response.status_code >= 400:
            done.warning("FAIL")
        else:
            done.info("OK")
        return response

    return log_requests
