"""Structured logging helpers.

Every request gets a ``request_id`` (echoed back in ``X-Request-ID``) bound to
the structlog context. Once the caller is authenticated, the routers store
``tenant_id``/``account_id``/``role`` in ``request.state.log_context`` and the
``request_completed`` line carries them, so one tenant's traffic can be
filtered out of the shared log stream.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog


_REQUEST_ID_HEADER = "X-Request-ID"
_TRACE_ID_HEADER = "X-Trace-ID"
_LOG_CONTEXT_STATE = "log_context"


def _resolve_level(level: Optional[int]) -> int:
    if level is not None:
        return level
    resolved = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    service_name: str,
    level: Optional[int] = None,
    *,
    json_logs: Optional[bool] = None,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog on top of the stdlib logging bridge.

    JSON lines by default; ``LOG_FORMAT=console`` switches to the coloured
    development renderer.
    """
    if json_logs is None:
        json_logs = os.getenv("LOG_FORMAT", "json").lower() != "console"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=_resolve_level(level),
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger().bind(service=service_name)


def client_ip(request: Request) -> Optional[str]:
    """Best guess of the caller address, honouring a proxy's X-Forwarded-For."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def bind_request_log_context(request: Request, **values: Any) -> None:
    """Attach fields to the ``request_completed`` line of this request.

    ``None`` values are dropped; keys set twice keep the last value.
    """
    current: Dict[str, Any] = getattr(request.state, _LOG_CONTEXT_STATE, None) or {}
    current.update({key: str(value) for key, value in values.items() if value is not None})
    setattr(request.state, _LOG_CONTEXT_STATE, current)


class RequestContextLogMiddleware(BaseHTTPMiddleware):
    """Bind request ids to structlog and log one line per request."""

    def __init__(self, app, *, logger: Optional[structlog.stdlib.BoundLogger] = None) -> None:
        super().__init__(app)
        self._logger = logger or structlog.get_logger()

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(_REQUEST_ID_HEADER) or str(uuid4())
        trace_id = request.headers.get(_TRACE_ID_HEADER) or request_id

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            trace_id=trace_id,
            path=request.url.path,
            method=request.method,
            client_ip=client_ip(request),
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._logger.exception("request_failed", duration_ms=self._elapsed_ms(started))
            raise
        else:
            response.headers[_REQUEST_ID_HEADER] = request_id
            fields = dict(getattr(request.state, _LOG_CONTEXT_STATE, None) or {})
            log = self._logger.info
            if response.status_code >= 500:
                log = self._logger.error
            elif response.status_code >= 400:
                log = self._logger.warning
            log(
                "request_completed",
                status_code=response.status_code,
                duration_ms=self._elapsed_ms(started),
                **fields,
            )
            return response
        finally:
            structlog.contextvars.clear_contextvars()

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
