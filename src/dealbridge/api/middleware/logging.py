"""structlog setup and per-request logging.

Each request gets an X-Request-ID that is bound into structlog
contextvars. Everything logged while serving it carries the id, and so
does the background reconciliation of a webhook batch: the queue re-binds
the submitting request's context in the worker. One line is logged per
request, with the route template, the webhook source and the id of the
batch it queued.
"""

from __future__ import annotations

import logging
import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.dealbridge.config import Environment, Settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def configure_structlog(settings: Settings) -> None:
    """Console output in development, JSON lines in production."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.ENVIRONMENT == Environment.production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _request_fields(request: Request) -> dict:
    """Route template plus the webhook source and queued batch, when present."""
    route = request.scope.get("route")
    fields = {
        "method": request.method,
        "route": getattr(route, "path", request.url.path),
    }
    source = request.scope.get("path_params", {}).get("source")
    if source:
        fields["source"] = source
    batch_id = getattr(request.state, "batch_id", None)
    if batch_id:
        fields["batch_id"] = batch_id
    return fields


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id and logs one line per request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.monotonic()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    "http.request_failed",
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                    **_request_fields(request),
                )
                raise

            response.headers[REQUEST_ID_HEADER] = request_id
            if response.status_code >= 500:
                log = logger.error
            elif response.status_code >= 400:
                log = logger.warning
            else:
                log = logger.info
            log(
                "http.request_completed",
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                **_request_fields(request),
            )

        return response
