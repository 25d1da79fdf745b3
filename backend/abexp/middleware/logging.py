"""Structured request logging.

Every request gets a trace id. The experiment and device it concerns are
bound to the structlog context, so the service's own events
(experiment_finished, device_experiments_resolved...) can be joined with
the request that caused them.
"""
import logging
import re
import time
import uuid
from typing import Callable, Dict

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

DEVICE_ID_HEADER = "x-device-id"

# /api/experiments/{experiment_id}
EXPERIMENT_PATH = re.compile(r"^/api/experiments/(?P<experiment_id>[^/]+)/?$")


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog to emit JSON lines at the given level."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False
    )


logger = structlog.get_logger()


def request_log_context(method: str, path: str, headers) -> Dict[str, str]:
    """
    Experiment and device identifiers a request refers to.

    Values are logged as sent; validation happens in the handlers.
    """
    context = {}

    device_id = headers.get(DEVICE_ID_HEADER)
    if device_id:
        context["device_id"] = device_id

    match = EXPERIMENT_PATH.match(path)
    if match:
        context["experiment_id"] = match.group("experiment_id")
        if method == "PATCH":
            context["action"] = "finish_experiment"

    return context


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind a trace id and the request's experiment context, log the outcome."""

    async def dispatch(self, request: Request, call_next: Callable):
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id,
            **request_log_context(request.method, request.url.path, request.headers)
        )

        logger.info("request_started", method=request.method, path=request.url.path)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=int((time.perf_counter() - start_time) * 1000)
            )
            raise

        route = request.scope.get("route")
        logger.info(
            "request_completed",
            route=getattr(route, "path", None),
            status_code=response.status_code,
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


def get_logger():
    """Get configured structured logger."""
    return logger
