"""HTTP middleware for request correlation, metrics and access logging.

``RequestContextMiddleware`` must wrap ``AccessLogMiddleware`` so the access
line carries the request id.
"""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger
from .metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_FLIGHT,
    HTTP_REQUESTS_TOTAL,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

_VALID_REQUEST_ID = re.compile(r"^[a-zA-Z0-9\-]{8,128}$")

# Instance names are caller-chosen; keep them out of metric labels.
_INSTANCE_PATH = re.compile(r"^/resources/(?!plans$)[^/]+")


def route_template(path: str) -> str:
    """Map a request path to a bounded label, e.g. ``/resources/{instance}``."""
    return _INSTANCE_PATH.sub("/resources/{instance}", path)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id into the log context and echo it on the response.

    A well-formed incoming ``X-Request-ID`` (from the marketplace) is kept;
    anything else is replaced with a fresh UUID.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        rid = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        with structlog.contextvars.bound_contextvars(request_id=rid):
            response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Record HTTP metrics and write one access line per request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        method = request.method
        route = route_template(request.url.path)

        HTTP_REQUESTS_IN_FLIGHT.inc()
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        except Exception:
            logger.exception("request_failed", method=method, route=route)
            raise
        finally:
            duration = time.perf_counter() - start
            HTTP_REQUESTS_IN_FLIGHT.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=route).observe(duration)
            HTTP_REQUESTS_TOTAL.labels(method=method, path=route, status=str(status)).inc()

        log = logger.warning if status >= 500 else logger.info
        log(
            "request_completed",
            method=method,
            route=route,
            status=status,
            duration_ms=round(duration * 1000, 2),
        )
        return response
