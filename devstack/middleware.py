"""Request tracing, access logging and response security headers."""

from __future__ import annotations

import re
import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from devstack.services.fingerprint import client_ip

# Type alias for call_next function
CallNext = Callable[[Request], Awaitable[Response]]

logger = structlog.get_logger()

# Accepted inbound request ids; anything else is replaced
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# JSON API: nothing to load, nothing to frame
API_CSP = "default-src 'none'; frame-ancestors 'none'"

# Public profile page: inline style and click-tracking script, uploaded and remote images
PAGE_CSP = (
    "default-src 'self'; img-src 'self' https: data:; style-src 'self' 'unsafe-inline'; "
    "script-src 'self' 'unsafe-inline'; connect-src 'self'; frame-ancestors 'none'"
)


def incoming_request_id(request: Request) -> str:
    """Reuse a well-formed ``X-Request-ID`` from the caller, else mint one."""
    value = request.headers.get("X-Request-ID", "")
    if _REQUEST_ID_RE.match(value):
        return value
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the structlog context and echo it back."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = incoming_request_id(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """One access log line per request.

    Server errors log at error level, client errors at warning.
    """

    # Probes, metrics scrapes and uploaded files are not logged
    QUIET_PATHS = {"/health", "/ready", "/metrics"}
    QUIET_PREFIXES = ("/uploads/",)

    def _is_quiet(self, path: str) -> bool:
        return path in self.QUIET_PATHS or path.startswith(self.QUIET_PREFIXES)

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        if self._is_quiet(path):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            client_ip=client_ip(request),
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to responses."""

    def __init__(self, app: object, hsts: bool = False) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self.hsts = hsts

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        path = request.url.path
        if path.startswith("/v1/"):
            response.headers["Content-Security-Policy"] = API_CSP
        elif path.startswith("/profile/"):
            response.headers["Content-Security-Policy"] = PAGE_CSP

        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
