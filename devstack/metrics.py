"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import re
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

# Request metrics
REQUEST_COUNT = Counter(
    "devstack_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "devstack_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

REQUEST_IN_PROGRESS = Gauge(
    "devstack_http_requests_in_progress",
    "HTTP requests currently being processed",
    ["method", "endpoint"],
)

# Error metrics
ERROR_COUNT = Counter(
    "devstack_errors_total",
    "Total application errors",
    ["error_type", "endpoint"],
)

# Business metrics
PROFILE_VIEWS_TOTAL = Counter(
    "devstack_profile_views_total",
    "Profile views by outcome",
    ["outcome"],
)

PROJECT_CLICKS_TOTAL = Counter(
    "devstack_project_clicks_total",
    "Project clicks recorded",
    ["click_type"],
)

ANALYTICS_FAILURES_TOTAL = Counter(
    "devstack_analytics_failures_total",
    "Analytics writes that failed and were dropped",
    ["event"],
)

RATE_LIMITED_TOTAL = Counter(
    "devstack_rate_limited_total",
    "Requests rejected by the rate limiter",
    ["action"],
)

EMAILS_TOTAL = Counter(
    "devstack_emails_total",
    "Transactional emails by kind and status",
    ["kind", "status"],
)

EMAIL_CAPTURES_TOTAL = Counter("devstack_email_captures_total", "Visitor email captures")


# Path segments that would explode label cardinality
_PATH_PLACEHOLDERS = [
    (
        re.compile(
            r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
        ),
        "{id}",
    ),
    (re.compile(r"^/profile/[^/]+"), "/profile/{username}"),
    (re.compile(r"^/v1/public/profiles/[^/]+"), "/v1/public/profiles/{username}"),
]


def get_metrics() -> bytes:
    """Render the default registry in Prometheus text format."""
    return bytes(generate_latest())


def get_metrics_content_type() -> str:
    return str(CONTENT_TYPE_LATEST)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count, time and track in-flight requests per method and endpoint.

    Uploaded files and the probe/scrape endpoints are not measured.
    """

    EXCLUDE_PATHS = {"/metrics", "/health", "/ready", "/favicon.ico"}

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if path in self.EXCLUDE_PATHS or path.startswith("/uploads/"):
            return await call_next(request)

        labels = {"method": request.method, "endpoint": self._normalize_path(path)}
        in_progress = REQUEST_IN_PROGRESS.labels(**labels)
        in_progress.inc()
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            ERROR_COUNT.labels(error_type=type(e).__name__, endpoint=labels["endpoint"]).inc()
            raise
        finally:
            in_progress.dec()

        REQUEST_COUNT.labels(**labels, status_code=str(response.status_code)).inc()
        REQUEST_LATENCY.labels(**labels).observe(time.perf_counter() - start_time)
        return response

    def _normalize_path(self, path: str) -> str:
        for pattern, placeholder in _PATH_PLACEHOLDERS:
            path = pattern.sub(placeholder, path)
        return path


# Helper functions for recording business metrics


def record_profile_view(recorded: bool) -> None:
    """Record a profile view outcome (recorded or deduplicated)."""
    PROFILE_VIEWS_TOTAL.labels(outcome="recorded" if recorded else "deduplicated").inc()


def record_project_click(click_type: str) -> None:
    PROJECT_CLICKS_TOTAL.labels(click_type=click_type).inc()


def record_analytics_failure(event: str) -> None:
    ANALYTICS_FAILURES_TOTAL.labels(event=event).inc()


def record_rate_limited(action: str) -> None:
    RATE_LIMITED_TOTAL.labels(action=action).inc()


def record_email(kind: str, success: bool = True) -> None:
    EMAILS_TOTAL.labels(kind=kind, status="sent" if success else "failed").inc()


def record_email_capture() -> None:
    """Record an email capture conversion."""
    EMAIL_CAPTURES_TOTAL.inc()
