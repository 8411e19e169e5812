"""Sentry error tracking integration."""

from __future__ import annotations

import re

import sentry_sdk
import structlog
from fastapi import HTTPException
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from devstack import __version__
from devstack.config import get_settings
from devstack.exceptions import DevStackError

logger = structlog.get_logger(__name__)

_sentry_initialized = False

_SENSITIVE_HEADERS = ("authorization", "cookie", "x-api-key")
_QUIET_TRANSACTIONS = ("/health", "/ready", "/metrics")
_TOKEN_PARAM_RE = re.compile(r"(\btoken=)[^&]*")


def init_sentry() -> bool:
    """Initialize Sentry SDK if configured.

    Returns True if Sentry was initialized, False otherwise.
    """
    global _sentry_initialized

    settings = get_settings()

    if not settings.sentry_dsn:
        logger.info("sentry_dsn_not_configured")
        return False

    if _sentry_initialized:
        return True

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.env,
        release=f"devstack@{__version__}",
        sample_rate=1.0,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            HttpxIntegration(),
            AsyncioIntegration(),
            LoggingIntegration(level=None, event_level=None),
        ],
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
    )

    _sentry_initialized = True
    logger.info("sentry_initialized", environment=settings.env)
    return True


def _before_send(event: dict, hint: dict) -> dict | None:
    """Drop client errors and scrub credentials."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        # 4xx are user errors
        if isinstance(exc_value, HTTPException) and 400 <= exc_value.status_code < 500:
            return None
        if isinstance(exc_value, DevStackError) and exc_value.status_code < 500:
            return None

    headers = event.get("request", {}).get("headers")
    if headers:
        for header in _SENSITIVE_HEADERS:
            if header in headers:
                headers[header] = "[Filtered]"

    # Verification and reset links carry single-use tokens in the query string
    request = event.get("request", {})
    query = request.get("query_string")
    if isinstance(query, str) and "token=" in query:
        request["query_string"] = _TOKEN_PARAM_RE.sub(r"\1[Filtered]", query)

    return event


def _before_send_transaction(event: dict, hint: dict) -> dict | None:  # noqa: ARG001
    """Filter out probe transactions."""
    if event.get("transaction") in _QUIET_TRANSACTIONS:
        return None
    return event
