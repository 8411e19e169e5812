"""Structured logging configuration.

Every event carries the service name and environment. Secrets that can
reach an event dict (passwords, auth tokens, bearer headers) are masked
before rendering; visitor IPs are logged as-is only outside production.
"""

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from devstack.config import get_settings

REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "new_password",
        "confirm_password",
        "hashed_password",
        "token",
        "access_token",
        "authorization",
        "cookie",
        "jwt_secret",
        "resend_api_key",
    }
)

# Libraries that log every request or statement at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "aiosqlite", "asyncio")


def redact_sensitive(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Mask sensitive keys, including one level inside nested mappings."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, Mapping):
            event_dict[key] = {
                k: REDACTED if str(k).lower() in SENSITIVE_KEYS else v for k, v in value.items()
            }
    return event_dict


def _drop_ip(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.pop("ip_address", None)
    event_dict.pop("client_ip", None)
    return event_dict


def setup_logging() -> None:
    """Configure structlog and route stdlib logging to stdout."""
    settings = get_settings()
    app_context = {"service": settings.app_name, "env": settings.env}

    def add_app_context(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        # Request middleware clears contextvars, so this is added per event
        for key, value in app_context.items():
            event_dict.setdefault(key, value)
        return event_dict

    log_level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        redact_sensitive,
    ]
    if settings.is_production:
        processors += [
            _drop_ip,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(
                colors=not settings.is_test,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(log_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # SQL echo is controlled by DEBUG on the engine
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )
