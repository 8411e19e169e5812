"""FastAPI application factory and main entrypoint."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from devstack import __version__
from devstack.config import get_settings
from devstack.exceptions import DevStackError
from devstack.logging import setup_logging
from devstack.ratelimit import build_rate_limit_store
from devstack.services.analytics import AnalyticsRecorder

# Initialize logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    from devstack.sentry import init_sentry

    settings = get_settings()
    logger.info(
        "Starting DevStack Link API",
        env=settings.env,
        debug=settings.debug,
        version=__version__,
    )
    init_sentry()

    # Tests may attach their own instances before startup
    if getattr(app.state, "rate_limit_store", None) is None:
        app.state.rate_limit_store = build_rate_limit_store(
            settings.rate_limit_backend,
            str(settings.redis_url) if settings.redis_url else None,
        )
    if getattr(app.state, "analytics", None) is None:
        app.state.analytics = AnalyticsRecorder()

    yield

    logger.info("Shutting down DevStack Link API", pending_analytics=app.state.analytics.pending)
    await app.state.analytics.drain()
    await app.state.rate_limit_store.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="DevStack Link",
        description="Link-in-bio portfolios for developers",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Middleware (order matters - first added = last executed)
    # CORS must be last (first to process)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from devstack.metrics import MetricsMiddleware
    from devstack.middleware import (
        LoggingMiddleware,
        RequestIDMiddleware,
        SecurityHeadersMiddleware,
    )

    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Uploaded images
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.upload_url_prefix,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    # Register routers
    from devstack.routers import health, v1, web

    app.include_router(health.router)
    app.include_router(web.router)
    app.include_router(v1.router, prefix="/v1")

    return app


_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: "authentication_error",
    status.HTTP_403_FORBIDDEN: "authorization_error",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def _error_content(code: str, message: str, details: dict[str, Any] | None = None) -> dict:
    content: dict[str, Any] = {"error": message, "code": code}
    if details:
        content["details"] = details
    return content


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(DevStackError)
    async def devstack_error_handler(request: Request, exc: DevStackError) -> ORJSONResponse:
        """Handle application exceptions."""
        logger.warning(
            "application_error",
            error_code=exc.code,
            message=exc.message,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_content(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle Pydantic validation errors as 400s."""
        errors = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])[1:]),
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
            for err in exc.errors()
        ]
        logger.warning("validation_error", path=request.url.path, errors=errors)
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_content("validation_error", "Validation failed", {"errors": errors}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
        """Re-shape framework and fastapi-users HTTP errors into the error envelope."""
        detail = exc.detail
        if isinstance(detail, dict):
            code = str(detail.get("code", "http_error")).lower()
            message = str(detail.get("reason", code))
        elif isinstance(detail, str) and detail.isupper():
            # fastapi-users error codes, e.g. LOGIN_BAD_CREDENTIALS
            code = detail.lower()
            message = detail.replace("_", " ").capitalize()
        else:
            code = _STATUS_CODES.get(exc.status_code, "http_error")
            message = str(detail)
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_content(code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> ORJSONResponse:
        """Unique-constraint races surface as conflicts."""
        logger.warning("integrity_error", path=request.url.path, error=str(exc.orig))
        return ORJSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=_error_content("conflict", "Resource already exists"),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        """Handle unhandled exceptions."""
        logger.error(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_content("internal_error", "An unexpected error occurred"),
        )


app = create_app()
