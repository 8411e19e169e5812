"""Authentication configuration with FastAPI-Users."""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
import structlog
from fastapi import Depends, Request, Response
from fastapi_users import BaseUserManager, FastAPIUsers, InvalidPasswordException, UUIDIDMixin
from fastapi_users.authentication import (
    AuthenticationBackend,
    BearerTransport,
    CookieTransport,
    JWTStrategy,
)
from fastapi_users.db import SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from devstack.config import get_settings
from devstack.database import get_db, utcnow
from devstack.models.user import User
from devstack.schemas.user import password_problems

logger = structlog.get_logger(__name__)


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    """User manager for FastAPI-Users.

    Verification and reset tokens are issued by ``TokenService``; the
    manager handles hashing, password rules and login bookkeeping.
    """

    reset_password_token_secret = get_settings().jwt_secret
    verification_token_secret = get_settings().jwt_secret

    async def validate_password(self, password: str, user: object) -> None:
        problems = password_problems(password)
        if problems:
            raise InvalidPasswordException(reason=problems[0])

    async def on_after_register(self, user: User, request: Request | None = None) -> None:
        logger.info("user_registered", user_id=str(user.id), username=user.username)

    async def on_after_login(
        self,
        user: User,
        request: Request | None = None,
        response: Response | None = None,
    ) -> None:
        await self.user_db.update(user, {"last_login_at": utcnow()})
        logger.info("user_logged_in", user_id=str(user.id))


async def get_user_db(
    session: Annotated[AsyncSession, Depends(get_db)],
) -> AsyncGenerator[SQLAlchemyUserDatabase[User, uuid.UUID], None]:
    """Get SQLAlchemy user database."""
    yield SQLAlchemyUserDatabase(session, User)


async def get_user_manager(
    user_db: Annotated[SQLAlchemyUserDatabase[User, uuid.UUID], Depends(get_user_db)],
) -> AsyncGenerator[UserManager, None]:
    """Get user manager instance."""
    yield UserManager(user_db)


UserManagerDep = Annotated[UserManager, Depends(get_user_manager)]

# JWT Bearer transport for API clients
bearer_transport = BearerTransport(tokenUrl="/v1/auth/login")

# Session cookie for the browser
cookie_transport = CookieTransport(
    cookie_name=get_settings().session_cookie_name,
    cookie_max_age=get_settings().jwt_expire_minutes * 60,
    cookie_secure=get_settings().is_production,
    cookie_samesite="lax",
)


def get_jwt_strategy() -> JWTStrategy[User, uuid.UUID]:
    """Get JWT strategy with settings."""
    settings = get_settings()
    return JWTStrategy(
        secret=settings.jwt_secret,
        lifetime_seconds=settings.jwt_expire_minutes * 60,
        algorithm=settings.jwt_algorithm,
    )


# Authentication backends
auth_backend = AuthenticationBackend(
    name="jwt",
    transport=bearer_transport,
    get_strategy=get_jwt_strategy,
)

cookie_backend = AuthenticationBackend(
    name="cookie",
    transport=cookie_transport,
    get_strategy=get_jwt_strategy,
)

# FastAPI Users instance
fastapi_users = FastAPIUsers[User, uuid.UUID](get_user_manager, [auth_backend, cookie_backend])

# Dependencies for route protection
current_active_user = fastapi_users.current_user(active=True)
current_user_optional = fastapi_users.current_user(active=True, optional=True)

# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(current_active_user)]
OptionalUser = Annotated[User | None, Depends(current_user_optional)]


def create_access_token(user_id: str) -> str:
    """Create a JWT access token accepted by both backends."""
    settings = get_settings()
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": user_id,
        "exp": expire,
        "aud": "fastapi-users:auth",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
