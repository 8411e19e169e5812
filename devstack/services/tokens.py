"""Issue and consume single-use email verification and password reset tokens."""

import secrets
import uuid
from datetime import timedelta

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from devstack.database import as_utc, utcnow
from devstack.exceptions import TokenExpiredError, TokenNotFoundError
from devstack.models import AuthToken, TokenPurpose, User

logger = structlog.get_logger(__name__)

TOKEN_BYTES = 32

DEFAULT_TTL: dict[TokenPurpose, timedelta | None] = {
    TokenPurpose.EMAIL_VERIFICATION: None,
    TokenPurpose.PASSWORD_RESET: timedelta(hours=1),
}

_DEFAULT = object()


class TokenService:
    """Token issuer.

    Callers run ``consume`` inside the request transaction and apply the
    state change the token authorizes before that transaction commits, so
    the deletion and the change land together or not at all.
    """

    async def issue(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        purpose: TokenPurpose,
        ttl: timedelta | None | object = _DEFAULT,
    ) -> str:
        """Create a token, replacing any earlier token of the same purpose."""
        lifetime = DEFAULT_TTL[purpose] if ttl is _DEFAULT else ttl
        expires_at = utcnow() + lifetime if isinstance(lifetime, timedelta) else None

        await db.execute(
            delete(AuthToken).where(
                AuthToken.user_id == user_id,
                AuthToken.purpose == purpose.value,
            )
        )
        token = secrets.token_hex(TOKEN_BYTES)
        db.add(
            AuthToken(
                user_id=user_id,
                purpose=purpose.value,
                token=token,
                expires_at=expires_at,
            )
        )
        await db.flush()

        logger.info("token_issued", user_id=str(user_id), purpose=purpose.value)
        return token

    async def peek(self, db: AsyncSession, token: str, purpose: TokenPurpose) -> AuthToken:
        """Validate a token without consuming it."""
        row = await self._lookup(db, token, purpose)
        if row is None:
            raise TokenNotFoundError()
        if self._is_expired(row):
            raise TokenExpiredError()
        return row

    async def consume(self, db: AsyncSession, token: str, purpose: TokenPurpose) -> User:
        """Invalidate the token and return its owner.

        Raises TokenNotFoundError when absent or already consumed and
        TokenExpiredError when past expiry. An expired token is deleted
        and that deletion is committed before raising.
        """
        row = await self._lookup(db, token, purpose)
        if row is None:
            raise TokenNotFoundError()

        if self._is_expired(row):
            await db.execute(delete(AuthToken).where(AuthToken.id == row.id))
            await db.commit()
            logger.info("token_expired", user_id=str(row.user_id), purpose=purpose.value)
            raise TokenExpiredError()

        # Guarded delete: a concurrent consumer that already removed the row wins
        result = await db.execute(delete(AuthToken).where(AuthToken.id == row.id))
        if result.rowcount != 1:
            raise TokenNotFoundError()

        user = await db.get(User, row.user_id)
        if user is None:
            raise TokenNotFoundError()

        logger.info("token_consumed", user_id=str(user.id), purpose=purpose.value)
        return user

    async def revoke_all(self, db: AsyncSession, user_id: uuid.UUID, purpose: TokenPurpose) -> None:
        await db.execute(
            delete(AuthToken).where(
                AuthToken.user_id == user_id,
                AuthToken.purpose == purpose.value,
            )
        )

    async def _lookup(
        self, db: AsyncSession, token: str, purpose: TokenPurpose
    ) -> AuthToken | None:
        result = await db.execute(
            select(AuthToken).where(
                AuthToken.token == token,
                AuthToken.purpose == purpose.value,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _is_expired(row: AuthToken) -> bool:
        return row.expires_at is not None and as_utc(row.expires_at) <= utcnow()


# Singleton instance
token_service = TokenService()
