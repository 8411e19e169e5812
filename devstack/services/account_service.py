"""Registration, email verification, password reset, profile and onboarding."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi_users import exceptions as fu_exceptions
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from devstack.database import utcnow
from devstack.exceptions import ConflictError, ValidationError
from devstack.models import AuthToken, ProfileView, Project, TokenPurpose, User
from devstack.schemas.normalize import normalize_optional_fields
from devstack.schemas.user import (
    AuthStatus,
    OnboardingRequest,
    ProfileUpdate,
    RegisterRequest,
    TokenCheck,
    UserCreate,
    UserRead,
    is_reserved_username,
)
from devstack.services.mail import Mailer
from devstack.services.tokens import token_service

if TYPE_CHECKING:
    from devstack.auth import UserManager

logger = structlog.get_logger(__name__)

REGISTER_MESSAGE = "Registration successful. Please check your email to verify your account."
RESEND_MESSAGE = (
    "If an unverified account exists for that email, a new verification link has been sent."
)
FORGOT_MESSAGE = "If an account exists for that email, a password reset link has been sent."

# Fields counted towards profile completeness
_COMPLETENESS_FIELDS = ("display_name", "job_title", "bio", "location", "avatar_url")
_SOCIAL_FIELDS = ("website", "github_url", "linkedin_url", "twitter_url")

# Non-nullable columns; an explicit null leaves them unchanged
_REQUIRED_PROFILE_FIELDS = frozenset(
    {"theme_color", "template_id", "theme_id", "is_public", "looking_for_work"}
)


def profile_completeness(user: User) -> int:
    """Percentage of the profile checklist that is filled in."""
    checks = [bool(getattr(user, f)) for f in _COMPLETENESS_FIELDS]
    checks.append(any(getattr(user, f) for f in _SOCIAL_FIELDS))
    return round(sum(checks) / len(checks) * 100)


class AccountService:
    """Service for account lifecycle operations."""

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_username(self, db: AsyncSession, username: str) -> User | None:
        result = await db.execute(select(User).where(User.username == username.lower()))
        return result.scalar_one_or_none()

    async def register(
        self,
        db: AsyncSession,
        user_manager: UserManager,
        data: RegisterRequest,
        mailer: Mailer,
    ) -> User | None:
        """Create an unverified account and send the verification email.

        Returns None when the email is already registered; callers must
        answer exactly as for a new account.
        """
        if is_reserved_username(data.username):
            raise ValidationError("This username is reserved", field="username")

        if await self.get_by_email(db, data.email):
            logger.info("register_existing_email")
            return None

        if await self.get_by_username(db, data.username):
            raise ConflictError("This username is already taken", field="username")

        try:
            user = await user_manager.create(
                UserCreate(
                    email=data.email,
                    password=data.password,
                    username=data.username,
                    display_name=data.display_name,
                ),
                safe=True,
            )
        except fu_exceptions.UserAlreadyExists:
            return None
        except fu_exceptions.InvalidPasswordException as e:
            raise ValidationError(str(e.reason), field="password") from e

        token = await token_service.issue(db, user.id, TokenPurpose.EMAIL_VERIFICATION)
        await mailer.send_verification(user.email, user.display_name or user.username, token)
        return user

    async def verify_email(self, db: AsyncSession, token: str) -> User:
        """Consume a verification token and mark the email verified."""
        user = await token_service.consume(db, token, TokenPurpose.EMAIL_VERIFICATION)
        user.email_verified_at = utcnow()
        user.is_verified = True
        await db.flush()
        logger.info("email_verified", user_id=str(user.id))
        return user

    async def resend_verification(self, db: AsyncSession, email: str, mailer: Mailer) -> None:
        user = await self.get_by_email(db, email)
        if user is None or user.is_verified or not user.is_active:
            return
        token = await token_service.issue(db, user.id, TokenPurpose.EMAIL_VERIFICATION)
        await mailer.send_verification(user.email, user.display_name or user.username, token)

    async def forgot_password(self, db: AsyncSession, email: str, mailer: Mailer) -> None:
        user = await self.get_by_email(db, email)
        if user is None or not user.is_active or not user.is_verified:
            return
        token = await token_service.issue(db, user.id, TokenPurpose.PASSWORD_RESET)
        await mailer.send_password_reset(user.email, user.display_name or user.username, token)

    async def check_reset_token(self, db: AsyncSession, token: str) -> TokenCheck:
        row: AuthToken = await token_service.peek(db, token, TokenPurpose.PASSWORD_RESET)
        user = await db.get(User, row.user_id)
        return TokenCheck(valid=True, email=user.email if user else None)

    async def reset_password(
        self,
        db: AsyncSession,
        user_manager: UserManager,
        token: str,
        password: str,
    ) -> User:
        """Consume a reset token and store the new password hash."""
        user = await token_service.consume(db, token, TokenPurpose.PASSWORD_RESET)
        try:
            await user_manager.validate_password(password, user)
        except fu_exceptions.InvalidPasswordException as e:
            raise ValidationError(str(e.reason), field="password") from e

        user.hashed_password = user_manager.password_helper.hash(password)
        await db.flush()
        logger.info("password_reset", user_id=str(user.id))
        return user

    async def update_profile(self, db: AsyncSession, user: User, data: ProfileUpdate) -> User:
        """Apply a partial profile update."""
        update_data = normalize_optional_fields(data.model_dump(exclude_unset=True))

        username = update_data.get("username")
        if username is None:
            update_data.pop("username", None)
        elif username != user.username:
            if is_reserved_username(username):
                raise ValidationError("This username is reserved", field="username")
            if await self.get_by_username(db, username):
                raise ConflictError("This username is already taken", field="username")

        for field, value in update_data.items():
            if value is None and field in _REQUIRED_PROFILE_FIELDS:
                continue
            setattr(user, field, value)

        await db.flush()
        return user

    async def complete_onboarding(
        self,
        db: AsyncSession,
        user: User,
        data: OnboardingRequest,
    ) -> User:
        """Store onboarding answers and publish the profile."""
        fields = {
            **data.basic_info.model_dump(),
            **data.social_links.model_dump(),
        }
        for field, value in normalize_optional_fields(fields).items():
            setattr(user, field, value)

        user.template_id = data.selected_template
        user.theme_id = data.selected_theme
        user.looking_for_work = data.looking_for_work
        user.onboarding_completed = True
        user.is_public = True

        await db.flush()
        logger.info("onboarding_completed", user_id=str(user.id))
        return user

    async def auth_status(self, db: AsyncSession, user: User) -> AuthStatus:
        project_count = await db.scalar(
            select(func.count()).select_from(Project).where(Project.user_id == user.id)
        )
        total_views = await db.scalar(
            select(func.count()).select_from(ProfileView).where(ProfileView.user_id == user.id)
        )
        return AuthStatus(
            authenticated=True,
            user=UserRead.model_validate(user, from_attributes=True),
            project_count=project_count or 0,
            total_views=total_views or 0,
            has_completed_profile=bool(user.bio and user.job_title),
            profile_completeness=profile_completeness(user),
        )


# Singleton instance
account_service = AccountService()
