"""Authentication endpoints: login, registration, verification, password reset."""

from fastapi import APIRouter, Depends, Query, status

from devstack.auth import OptionalUser, UserManagerDep, auth_backend, cookie_backend, fastapi_users
from devstack.database import DbSession
from devstack.deps import MailerDep
from devstack.ratelimit import RateLimit
from devstack.schemas.responses import MessageResponse, SuccessResponse
from devstack.schemas.user import (
    AuthStatus,
    EmailRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenCheck,
)
from devstack.services.account_service import (
    FORGOT_MESSAGE,
    REGISTER_MESSAGE,
    RESEND_MESSAGE,
    account_service,
)

router = APIRouter()


def _include_auth_router(auth_router: APIRouter, prefix: str) -> None:
    """Mount a fastapi-users auth router; only its login route is throttled."""
    login = APIRouter()
    logout = APIRouter()
    for route in auth_router.routes:
        target = login if getattr(route, "path", "") == "/login" else logout
        target.routes.append(route)
    router.include_router(login, prefix=prefix, dependencies=[Depends(RateLimit("login", 5))])
    router.include_router(logout, prefix=prefix)


# Bearer login for API clients: /auth/login, /auth/logout
_include_auth_router(fastapi_users.get_auth_router(auth_backend, requires_verification=True), "")

# Cookie login for the browser: /auth/session/login, /auth/session/logout
_include_auth_router(
    fastapi_users.get_auth_router(cookie_backend, requires_verification=True), "/session"
)


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("register", 5))],
    summary="Create an account",
)
async def register(
    data: RegisterRequest,
    db: DbSession,
    user_manager: UserManagerDep,
    mailer: MailerDep,
) -> MessageResponse:
    """
    Register a new account and email a verification link.

    The response is identical whether or not the email was already registered.
    """
    await account_service.register(db, user_manager, data, mailer)
    return MessageResponse(message=REGISTER_MESSAGE)


@router.get("/verify-email", response_model=MessageResponse, summary="Verify email address")
async def verify_email(
    db: DbSession,
    token: str = Query(..., min_length=1),
) -> MessageResponse:
    """Consume a verification token. Each token works once."""
    await account_service.verify_email(db, token)
    return MessageResponse(message="Email verified successfully. You can now sign in.")


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(RateLimit("resend", 3))],
    summary="Resend verification email",
)
async def resend_verification(
    data: EmailRequest,
    db: DbSession,
    mailer: MailerDep,
) -> MessageResponse:
    await account_service.resend_verification(db, data.email, mailer)
    return MessageResponse(message=RESEND_MESSAGE)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(RateLimit("password-reset", 3))],
    summary="Request a password reset email",
)
async def forgot_password(
    data: EmailRequest,
    db: DbSession,
    mailer: MailerDep,
) -> MessageResponse:
    """Always answers with the same message so account existence is not revealed."""
    await account_service.forgot_password(db, data.email, mailer)
    return MessageResponse(message=FORGOT_MESSAGE)


@router.get(
    "/reset-password",
    response_model=SuccessResponse[TokenCheck],
    summary="Check a password reset token",
)
async def check_reset_token(
    db: DbSession,
    token: str = Query(..., min_length=1),
) -> SuccessResponse[TokenCheck]:
    """Validate a reset token without consuming it."""
    return SuccessResponse(data=await account_service.check_reset_token(db, token))


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password")
async def reset_password(
    data: ResetPasswordRequest,
    db: DbSession,
    user_manager: UserManagerDep,
) -> MessageResponse:
    await account_service.reset_password(db, user_manager, data.token, data.password)
    return MessageResponse(message="Password reset successfully. You can now sign in.")


@router.get("/status", response_model=SuccessResponse[AuthStatus], summary="Session status")
async def auth_status(db: DbSession, user: OptionalUser) -> SuccessResponse[AuthStatus]:
    """Who is signed in, with project/view counts and profile completeness."""
    if user is None:
        return SuccessResponse(data=AuthStatus(authenticated=False))
    return SuccessResponse(data=await account_service.auth_status(db, user))
