"""Transactional email: verification and password reset.

Outside production (or without a Resend API key) messages are logged
instead of sent.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import quote

import httpx
import structlog

from devstack.config import get_settings
from devstack.metrics import record_email

logger = structlog.get_logger(__name__)


@dataclass
class MailResult:
    """Result of an email delivery attempt."""

    success: bool
    kind: str
    error: str | None = None
    message_id: str | None = None
    response_time_ms: int | None = None


@dataclass
class EmailMessage:
    """A fully composed message."""

    to: str
    subject: str
    html: str
    text: str


def compose_verification_email(to: str, name: str, token: str) -> EmailMessage:
    settings = get_settings()
    link = f"{settings.app_url}/v1/auth/verify-email?token={quote(token)}"
    return EmailMessage(
        to=to,
        subject=f"Verify your email for {settings.app_name}",
        html=(
            f"<p>Hi {name},</p>"
            f"<p>Thanks for signing up for {settings.app_name}. "
            f'Confirm your email address by clicking <a href="{link}">this link</a>.</p>'
            "<p>If you didn't create an account, you can ignore this email.</p>"
        ),
        text=(
            f"Hi {name},\n\nThanks for signing up for {settings.app_name}. "
            f"Confirm your email address by opening this link:\n\n{link}\n\n"
            "If you didn't create an account, you can ignore this email."
        ),
    )


def compose_password_reset_email(to: str, name: str, token: str) -> EmailMessage:
    settings = get_settings()
    link = f"{settings.app_url}/auth/reset-password?token={quote(token)}"
    return EmailMessage(
        to=to,
        subject=f"Reset your {settings.app_name} password",
        html=(
            f"<p>Hi {name},</p>"
            f'<p>Reset your password by clicking <a href="{link}">this link</a>. '
            f"It expires in {settings.password_reset_expire_minutes} minutes.</p>"
            "<p>If you didn't request a reset, you can ignore this email.</p>"
        ),
        text=(
            f"Hi {name},\n\nReset your password by opening this link:\n\n{link}\n\n"
            f"It expires in {settings.password_reset_expire_minutes} minutes. "
            "If you didn't request a reset, you can ignore this email."
        ),
    )


class Mailer:
    """Sends composed messages through the Resend HTTP API."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    async def send(self, message: EmailMessage, kind: str) -> MailResult:
        settings = get_settings()

        if not settings.email_enabled:
            # Bodies carry single-use links; only the envelope is logged
            logger.info("email_dev", kind=kind, recipient=message.to, subject=message.subject)
            return MailResult(success=True, kind=kind)

        start_time = datetime.now(UTC)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout or settings.email_timeout_seconds
            ) as client:
                response = await client.post(
                    settings.resend_api_url,
                    json={
                        "from": f"{settings.email_from_name} <{settings.email_from_address}>",
                        "to": [message.to],
                        "subject": message.subject,
                        "html": message.html,
                        "text": message.text,
                    },
                    headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                )
            elapsed_ms = int((datetime.now(UTC) - start_time).total_seconds() * 1000)

            if response.is_success:
                record_email(kind, success=True)
                logger.info("email_sent", kind=kind, elapsed_ms=elapsed_ms)
                return MailResult(
                    success=True,
                    kind=kind,
                    message_id=response.json().get("id"),
                    response_time_ms=elapsed_ms,
                )

            record_email(kind, success=False)
            logger.error(
                "email_failed",
                kind=kind,
                status_code=response.status_code,
                body=response.text[:200],
            )
            return MailResult(
                success=False,
                kind=kind,
                error=f"HTTP {response.status_code}",
                response_time_ms=elapsed_ms,
            )

        except httpx.HTTPError as e:
            record_email(kind, success=False)
            logger.error("email_failed", kind=kind, error=str(e))
            return MailResult(success=False, kind=kind, error=str(e))

    async def send_verification(self, to: str, name: str, token: str) -> MailResult:
        return await self.send(compose_verification_email(to, name, token), "verification")

    async def send_password_reset(self, to: str, name: str, token: str) -> MailResult:
        return await self.send(compose_password_reset_email(to, name, token), "password_reset")


mailer = Mailer()


def get_mailer() -> Mailer:
    """Dependency returning the process mailer."""
    return mailer
