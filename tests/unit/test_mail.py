"""Tests for transactional email composition and dev-mode delivery."""

from unittest.mock import AsyncMock, patch

from devstack.services.mail import (
    Mailer,
    compose_password_reset_email,
    compose_verification_email,
)


class TestCompose:
    """Tests for message composition."""

    def test_verification_link(self) -> None:
        """Test the verification link carries the token."""
        message = compose_verification_email("dev@example.com", "Dev", "abc123")

        assert message.to == "dev@example.com"
        assert "/v1/auth/verify-email?token=abc123" in message.text
        assert "/v1/auth/verify-email?token=abc123" in message.html
        assert "Hi Dev" in message.text

    def test_reset_link_and_expiry(self) -> None:
        """Test the reset email links to the reset page and states the expiry."""
        message = compose_password_reset_email("dev@example.com", "Dev", "tok")

        assert "/auth/reset-password?token=tok" in message.text
        assert "60 minutes" in message.text
        assert "Reset your" in message.subject


class TestMailer:
    """Tests for delivery."""

    async def test_dev_mode_logs_instead_of_sending(self) -> None:
        """Test nothing is posted outside production."""
        with patch("devstack.services.mail.httpx.AsyncClient") as client_cls:
            result = await Mailer().send_verification("dev@example.com", "Dev", "tok")

        assert result.success is True
        assert result.kind == "verification"
        client_cls.assert_not_called()

    async def test_production_posts_to_resend(self) -> None:
        """Test the Resend API is called when email is enabled."""
        response = AsyncMock()
        response.is_success = True
        response.json = lambda: {"id": "msg_1"}
        client = AsyncMock()
        client.post.return_value = response
        client.__aenter__.return_value = client

        with (
            patch("devstack.services.mail.get_settings") as settings,
            patch("devstack.services.mail.httpx.AsyncClient", return_value=client),
        ):
            settings.return_value.email_enabled = True
            settings.return_value.resend_api_key = "re_test"
            settings.return_value.resend_api_url = "https://api.resend.com/emails"
            settings.return_value.email_timeout_seconds = 5.0
            result = await Mailer().send_password_reset("dev@example.com", "Dev", "tok")

        assert result.success is True
        assert result.message_id == "msg_1"
        payload = client.post.call_args.kwargs["json"]
        assert payload["to"] == ["dev@example.com"]
        assert client.post.call_args.kwargs["headers"]["Authorization"] == "Bearer re_test"

    async def test_dev_mode_never_logs_the_link(self) -> None:
        """Test the token in a reset link stays out of the log event."""
        token = "f" * 64
        with patch("devstack.services.mail.logger") as logger:
            await Mailer().send_password_reset("dev@example.com", "Dev", token)

        logger.info.assert_called_once()
        event, fields = logger.info.call_args.args, logger.info.call_args.kwargs
        assert "body" not in fields
        assert token not in repr((event, fields))
        assert fields["recipient"] == "dev@example.com"
