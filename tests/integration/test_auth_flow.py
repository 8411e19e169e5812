"""Tests for registration, verification, login and password reset over HTTP."""

from httpx import AsyncClient
from sqlalchemy import func, select

from devstack.models import AuthToken, TokenPurpose, User

# Password set by the make_user fixture
TEST_PASSWORD = "Secret123"
NEW_PASSWORD = "Changed456"


def _registration(**overrides) -> dict:
    payload = {
        "email": "dana@example.com",
        "password": TEST_PASSWORD,
        "confirm_password": TEST_PASSWORD,
        "username": "dana",
        "display_name": "Dana",
        "agree_to_terms": True,
    }
    payload.update(overrides)
    return payload


async def _token_for(db_session, email: str, purpose: TokenPurpose) -> str | None:
    return await db_session.scalar(
        select(AuthToken.token)
        .join(User, AuthToken.user_id == User.id)
        .where(User.email == email, AuthToken.purpose == purpose.value)
    )


async def _login(client: AsyncClient, email: str, password: str = TEST_PASSWORD):
    return await client.post("/v1/auth/login", data={"username": email, "password": password})


class TestRegistration:
    """Tests for POST /v1/auth/register."""

    async def test_register_creates_unverified_user(
        self, client: AsyncClient, db_session
    ) -> None:
        response = await client.post("/v1/auth/register", json=_registration())

        assert response.status_code == 201
        assert "check your email" in response.json()["message"]
        row = (
            await db_session.execute(
                select(User.username, User.is_verified, User.is_public).where(
                    User.email == "dana@example.com"
                )
            )
        ).one()
        assert row.username == "dana"
        assert row.is_verified is False
        assert row.is_public is False
        assert await _token_for(
            db_session, "dana@example.com", TokenPurpose.EMAIL_VERIFICATION
        )

    async def test_existing_email_gets_same_response(
        self, client: AsyncClient, db_session, make_user
    ) -> None:
        """Test a registered email is not revealed and nothing new is created."""
        await make_user("dana")

        response = await client.post(
            "/v1/auth/register", json=_registration(email="DANA@example.com", username="other")
        )

        assert response.status_code == 201
        assert "check your email" in response.json()["message"]
        assert await db_session.scalar(select(func.count()).select_from(User)) == 1
        assert await db_session.scalar(select(func.count()).select_from(AuthToken)) == 0

    async def test_taken_username_is_409(self, client: AsyncClient, make_user) -> None:
        await make_user("dana", email="someone@example.com")

        response = await client.post("/v1/auth/register", json=_registration())

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    async def test_reserved_username_is_400(self, client: AsyncClient) -> None:
        response = await client.post("/v1/auth/register", json=_registration(username="admin"))

        assert response.status_code == 400
        assert response.json()["error"] == "This username is reserved"

    async def test_weak_password_is_400(self, client: AsyncClient) -> None:
        response = await client.post(
            "/v1/auth/register",
            json=_registration(password="lowercase1", confirm_password="lowercase1"),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    async def test_rate_limited_after_five_attempts(self, client: AsyncClient) -> None:
        """Test the sixth registration from one IP in the window is refused."""
        for i in range(5):
            response = await client.post(
                "/v1/auth/register",
                json=_registration(email=f"user{i}@example.com", username=f"user{i}"),
            )
            assert response.status_code == 201

        response = await client.post(
            "/v1/auth/register", json=_registration(email="late@example.com", username="late")
        )

        assert response.status_code == 429
        assert response.json()["code"] == "rate_limit_exceeded"


class TestVerificationAndLogin:
    """Tests for the verify-then-login flow."""

    async def test_login_requires_verification(self, client: AsyncClient, db_session) -> None:
        await client.post("/v1/auth/register", json=_registration())

        before = await _login(client, "dana@example.com")
        assert before.status_code == 400
        assert before.json()["code"] == "login_user_not_verified"

        token = await _token_for(db_session, "dana@example.com", TokenPurpose.EMAIL_VERIFICATION)
        verified = await client.get("/v1/auth/verify-email", params={"token": token})
        assert verified.status_code == 200

        after = await _login(client, "dana@example.com")
        assert after.status_code == 200
        assert after.json()["access_token"]

    async def test_verification_token_is_single_use(
        self, client: AsyncClient, db_session
    ) -> None:
        await client.post("/v1/auth/register", json=_registration())
        token = await _token_for(db_session, "dana@example.com", TokenPurpose.EMAIL_VERIFICATION)

        first = await client.get("/v1/auth/verify-email", params={"token": token})
        second = await client.get("/v1/auth/verify-email", params={"token": token})

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["code"] == "token_not_found"

    async def test_resend_replaces_token(self, client: AsyncClient, db_session) -> None:
        await client.post("/v1/auth/register", json=_registration())
        old = await _token_for(db_session, "dana@example.com", TokenPurpose.EMAIL_VERIFICATION)

        response = await client.post(
            "/v1/auth/resend-verification", json={"email": "dana@example.com"}
        )
        new = await _token_for(db_session, "dana@example.com", TokenPurpose.EMAIL_VERIFICATION)

        assert response.status_code == 200
        assert new and new != old
        stale = await client.get("/v1/auth/verify-email", params={"token": old})
        assert stale.status_code == 400

    async def test_bad_credentials(self, client: AsyncClient, make_user) -> None:
        await make_user()

        response = await _login(client, "alice@example.com", "WrongPass1")

        assert response.status_code == 400
        assert response.json()["code"] == "login_bad_credentials"

    async def test_bearer_token_authenticates(self, client: AsyncClient, make_user) -> None:
        await make_user()
        token = (await _login(client, "alice@example.com")).json()["access_token"]

        response = await client.get(
            "/v1/auth/status", headers={"Authorization": f"Bearer {token}"}
        )

        data = response.json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["username"] == "alice"

    async def test_logout_does_not_spend_login_attempts(
        self, client: AsyncClient, make_user
    ) -> None:
        await make_user()
        token = (await _login(client, "alice@example.com")).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        for _ in range(6):
            logout = await client.post("/v1/auth/logout", headers=headers)
            assert logout.status_code == 204

        response = await _login(client, "alice@example.com")
        assert response.status_code == 200

    async def test_login_rate_limited_after_five_attempts(
        self, client: AsyncClient, make_user
    ) -> None:
        await make_user()

        for _ in range(5):
            await _login(client, "alice@example.com", "WrongPass1")
        response = await _login(client, "alice@example.com")

        assert response.status_code == 429

    async def test_status_anonymous(self, client: AsyncClient) -> None:
        response = await client.get("/v1/auth/status")

        assert response.status_code == 200
        assert response.json()["data"]["authenticated"] is False


class TestPasswordReset:
    """Tests for forgot-password and reset-password."""

    async def test_full_reset_flow(self, client: AsyncClient, db_session, make_user) -> None:
        await make_user()

        forgot = await client.post("/v1/auth/forgot-password", json={"email": "alice@example.com"})
        assert forgot.status_code == 200
        token = await _token_for(db_session, "alice@example.com", TokenPurpose.PASSWORD_RESET)

        check = await client.get("/v1/auth/reset-password", params={"token": token})
        assert check.status_code == 200
        assert check.json()["data"] == {"valid": True, "email": "alice@example.com"}

        reset = await client.post(
            "/v1/auth/reset-password",
            json={"token": token, "password": NEW_PASSWORD, "confirm_password": NEW_PASSWORD},
        )
        assert reset.status_code == 200

        assert (await _login(client, "alice@example.com")).status_code == 400
        assert (await _login(client, "alice@example.com", NEW_PASSWORD)).status_code == 200

    async def test_unknown_email_same_message(self, client: AsyncClient, db_session) -> None:
        """Test account existence is not revealed and no token is issued."""
        response = await client.post(
            "/v1/auth/forgot-password", json={"email": "ghost@example.com"}
        )

        assert response.status_code == 200
        assert "If an account exists" in response.json()["message"]
        assert await db_session.scalar(select(func.count()).select_from(AuthToken)) == 0

    async def test_unknown_reset_token(self, client: AsyncClient) -> None:
        response = await client.get("/v1/auth/reset-password", params={"token": "nope"})

        assert response.status_code == 400
        assert response.json()["code"] == "token_not_found"

    async def test_forgot_password_rate_limited(self, client: AsyncClient) -> None:
        for _ in range(3):
            response = await client.post(
                "/v1/auth/forgot-password", json={"email": "ghost@example.com"}
            )
            assert response.status_code == 200

        response = await client.post(
            "/v1/auth/forgot-password", json={"email": "ghost@example.com"}
        )

        assert response.status_code == 429
