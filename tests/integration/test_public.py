"""Tests for public profiles, click tracking and email capture."""

import uuid

from httpx import AsyncClient
from sqlalchemy import func, select

from devstack.models import EmailCapture, Project, ProfileView, ProjectClick

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) Chrome/120.0 Safari/537.36",
    "Referer": "https://news.ycombinator.com/",
}


async def _count(db_session, model, **filters) -> int:
    stmt = select(func.count()).select_from(model)
    for name, value in filters.items():
        stmt = stmt.where(getattr(model, name) == value)
    return await db_session.scalar(stmt)


class TestPublicProfile:
    """Tests for GET /v1/public/profiles/{username}."""

    async def test_unknown_username_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/v1/public/profiles/nobody")

        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_private_profile_is_403(self, client: AsyncClient, make_user) -> None:
        await make_user("hidden", is_public=False)

        response = await client.get("/v1/public/profiles/hidden")

        assert response.status_code == 403
        assert response.json()["code"] == "authorization_error"

    async def test_only_live_public_projects(
        self, client: AsyncClient, make_user, make_project
    ) -> None:
        """Test drafts and private projects are left out, featured first."""
        user = await make_user(bio="Backend dev")
        await make_project(user, title="Live", position=0)
        await make_project(user, title="Draft", position=1, status="draft")
        await make_project(user, title="Private", position=2, is_public=False)
        await make_project(user, title="Star", position=3, featured=True)

        response = await client.get("/v1/public/profiles/alice")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "alice"
        assert data["bio"] == "Backend dev"
        assert [p["title"] for p in data["projects"]] == ["Star", "Live"]
        assert data["total_projects"] == 2
        assert data["featured_projects"] == 1

    async def test_username_lookup_is_case_insensitive(
        self, client: AsyncClient, make_user
    ) -> None:
        await make_user()

        response = await client.get("/v1/public/profiles/ALICE")

        assert response.status_code == 200

    async def test_view_recorded_once_per_visitor(
        self, client: AsyncClient, db_session, make_user, recorder
    ) -> None:
        """Test repeat visits from the same browser within a day count once."""
        user = await make_user()

        for _ in range(3):
            response = await client.get("/v1/public/profiles/alice", headers=BROWSER_HEADERS)
            assert response.status_code == 200
            await recorder.drain()

        assert await _count(db_session, ProfileView, user_id=user.id) == 1
        row = (
            await db_session.execute(
                select(ProfileView.device, ProfileView.browser, ProfileView.referer)
            )
        ).one()
        assert row.device == "desktop"
        assert row.browser == "chrome"
        assert row.referer == "https://news.ycombinator.com/"

    async def test_denied_profile_records_nothing(
        self, client: AsyncClient, db_session, make_user, recorder
    ) -> None:
        await make_user("hidden", is_public=False)

        await client.get("/v1/public/profiles/hidden")
        await recorder.drain()

        assert await _count(db_session, ProfileView) == 0


class TestProfilePage:
    """Tests for the server-rendered /profile/{username} page."""

    async def test_renders_profile(
        self, client: AsyncClient, db_session, make_user, make_project, recorder
    ) -> None:
        user = await make_user(job_title="Platform Engineer")
        project = await make_project(user, title="Pipeline Kit")

        response = await client.get("/profile/alice")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Pipeline Kit" in response.text
        assert "Platform Engineer" in response.text
        assert f'data-project-id="{project.id}"' in response.text

        await recorder.drain()
        assert await _count(db_session, ProfileView, user_id=user.id) == 1

    async def test_theme_color_cannot_inject_css(
        self, client: AsyncClient, make_user, auth_headers
    ) -> None:
        user = await make_user()

        rejected = await client.put(
            "/v1/profile",
            json={"theme_color": "red}*{display:none}"},
            headers=auth_headers(user.id),
        )
        accepted = await client.put(
            "/v1/profile", json={"theme_color": "#22c55e"}, headers=auth_headers(user.id)
        )
        page = await client.get("/profile/alice")

        assert rejected.status_code == 400
        assert rejected.json()["code"] == "validation_error"
        assert accepted.status_code == 200
        assert "--accent: #22c55e;" in page.text
        assert "display:none" not in page.text

    async def test_missing_profile_renders_error_page(self, client: AsyncClient) -> None:
        response = await client.get("/profile/nobody")

        assert response.status_code == 404
        assert "text/html" in response.headers["content-type"]
        assert "Profile not found" in response.text


class TestTrackClick:
    """Tests for POST /v1/public/projects/{id}/click."""

    async def test_every_click_counted(
        self, client: AsyncClient, db_session, make_user, make_project, recorder
    ) -> None:
        """Test clicks are not deduplicated and bump the counter."""
        user = await make_user()
        project = await make_project(user)

        for click_type in ("demo", "demo", "repo"):
            response = await client.post(
                f"/v1/public/projects/{project.id}/click",
                json={"click_type": click_type},
                headers=BROWSER_HEADERS,
            )
            assert response.status_code == 200
        await recorder.drain()

        assert await _count(db_session, ProjectClick, project_id=project.id) == 3
        assert await _count(db_session, ProjectClick, click_type="repo") == 1
        click_count = await db_session.scalar(
            select(Project.click_count).where(Project.id == project.id)
        )
        assert click_count == 3

    async def test_unknown_project_is_404(self, client: AsyncClient) -> None:
        response = await client.post(
            f"/v1/public/projects/{uuid.uuid4()}/click", json={"click_type": "demo"}
        )

        assert response.status_code == 404

    async def test_draft_project_is_403(
        self, client: AsyncClient, db_session, make_user, make_project, recorder
    ) -> None:
        user = await make_user()
        project = await make_project(user, status="draft")

        response = await client.post(
            f"/v1/public/projects/{project.id}/click", json={"click_type": "demo"}
        )
        await recorder.drain()

        assert response.status_code == 403
        assert await _count(db_session, ProjectClick) == 0

    async def test_private_project_is_403(
        self, client: AsyncClient, make_user, make_project
    ) -> None:
        user = await make_user()
        project = await make_project(user, is_public=False)

        response = await client.post(
            f"/v1/public/projects/{project.id}/click", json={"click_type": "cta"}
        )

        assert response.status_code == 403

    async def test_invalid_click_type_is_400(
        self, client: AsyncClient, make_user, make_project
    ) -> None:
        user = await make_user()
        project = await make_project(user)

        response = await client.post(
            f"/v1/public/projects/{project.id}/click", json={"click_type": "share"}
        )

        assert response.status_code == 400


class TestEmailCapture:
    """Tests for POST /v1/public/profiles/{username}/email-captures."""

    async def test_capture_stored(
        self, client: AsyncClient, db_session, make_user, make_project
    ) -> None:
        user = await make_user()
        project = await make_project(user)

        response = await client.post(
            "/v1/public/profiles/alice/email-captures",
            json={"email": "Recruiter@Example.com", "project_id": str(project.id)},
        )

        assert response.status_code == 201
        row = (
            await db_session.execute(
                select(EmailCapture.email, EmailCapture.project_id, EmailCapture.source)
            )
        ).one()
        assert row.email == "recruiter@example.com"
        assert row.project_id == project.id
        assert row.source == "profile"
        assert await _count(db_session, EmailCapture, user_id=user.id) == 1

    async def test_project_of_another_user_is_404(
        self, client: AsyncClient, make_user, make_project
    ) -> None:
        await make_user()
        other = await make_user("bob")
        project = await make_project(other)

        response = await client.post(
            "/v1/public/profiles/alice/email-captures",
            json={"email": "fan@example.com", "project_id": str(project.id)},
        )

        assert response.status_code == 404

    async def test_rate_limited_per_ip(self, client: AsyncClient, make_user) -> None:
        """Test the eleventh capture within an hour is rejected."""
        await make_user()

        for _ in range(10):
            response = await client.post(
                "/v1/public/profiles/alice/email-captures", json={"email": "fan@example.com"}
            )
            assert response.status_code == 201

        response = await client.post(
            "/v1/public/profiles/alice/email-captures", json={"email": "fan@example.com"}
        )

        assert response.status_code == 429
        assert response.json()["code"] == "rate_limit_exceeded"
