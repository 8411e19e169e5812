"""Tests for analytics recording, view dedup and click counter reconciliation."""

import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select, update

from devstack.database import get_session_maker
from devstack.models import ProfileView, Project, ProjectClick
from devstack.services.analytics import AnalyticsRecorder, reconcile_click_counts
from devstack.services.fingerprint import VisitorInfo

VISITOR = VisitorInfo.build("203.0.113.7", "Mozilla/5.0 (X11; Linux x86_64) Firefox/121.0")


class FakeClock:
    """Wall clock advanced by hand."""

    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


async def _count(db_session, model, **filters) -> int:
    stmt = select(func.count()).select_from(model).filter_by(**filters)
    return await db_session.scalar(stmt)


async def _click_count(db_session, project_id) -> int:
    return await db_session.scalar(select(Project.click_count).where(Project.id == project_id))


class TestProfileViewDedup:
    """Tests for one counted view per visitor per trailing 24 hours."""

    async def test_same_visitor_within_window_counted_once(self, db_session, make_user) -> None:
        """Test serialized repeat views inside 24h persist one row."""
        user = await make_user()
        clock = FakeClock()
        recorder = AnalyticsRecorder(get_session_maker(), clock=clock)

        assert await recorder.record_profile_view(user.id, VISITOR) is True
        clock.advance(hours=23)
        assert await recorder.record_profile_view(user.id, VISITOR) is False

        assert await _count(db_session, ProfileView, user_id=user.id) == 1

    async def test_views_more_than_a_day_apart_both_counted(self, db_session, make_user) -> None:
        """Test a view after the window elapses is recorded again."""
        user = await make_user()
        clock = FakeClock()
        recorder = AnalyticsRecorder(get_session_maker(), clock=clock)

        await recorder.record_profile_view(user.id, VISITOR)
        clock.advance(hours=24, minutes=1)
        assert await recorder.record_profile_view(user.id, VISITOR) is True

        assert await _count(db_session, ProfileView, user_id=user.id) == 2

    async def test_different_visitors_counted_separately(self, db_session, make_user) -> None:
        """Test another fingerprint is a new view."""
        user = await make_user()
        recorder = AnalyticsRecorder(get_session_maker(), clock=FakeClock())
        other = VisitorInfo.build("198.51.100.1", VISITOR.user_agent)

        await recorder.record_profile_view(user.id, VISITOR)
        await recorder.record_profile_view(user.id, other)

        assert await _count(db_session, ProfileView, user_id=user.id) == 2

    async def test_metadata_is_stored(self, db_session, make_user) -> None:
        """Test device, browser and visitor id are persisted."""
        user = await make_user()
        recorder = AnalyticsRecorder(get_session_maker(), clock=FakeClock())

        await recorder.record_profile_view(user.id, VISITOR)

        row = (
            await db_session.execute(
                select(ProfileView.visitor_id, ProfileView.device, ProfileView.browser)
            )
        ).one()
        assert row.visitor_id == VISITOR.visitor_id
        assert row.device == "desktop"
        assert row.browser == "firefox"

    async def test_failures_are_swallowed(self) -> None:
        """Test a failed write returns False instead of raising."""

        def broken_session_maker():
            raise RuntimeError("database unavailable")

        recorder = AnalyticsRecorder(broken_session_maker)

        assert await recorder.record_profile_view(uuid.uuid4(), VISITOR) is False


class TestProjectClicks:
    """Tests for click recording and the cached counter."""

    async def test_every_click_recorded_and_counted(
        self, db_session, make_user, make_project
    ) -> None:
        """Test repeated clicks each add a row and bump the counter by one."""
        user = await make_user()
        project = await make_project(user)
        recorder = AnalyticsRecorder(get_session_maker())

        for _ in range(3):
            assert await recorder.record_project_click(project.id, "demo", VISITOR) is True

        assert await _count(db_session, ProjectClick, project_id=project.id) == 3
        assert await _click_count(db_session, project.id) == 3

    async def test_dispatch_runs_in_background(self, db_session, make_user, make_project) -> None:
        """Test dispatched recordings complete once drained."""
        user = await make_user()
        project = await make_project(user)
        recorder = AnalyticsRecorder(get_session_maker())

        recorder.dispatch_project_click(project.id, "repo", VISITOR)
        recorder.dispatch_profile_view(user.id, VISITOR)
        assert recorder.pending == 2
        await recorder.drain()

        assert recorder.pending == 0
        assert await _click_count(db_session, project.id) == 1
        assert await _count(db_session, ProfileView, user_id=user.id) == 1

    async def test_reconcile_repairs_drift(self, db_session, make_user, make_project) -> None:
        """Test the counter is recomputed from the click log."""
        user = await make_user()
        project = await make_project(user)
        recorder = AnalyticsRecorder(get_session_maker())
        await recorder.record_project_click(project.id, "cta", VISITOR)
        await recorder.record_project_click(project.id, "cta", VISITOR)

        await db_session.execute(
            update(Project).where(Project.id == project.id).values(click_count=0)
        )
        await db_session.commit()

        corrected = await reconcile_click_counts(db_session, user.id)
        await db_session.commit()

        assert corrected == 1
        assert await _click_count(db_session, project.id) == 2
