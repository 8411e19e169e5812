"""Best-effort recording of profile views and project clicks.

Recording runs in its own session so a failed analytics write can never
roll back, delay, or fail the request that triggered it. Errors are
logged and dropped.

Profile view dedup is read-then-write: two identical requests racing
inside the same instant may both record a view. Views are a display
heuristic, so the race is accepted.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Coroutine
from datetime import datetime, timedelta
from typing import Any

import structlog
from fastapi import Request
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devstack.database import get_session_maker, utcnow
from devstack.metrics import record_analytics_failure, record_profile_view, record_project_click
from devstack.models import ProfileView, Project, ProjectClick
from devstack.services.fingerprint import VisitorInfo

logger = structlog.get_logger(__name__)

VIEW_DEDUP_WINDOW = timedelta(hours=24)


class AnalyticsRecorder:
    """Records analytics events and tracks detached recording tasks."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_maker = session_maker
        self._clock = clock
        self._pending: set[asyncio.Task[bool]] = set()

    def _session(self) -> AsyncSession:
        maker = self._session_maker or get_session_maker()
        return maker()

    async def record_profile_view(self, user_id: uuid.UUID, visitor: VisitorInfo) -> bool:
        """Insert a view unless this visitor was counted in the last 24 hours.

        Returns True when a row was inserted.
        """
        now = self._clock()
        try:
            async with self._session() as db:
                existing = await db.execute(
                    select(ProfileView.id)
                    .where(
                        ProfileView.user_id == user_id,
                        ProfileView.visitor_id == visitor.visitor_id,
                        ProfileView.created_at >= now - VIEW_DEDUP_WINDOW,
                    )
                    .limit(1)
                )
                if existing.scalar_one_or_none() is not None:
                    record_profile_view(recorded=False)
                    return False

                db.add(
                    ProfileView(
                        user_id=user_id,
                        visitor_id=visitor.visitor_id,
                        ip_address=visitor.ip_address,
                        user_agent=visitor.user_agent,
                        referer=visitor.referer,
                        device=visitor.device,
                        browser=visitor.browser,
                        country=visitor.country,
                        created_at=now,
                    )
                )
                await db.commit()
        except Exception as e:
            record_analytics_failure("profile_view")
            logger.error(
                "analytics_failed",
                event="profile_view",
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )
            return False

        record_profile_view(recorded=True)
        logger.debug("profile_view_recorded", user_id=str(user_id), device=visitor.device)
        return True

    async def record_project_click(
        self,
        project_id: uuid.UUID,
        click_type: str,
        visitor: VisitorInfo,
    ) -> bool:
        """Insert a click, then bump the project's cached counter.

        The two steps commit separately. If the increment fails the
        counter under-reports until ``reconcile_click_counts`` runs.
        """
        try:
            async with self._session() as db:
                db.add(
                    ProjectClick(
                        project_id=project_id,
                        visitor_id=visitor.visitor_id,
                        click_type=click_type,
                        ip_address=visitor.ip_address,
                        user_agent=visitor.user_agent,
                        referer=visitor.referer,
                        device=visitor.device,
                        created_at=self._clock(),
                    )
                )
                await db.commit()

                await db.execute(
                    update(Project)
                    .where(Project.id == project_id)
                    .values(click_count=Project.click_count + 1)
                )
                await db.commit()
        except Exception as e:
            record_analytics_failure("project_click")
            logger.error(
                "analytics_failed",
                event="project_click",
                project_id=str(project_id),
                error=str(e),
                exc_info=True,
            )
            return False

        record_project_click(click_type)
        logger.debug("project_click_recorded", project_id=str(project_id), click_type=click_type)
        return True

    def dispatch_profile_view(self, user_id: uuid.UUID, visitor: VisitorInfo) -> asyncio.Task[bool]:
        """Record a view in the background; the caller does not wait."""
        return self._spawn(self.record_profile_view(user_id, visitor))

    def dispatch_project_click(
        self,
        project_id: uuid.UUID,
        click_type: str,
        visitor: VisitorInfo,
    ) -> asyncio.Task[bool]:
        """Record a click in the background; the caller does not wait."""
        return self._spawn(self.record_project_click(project_id, click_type, visitor))

    def _spawn(self, coro: Coroutine[Any, Any, bool]) -> asyncio.Task[bool]:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[bool]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("analytics_task_cancelled")
            return
        exc = task.exception()
        if exc is not None:
            record_analytics_failure("task")
            logger.error("analytics_task_failed", error=str(exc))

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight recording task."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


async def reconcile_click_counts(db: AsyncSession, user_id: uuid.UUID | None = None) -> int:
    """Recompute ``Project.click_count`` from the click log.

    Returns the number of projects whose counter was corrected.
    """
    actual = (
        select(func.count(ProjectClick.id))
        .where(ProjectClick.project_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )
    stmt = update(Project).where(Project.click_count != actual).values(click_count=actual)
    if user_id is not None:
        stmt = stmt.where(Project.user_id == user_id)

    result = await db.execute(stmt.execution_options(synchronize_session=False))
    corrected = result.rowcount or 0
    logger.info(
        "click_counts_reconciled",
        user_id=str(user_id) if user_id else None,
        corrected=corrected,
    )
    return corrected


def get_analytics_recorder(request: Request) -> AnalyticsRecorder:
    """Dependency returning the recorder attached to the application."""
    recorder: AnalyticsRecorder | None = getattr(request.app.state, "analytics", None)
    if recorder is None:
        recorder = AnalyticsRecorder()
        request.app.state.analytics = recorder
    return recorder
