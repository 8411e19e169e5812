"""Dashboard statistics and analytics read models."""

import uuid
from collections import Counter
from datetime import datetime, timedelta
from urllib.parse import urlparse

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from devstack.database import utcnow
from devstack.models import EmailCapture, ProfileView, Project, ProjectClick, ProjectStatus, User
from devstack.schemas.analytics import (
    ActivityItem,
    AnalyticsSummary,
    ClickRead,
    DashboardStats,
    DetailedStats,
    ProjectAnalytics,
    TopProject,
)
from devstack.services.project_service import project_service

RECENT_WINDOW = timedelta(days=7)
RECENT_ACTIVITY_LIMIT = 10
RECENT_CLICKS_LIMIT = 50


def referer_host(referer: str | None) -> str | None:
    """Hostname of a referer URL, without a leading ``www.``."""
    if not referer:
        return None
    host = urlparse(referer).hostname
    if not host:
        return None
    return host.removeprefix("www.")


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class StatsService:
    """Read-only aggregates over a user's projects and analytics events."""

    async def _count_views(
        self, db: AsyncSession, user_id: uuid.UUID, since: datetime | None = None
    ) -> int:
        stmt = select(func.count()).select_from(ProfileView).where(ProfileView.user_id == user_id)
        if since is not None:
            stmt = stmt.where(ProfileView.created_at >= since)
        return await db.scalar(stmt) or 0

    async def _count_clicks(
        self, db: AsyncSession, user_id: uuid.UUID, since: datetime | None = None
    ) -> int:
        stmt = (
            select(func.count(ProjectClick.id))
            .join(Project, ProjectClick.project_id == Project.id)
            .where(Project.user_id == user_id)
        )
        if since is not None:
            stmt = stmt.where(ProjectClick.created_at >= since)
        return await db.scalar(stmt) or 0

    async def _count_captures(
        self, db: AsyncSession, user_id: uuid.UUID, since: datetime | None = None
    ) -> int:
        stmt = select(func.count()).select_from(EmailCapture).where(EmailCapture.user_id == user_id)
        if since is not None:
            stmt = stmt.where(EmailCapture.created_at >= since)
        return await db.scalar(stmt) or 0

    async def _top_project(self, db: AsyncSession, user_id: uuid.UUID) -> TopProject | None:
        result = await db.execute(
            select(Project.id, Project.title, Project.click_count)
            .where(Project.user_id == user_id)
            .order_by(Project.click_count.desc(), Project.position)
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None
        return TopProject(id=row.id, title=row.title, click_count=row.click_count)

    async def dashboard_stats(
        self, db: AsyncSession, user: User, now: datetime | None = None
    ) -> DashboardStats:
        now = now or utcnow()
        since_month = month_start(now)

        total_projects = await db.scalar(
            select(func.count()).select_from(Project).where(Project.user_id == user.id)
        )

        views = await db.execute(
            select(ProfileView.created_at, ProfileView.device, ProfileView.referer)
            .where(ProfileView.user_id == user.id)
            .order_by(ProfileView.created_at.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
        )
        clicks = await db.execute(
            select(ProjectClick.created_at, ProjectClick.click_type, Project.id, Project.title)
            .join(Project, ProjectClick.project_id == Project.id)
            .where(Project.user_id == user.id)
            .order_by(ProjectClick.created_at.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
        )
        activity = [
            ActivityItem(
                type="view", created_at=row.created_at, device=row.device, referer=row.referer
            )
            for row in views.all()
        ] + [
            ActivityItem(
                type="click",
                created_at=row.created_at,
                project_id=row.id,
                project_title=row.title,
                click_type=row.click_type,
            )
            for row in clicks.all()
        ]
        activity.sort(key=lambda item: item.created_at, reverse=True)

        return DashboardStats(
            total_projects=total_projects or 0,
            total_views=await self._count_views(db, user.id),
            total_clicks=await self._count_clicks(db, user.id),
            total_email_captures=await self._count_captures(db, user.id),
            views_this_month=await self._count_views(db, user.id, since_month),
            clicks_this_month=await self._count_clicks(db, user.id, since_month),
            top_project=await self._top_project(db, user.id),
            recent_activity=activity[:RECENT_ACTIVITY_LIMIT],
        )

    async def analytics_summary(
        self,
        db: AsyncSession,
        user: User,
        days: int = 30,
        now: datetime | None = None,
    ) -> AnalyticsSummary:
        now = now or utcnow()
        since = now - timedelta(days=days)

        unique_visitors = await db.scalar(
            select(func.count(distinct(ProfileView.visitor_id))).where(
                ProfileView.user_id == user.id, ProfileView.created_at >= since
            )
        )

        referers = await db.execute(
            select(ProfileView.referer).where(
                ProfileView.user_id == user.id,
                ProfileView.created_at >= since,
                ProfileView.referer.is_not(None),
            )
        )
        hosts = Counter(h for h in (referer_host(r) for r in referers.scalars()) if h)

        country = await db.execute(
            select(ProfileView.country, func.count().label("n"))
            .where(
                ProfileView.user_id == user.id,
                ProfileView.created_at >= since,
                ProfileView.country.is_not(None),
            )
            .group_by(ProfileView.country)
            .order_by(func.count().desc())
            .limit(1)
        )
        top_country = country.first()

        devices = await db.execute(
            select(ProfileView.device, func.count())
            .where(ProfileView.user_id == user.id, ProfileView.created_at >= since)
            .group_by(ProfileView.device)
        )

        return AnalyticsSummary(
            days=days,
            total_views=await self._count_views(db, user.id, since),
            total_clicks=await self._count_clicks(db, user.id, since),
            total_email_captures=await self._count_captures(db, user.id, since),
            unique_visitors=unique_visitors or 0,
            top_referer=hosts.most_common(1)[0][0] if hosts else None,
            top_country=top_country.country if top_country else None,
            views_by_device={device: count for device, count in devices.all()},
            recent_views=await self._count_views(db, user.id, now - RECENT_WINDOW),
            recent_clicks=await self._count_clicks(db, user.id, now - RECENT_WINDOW),
        )

    async def detailed_stats(self, db: AsyncSession, user: User) -> DetailedStats:
        projects = await project_service.list_owned(db, user.id)
        total_clicks = sum(p.click_count for p in projects)
        most_clicked = max(projects, key=lambda p: p.click_count, default=None)
        recently_updated = sorted(projects, key=lambda p: p.updated_at, reverse=True)[:5]

        return DetailedStats(
            total_projects=len(projects),
            live_projects=sum(1 for p in projects if p.status == ProjectStatus.LIVE.value),
            draft_projects=sum(1 for p in projects if p.status == ProjectStatus.DRAFT.value),
            featured_projects=sum(1 for p in projects if p.featured),
            total_clicks=total_clicks,
            average_clicks_per_project=round(total_clicks / len(projects), 2) if projects else 0.0,
            most_clicked_project=(
                TopProject(
                    id=most_clicked.id,
                    title=most_clicked.title,
                    click_count=most_clicked.click_count,
                )
                if most_clicked
                else None
            ),
            recently_updated=[
                TopProject(id=p.id, title=p.title, click_count=p.click_count)
                for p in recently_updated
            ],
        )

    async def project_analytics(
        self,
        db: AsyncSession,
        user: User,
        project_id: uuid.UUID,
        days: int = 30,
        now: datetime | None = None,
    ) -> ProjectAnalytics:
        project = await project_service.get_project(db, project_id, user.id)
        since = (now or utcnow()) - timedelta(days=days)

        total_clicks = await db.scalar(
            select(func.count())
            .select_from(ProjectClick)
            .where(ProjectClick.project_id == project.id)
        ) or 0
        by_type = await db.execute(
            select(ProjectClick.click_type, func.count())
            .where(ProjectClick.project_id == project.id, ProjectClick.created_at >= since)
            .group_by(ProjectClick.click_type)
        )
        clicks_by_type = {click_type: count for click_type, count in by_type.all()}
        captures = await db.scalar(
            select(func.count())
            .select_from(EmailCapture)
            .where(EmailCapture.project_id == project.id)
        ) or 0
        recent = await db.execute(
            select(ProjectClick)
            .where(ProjectClick.project_id == project.id)
            .order_by(ProjectClick.created_at.desc())
            .limit(RECENT_CLICKS_LIMIT)
        )

        return ProjectAnalytics(
            project_id=project.id,
            title=project.title,
            days=days,
            total_clicks=total_clicks,
            clicks_in_period=sum(clicks_by_type.values()),
            clicks_by_type=clicks_by_type,
            email_captures=captures,
            conversion_rate=round(captures / total_clicks * 100, 2) if total_clicks else 0.0,
            recent_clicks=[ClickRead.model_validate(c) for c in recent.scalars().all()],
        )


# Singleton instance
stats_service = StatsService()
