"""Public profile assembly and visitor email capture."""

import uuid

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devstack.exceptions import AuthorizationError, NotFoundError
from devstack.metrics import record_email_capture
from devstack.models import EmailCapture, Project, ProjectClick, ProjectStatus, User
from devstack.schemas.analytics import EmailCaptureRequest, PublicProfile, PublicProject
from devstack.services.project_service import PROJECT_DISPLAY_ORDER

logger = structlog.get_logger(__name__)


class ProfileService:
    """Reads public profiles. Performs no analytics writes itself."""

    async def get_public_user(self, db: AsyncSession, username: str) -> User:
        """Resolve a public profile owner or raise NotFound / Authorization."""
        result = await db.execute(select(User).where(User.username == username.lower()))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise NotFoundError("Profile")
        if not user.is_public:
            raise AuthorizationError("Profile is private")
        return user

    async def get_public_profile(
        self, db: AsyncSession, username: str
    ) -> tuple[User, PublicProfile]:
        """Assemble the public profile with live, public projects in display order."""
        user = await self.get_public_user(db, username)

        clicks = (
            select(func.count(ProjectClick.id))
            .where(ProjectClick.project_id == Project.id)
            .correlate(Project)
            .scalar_subquery()
        )
        result = await db.execute(
            select(Project, clicks.label("clicks"))
            .options(selectinload(Project.images))
            .where(
                Project.user_id == user.id,
                Project.status == ProjectStatus.LIVE.value,
                Project.is_public.is_(True),
            )
            .order_by(*PROJECT_DISPLAY_ORDER)
        )

        projects = []
        for project, click_total in result.all():
            primary = project.images[0].url if project.images else project.image_url
            projects.append(
                PublicProject(
                    id=project.id,
                    title=project.title,
                    description=project.description,
                    demo_url=project.demo_url,
                    repo_url=project.repo_url,
                    tech_stack=project.tech_stack,
                    category=project.category,
                    cta_type=project.cta_type,
                    cta_url=project.cta_url,
                    cta_text=project.cta_text,
                    featured=project.featured,
                    image_url=primary,
                    click_count=click_total,
                    created_at=project.created_at,
                )
            )

        profile = PublicProfile(
            username=user.username,
            display_name=user.display_name,
            bio=user.bio,
            job_title=user.job_title,
            location=user.location,
            avatar_url=user.avatar_url,
            website=user.website,
            twitter_url=user.twitter_url,
            github_url=user.github_url,
            linkedin_url=user.linkedin_url,
            resume_url=user.resume_url,
            theme_color=user.theme_color,
            template_id=user.template_id,
            theme_id=user.theme_id,
            looking_for_work=user.looking_for_work,
            member_since=user.created_at,
            projects=projects,
            total_projects=len(projects),
            featured_projects=sum(1 for p in projects if p.featured),
        )
        return user, profile

    async def get_trackable_project(self, db: AsyncSession, project_id: uuid.UUID) -> Project:
        """A project that may receive clicks: exists, public and live."""
        project = await db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project")
        if not project.is_visible:
            raise AuthorizationError("Project is not publicly accessible")
        return project

    async def capture_email(
        self,
        db: AsyncSession,
        username: str,
        capture_in: EmailCaptureRequest,
    ) -> EmailCapture:
        """Store a visitor's email against a public profile (and optionally a project)."""
        user = await self.get_public_user(db, username)
        if capture_in.project_id is not None:
            project = await self.get_trackable_project(db, capture_in.project_id)
            if project.user_id != user.id:
                raise NotFoundError("Project")

        capture = EmailCapture(
            user_id=user.id,
            project_id=capture_in.project_id,
            email=capture_in.email,
            source=capture_in.source,
        )
        db.add(capture)
        await db.flush()

        record_email_capture()
        logger.info("email_captured", user_id=str(user.id), source=capture_in.source)
        return capture


# Singleton instance
profile_service = ProfileService()
