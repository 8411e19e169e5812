"""Project CRUD and ordering."""

import uuid

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devstack.config import FREE_MAX_PROJECTS
from devstack.exceptions import AuthorizationError, NotFoundError
from devstack.models import EmailCapture, Project, ProjectClick, User
from devstack.schemas.normalize import normalize_optional_fields
from devstack.schemas.project import ProjectCreate, ProjectListItem, ProjectUpdate
from devstack.services.ordering import apply_order, close_gap

logger = structlog.get_logger(__name__)

# Display order shared by the owner list and the public profile
PROJECT_DISPLAY_ORDER = (Project.featured.desc(), Project.position.asc(), Project.created_at.desc())

# Non-nullable columns; an explicit null leaves them unchanged
_REQUIRED_FIELDS = frozenset({"title", "tech_stack", "cta_type", "status", "featured", "is_public"})


class ProjectService:
    """Service for project operations."""

    async def get_project(
        self,
        db: AsyncSession,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        with_images: bool = False,
    ) -> Project:
        """Get a project by ID, ensuring user owns it."""
        stmt = select(Project).where(Project.id == project_id, Project.user_id == user_id)
        if with_images:
            stmt = stmt.options(selectinload(Project.images))
        result = await db.execute(stmt)
        project = result.scalar_one_or_none()
        if not project:
            raise NotFoundError("Project")
        return project

    async def list_owned(self, db: AsyncSession, user_id: uuid.UUID) -> list[Project]:
        """All of a user's projects in position order."""
        result = await db.execute(
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(Project.position, Project.created_at)
        )
        return list(result.scalars().all())

    async def list_projects(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        search: str | None = None,
        category: str | None = None,
        status: str | None = None,
        featured: bool | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[ProjectListItem], int]:
        """List a user's projects with click and email capture totals."""
        filters = [Project.user_id == user_id]
        if search:
            pattern = f"%{search}%"
            filters.append(or_(Project.title.ilike(pattern), Project.description.ilike(pattern)))
        if category:
            filters.append(Project.category == category)
        if status:
            filters.append(Project.status == status)
        if featured is not None:
            filters.append(Project.featured == featured)

        clicks = (
            select(func.count(ProjectClick.id))
            .where(ProjectClick.project_id == Project.id)
            .correlate(Project)
            .scalar_subquery()
        )
        captures = (
            select(func.count(EmailCapture.id))
            .where(EmailCapture.project_id == Project.id)
            .correlate(Project)
            .scalar_subquery()
        )

        result = await db.execute(
            select(Project, clicks.label("total_clicks"), captures.label("total_captures"))
            .where(*filters)
            .order_by(*PROJECT_DISPLAY_ORDER)
            .offset(offset)
            .limit(limit)
        )
        items = [
            ProjectListItem.model_validate(project).model_copy(
                update={"total_clicks": total_clicks, "total_email_captures": total_captures}
            )
            for project, total_clicks, total_captures in result.all()
        ]

        total = await db.scalar(select(func.count()).select_from(Project).where(*filters))
        return items, total or 0

    async def create_project(
        self, db: AsyncSession, user: User, project_in: ProjectCreate
    ) -> Project:
        """Create a project at the end of the user's ordering."""
        count = await db.scalar(
            select(func.count()).select_from(Project).where(Project.user_id == user.id)
        )
        count = count or 0
        if not user.is_pro and count >= FREE_MAX_PROJECTS:
            raise AuthorizationError(
                "Project limit reached. Upgrade to Pro for unlimited projects."
            )

        data = normalize_optional_fields(project_in.model_dump(mode="json"))
        project = Project(user_id=user.id, position=count, **data)
        db.add(project)
        await db.flush()

        logger.info("project_created", project_id=str(project.id), user_id=str(user.id))
        return project

    async def update_project(
        self,
        db: AsyncSession,
        project: Project,
        project_in: ProjectUpdate,
    ) -> Project:
        """Update a project; blank optional fields clear the stored value."""
        update_data = normalize_optional_fields(
            project_in.model_dump(mode="json", exclude_unset=True)
        )
        for field, value in update_data.items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            setattr(project, field, value)

        await db.flush()
        return project

    async def delete_project(self, db: AsyncSession, project: Project) -> None:
        """Delete a project and close the gap it leaves in the ordering."""
        user_id, position = project.user_id, project.position
        await db.delete(project)
        await db.flush()
        await close_gap(db, Project, Project.user_id, user_id, position)
        logger.info("project_deleted", project_id=str(project.id), user_id=str(user_id))

    async def reorder_projects(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        project_ids: list[uuid.UUID],
    ) -> list[Project]:
        """Put ``project_ids`` first, in order, and renumber the rest after them."""
        owned = await self.list_owned(db, user_id)
        ordered = apply_order(
            owned,
            project_ids,
            lambda: AuthorizationError("Some projects do not belong to you or do not exist"),
        )
        await db.flush()
        logger.info("projects_reordered", user_id=str(user_id), count=len(project_ids))
        return ordered


# Singleton instance
project_service = ProjectService()
