"""Project image upload, removal and ordering."""

import uuid

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from devstack.config import (
    FREE_MAX_IMAGE_BYTES,
    FREE_MAX_IMAGES_PER_PROJECT,
    PRO_MAX_IMAGE_BYTES,
    PRO_MAX_IMAGES_PER_PROJECT,
)
from devstack.exceptions import NotFoundError, ValidationError
from devstack.models import Project, ProjectImage, User
from devstack.services.ordering import apply_order, close_gap
from devstack.services.project_service import project_service
from devstack.services.storage import EXTENSIONS, LocalStorage

logger = structlog.get_logger(__name__)


def image_limits(user: User) -> tuple[int, int]:
    """(max bytes per image, max images per project) for the user's plan."""
    if user.is_pro:
        return PRO_MAX_IMAGE_BYTES, PRO_MAX_IMAGES_PER_PROJECT
    return FREE_MAX_IMAGE_BYTES, FREE_MAX_IMAGES_PER_PROJECT


class ImageService:
    """Service for project image operations.

    The project's ``image_url`` always mirrors the image at position 0.
    """

    async def list_images(self, db: AsyncSession, project_id: uuid.UUID) -> list[ProjectImage]:
        result = await db.execute(
            select(ProjectImage)
            .where(ProjectImage.project_id == project_id)
            .order_by(ProjectImage.position, ProjectImage.created_at)
        )
        return list(result.scalars().all())

    async def upload_image(
        self,
        db: AsyncSession,
        user: User,
        project_id: uuid.UUID,
        *,
        content_type: str | None,
        data: bytes,
        storage: LocalStorage,
        is_primary: bool = False,
        alt_text: str | None = None,
    ) -> ProjectImage:
        """Store an image and append it (or insert it as primary)."""
        project = await project_service.get_project(db, project_id, user.id)

        if content_type not in EXTENSIONS:
            raise ValidationError(
                "Invalid file type. Only JPEG, PNG, and WebP images are allowed",
                field="file",
            )

        max_bytes, max_images = image_limits(user)
        if len(data) > max_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB",
                field="file",
            )

        images = await self.list_images(db, project.id)
        if len(images) >= max_images:
            raise ValidationError(f"Maximum {max_images} images allowed per project")

        url = await storage.save(project.id, content_type, data)

        if is_primary and images:
            await db.execute(
                update(ProjectImage)
                .where(ProjectImage.project_id == project.id)
                .values(position=ProjectImage.position + 1)
                .execution_options(synchronize_session="fetch")
            )
        position = 0 if is_primary else len(images)

        image = ProjectImage(
            project_id=project.id,
            url=url,
            alt_text=(alt_text or "").strip() or None,
            position=position,
        )
        db.add(image)
        if position == 0:
            project.image_url = url
        await db.flush()

        logger.info("image_uploaded", project_id=str(project.id), position=position)
        return image

    async def delete_image(
        self,
        db: AsyncSession,
        user: User,
        image_id: uuid.UUID,
        storage: LocalStorage,
    ) -> None:
        """Delete an image, compact positions and resync the primary URL."""
        result = await db.execute(
            select(ProjectImage, Project)
            .join(Project, ProjectImage.project_id == Project.id)
            .where(ProjectImage.id == image_id, Project.user_id == user.id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Image")
        image, project = row

        url, position = image.url, image.position
        await db.delete(image)
        await db.flush()
        await close_gap(db, ProjectImage, ProjectImage.project_id, project.id, position)
        await self._sync_primary(db, project)

        await storage.delete(url)
        logger.info("image_deleted", project_id=str(project.id), image_id=str(image_id))

    async def reorder_images(
        self,
        db: AsyncSession,
        user: User,
        project_id: uuid.UUID,
        image_ids: list[uuid.UUID],
    ) -> list[ProjectImage]:
        """Reorder a project's images; the first id becomes the primary image."""
        project = await project_service.get_project(db, project_id, user.id)
        images = await self.list_images(db, project.id)
        ordered = apply_order(
            images,
            image_ids,
            lambda: ValidationError("Some images do not belong to this project"),
        )
        project.image_url = ordered[0].url if ordered else None
        await db.flush()
        return ordered

    async def _sync_primary(self, db: AsyncSession, project: Project) -> None:
        first = await db.scalar(
            select(ProjectImage.url)
            .where(ProjectImage.project_id == project.id)
            .order_by(ProjectImage.position)
            .limit(1)
        )
        project.image_url = first
        await db.flush()


# Singleton instance
image_service = ImageService()
