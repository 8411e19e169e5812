"""Project and project image models."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devstack.database import Base, utcnow

if TYPE_CHECKING:
    from devstack.models.user import User


class ProjectStatus(str, Enum):
    """Publication status of a project."""

    DRAFT = "draft"
    LIVE = "live"
    COMING_SOON = "coming_soon"
    ARCHIVED = "archived"


class CtaType(str, Enum):
    """Call-to-action button kinds."""

    DEMO = "demo"
    GITHUB = "github"
    WAITLIST = "waitlist"
    BUY = "buy"
    CONTACT = "contact"
    CUSTOM = "custom"


class Project(Base):
    """A showcased project.

    ``position`` is dense and zero-based within the owner's projects.
    ``image_url`` caches the URL of the image at position 0 and
    ``click_count`` caches ``count(project_clicks)``.
    """

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    demo_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    repo_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    tech_stack: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    cta_type: Mapped[str] = mapped_column(String(20), default=CtaType.DEMO.value, nullable=False)
    cta_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    cta_text: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=ProjectStatus.DRAFT.value, nullable=False, index=True
    )
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="projects")
    images: Mapped[list[ProjectImage]] = relationship(
        "ProjectImage",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProjectImage.position",
    )

    @property
    def is_visible(self) -> bool:
        """Visible on the public profile and trackable."""
        return self.is_public and self.status == ProjectStatus.LIVE.value


class ProjectImage(Base):
    """Screenshot attached to a project; position 0 is the primary image."""

    __tablename__ = "project_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    alt_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    project: Mapped[Project] = relationship("Project", back_populates="images")
