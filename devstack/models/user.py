"""User model for authentication and public profiles."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devstack.database import Base, utcnow

if TYPE_CHECKING:
    from devstack.models.project import Project


class PlanTier(str, Enum):
    """User plan tiers."""

    FREE = "free"
    PRO = "pro"


class User(SQLAlchemyBaseUserTableUUID, Base):
    """User model with FastAPI-Users integration.

    ``is_verified`` mirrors ``email_verified_at``; fastapi-users reads the
    boolean, the timestamp records when verification happened.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    # Social links
    website: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    github_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    twitter_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    resume_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    # Appearance
    theme_color: Mapped[str] = mapped_column(String(20), default="blue", nullable=False)
    template_id: Mapped[str] = mapped_column(String(50), default="minimal", nullable=False)
    theme_id: Mapped[str] = mapped_column(String(50), default="ocean", nullable=False)

    plan: Mapped[str] = mapped_column(
        String(50),
        default=PlanTier.FREE.value,
        nullable=False,
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    looking_for_work: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    # Relationships
    projects: Mapped[list[Project]] = relationship(
        "Project",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Project.position",
    )

    @property
    def is_pro(self) -> bool:
        return self.plan == PlanTier.PRO.value
