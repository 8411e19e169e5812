"""Analytics event models: profile views, project clicks, email captures."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from devstack.database import Base, utcnow

# User agent and referer are stored truncated
MAX_HEADER_LENGTH = 500


class ClickType(str, Enum):
    """Which element of a project card was clicked."""

    DEMO = "demo"
    REPO = "repo"
    CTA = "cta"
    IMAGE = "image"
    TITLE = "title"


class ProfileView(Base):
    """A counted visit to a public profile.

    At most one row per (user_id, visitor_id) within a trailing 24 hours.
    """

    __tablename__ = "profile_views"
    __table_args__ = (
        Index("ix_profile_views_user_visitor_created", "user_id", "visitor_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(MAX_HEADER_LENGTH), nullable=True)
    referer: Mapped[str | None] = mapped_column(String(MAX_HEADER_LENGTH), nullable=True)
    device: Mapped[str] = mapped_column(String(20), default="unknown", nullable=False)
    browser: Mapped[str] = mapped_column(String(20), default="unknown", nullable=False)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )


class ProjectClick(Base):
    """One click on a project card element. Every click is recorded."""

    __tablename__ = "project_clicks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    click_type: Mapped[str] = mapped_column(String(20), nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(MAX_HEADER_LENGTH), nullable=True)
    referer: Mapped[str | None] = mapped_column(String(MAX_HEADER_LENGTH), nullable=True)
    device: Mapped[str] = mapped_column(String(20), default="unknown", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )


class EmailCapture(Base):
    """Email address left by a visitor on a profile or project waitlist."""

    __tablename__ = "email_captures"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    source: Mapped[str] = mapped_column(String(50), default="profile", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
