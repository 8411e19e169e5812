"""initial_schema

Users, auth tokens, projects, project images and analytics event tables.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, **kwargs) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
        **kwargs,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("hashed_password", sa.String(1024), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_superuser", sa.Boolean(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("display_name", sa.String(50), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("job_title", sa.String(100), nullable=True),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("avatar_url", sa.String(2048), nullable=True),
        sa.Column("website", sa.String(2048), nullable=True),
        sa.Column("github_url", sa.String(2048), nullable=True),
        sa.Column("linkedin_url", sa.String(2048), nullable=True),
        sa.Column("twitter_url", sa.String(2048), nullable=True),
        sa.Column("resume_url", sa.String(2048), nullable=True),
        sa.Column("theme_color", sa.String(20), server_default="blue", nullable=False),
        sa.Column("template_id", sa.String(50), server_default="minimal", nullable=False),
        sa.Column("theme_id", sa.String(50), server_default="ocean", nullable=False),
        sa.Column("plan", sa.String(50), server_default="free", nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("looking_for_work", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "onboarding_completed", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "auth_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("purpose", sa.String(32), nullable=False),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "purpose", name="uq_auth_tokens_user_purpose"),
    )
    op.create_index("ix_auth_tokens_user_id", "auth_tokens", ["user_id"])
    op.create_index("ix_auth_tokens_token", "auth_tokens", ["token"], unique=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("demo_url", sa.String(2048), nullable=True),
        sa.Column("repo_url", sa.String(2048), nullable=True),
        sa.Column("tech_stack", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("cta_type", sa.String(20), server_default="demo", nullable=False),
        sa.Column("cta_url", sa.String(2048), nullable=True),
        sa.Column("cta_text", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), server_default="draft", nullable=False),
        sa.Column("featured", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("image_url", sa.String(2048), nullable=True),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        sa.Column("click_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_projects_user_id", "projects", ["user_id"])
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "project_images",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("alt_text", sa.String(255), nullable=True),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_project_images_project_id", "project_images", ["project_id"])

    op.create_table(
        "profile_views",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("visitor_id", sa.String(64), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("referer", sa.String(500), nullable=True),
        sa.Column("device", sa.String(20), server_default="unknown", nullable=False),
        sa.Column("browser", sa.String(20), server_default="unknown", nullable=False),
        sa.Column("country", sa.String(2), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_profile_views_user_id", "profile_views", ["user_id"])
    op.create_index("ix_profile_views_created_at", "profile_views", ["created_at"])
    op.create_index(
        "ix_profile_views_user_visitor_created",
        "profile_views",
        ["user_id", "visitor_id", "created_at"],
    )

    op.create_table(
        "project_clicks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("visitor_id", sa.String(64), nullable=False),
        sa.Column("click_type", sa.String(20), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("referer", sa.String(500), nullable=True),
        sa.Column("device", sa.String(20), server_default="unknown", nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_project_clicks_project_id", "project_clicks", ["project_id"])
    op.create_index("ix_project_clicks_created_at", "project_clicks", ["created_at"])

    op.create_table(
        "email_captures",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("source", sa.String(50), server_default="profile", nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_email_captures_user_id", "email_captures", ["user_id"])
    op.create_index("ix_email_captures_project_id", "email_captures", ["project_id"])


def downgrade() -> None:
    op.drop_table("email_captures")
    op.drop_table("project_clicks")
    op.drop_table("profile_views")
    op.drop_table("project_images")
    op.drop_table("projects")
    op.drop_table("auth_tokens")
    op.drop_table("users")
