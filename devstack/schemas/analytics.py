"""Public profile, tracking and dashboard analytics schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from devstack.models.analytics import ClickType


class ClickRequest(BaseModel):
    click_type: ClickType


class EmailCaptureRequest(BaseModel):
    email: EmailStr
    project_id: uuid.UUID | None = None
    source: str = Field("profile", max_length=50)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class PublicProject(BaseModel):
    """Project card on a public profile."""

    id: uuid.UUID
    title: str
    description: str | None
    demo_url: str | None
    repo_url: str | None
    tech_stack: list[str]
    category: str | None
    cta_type: str
    cta_url: str | None
    cta_text: str | None
    featured: bool
    image_url: str | None
    click_count: int
    created_at: datetime


class PublicProfile(BaseModel):
    """Everything needed to render a public profile page."""

    username: str
    display_name: str | None
    bio: str | None
    job_title: str | None
    location: str | None
    avatar_url: str | None
    website: str | None
    twitter_url: str | None
    github_url: str | None
    linkedin_url: str | None
    resume_url: str | None
    theme_color: str
    template_id: str
    theme_id: str
    looking_for_work: bool
    member_since: datetime
    projects: list[PublicProject]
    total_projects: int
    featured_projects: int


class TopProject(BaseModel):
    id: uuid.UUID
    title: str
    click_count: int


class ActivityItem(BaseModel):
    """Recent view or click, newest first."""

    type: str
    created_at: datetime
    project_id: uuid.UUID | None = None
    project_title: str | None = None
    click_type: str | None = None
    device: str | None = None
    referer: str | None = None


class DashboardStats(BaseModel):
    total_projects: int
    total_views: int
    total_clicks: int
    total_email_captures: int
    views_this_month: int
    clicks_this_month: int
    top_project: TopProject | None
    recent_activity: list[ActivityItem]


class AnalyticsSummary(BaseModel):
    days: int
    total_views: int
    total_clicks: int
    total_email_captures: int
    unique_visitors: int
    top_referer: str | None
    top_country: str | None
    views_by_device: dict[str, int]
    recent_views: int
    recent_clicks: int


class DetailedStats(BaseModel):
    total_projects: int
    live_projects: int
    draft_projects: int
    featured_projects: int
    total_clicks: int
    average_clicks_per_project: float
    most_clicked_project: TopProject | None
    recently_updated: list[TopProject]


class ClickRead(BaseModel):
    id: uuid.UUID
    click_type: str
    device: str
    referer: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectAnalytics(BaseModel):
    project_id: uuid.UUID
    title: str
    days: int
    total_clicks: int
    clicks_in_period: int
    clicks_by_type: dict[str, int]
    email_captures: int
    conversion_rate: float
    recent_clicks: list[ClickRead]
