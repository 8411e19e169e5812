"""Project and project image schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from devstack.models.project import CtaType, ProjectStatus
from devstack.schemas.normalize import optional_url


class ProjectBase(BaseModel):
    """Fields shared by create and update."""

    description: str | None = Field(None, max_length=500)
    demo_url: str | None = None
    repo_url: str | None = None
    category: str | None = Field(None, max_length=50)
    cta_url: str | None = None
    cta_text: str | None = Field(None, max_length=50)

    @field_validator("demo_url", "repo_url", "cta_url")
    @classmethod
    def valid_url(cls, v: str | None) -> str | None:
        return optional_url(v)


def _clean_tech_stack(v: list[str]) -> list[str]:
    cleaned = [item.strip() for item in v]
    if any(not item for item in cleaned):
        raise ValueError("Tech stack entries cannot be empty")
    return cleaned


class ProjectCreate(ProjectBase):
    """Schema for creating a project."""

    title: str = Field(..., min_length=1, max_length=100)
    tech_stack: list[str] = Field(..., min_length=1, max_length=10)
    cta_type: CtaType = CtaType.DEMO
    status: ProjectStatus = ProjectStatus.DRAFT
    featured: bool = False
    is_public: bool = True

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("tech_stack")
    @classmethod
    def valid_tech_stack(cls, v: list[str]) -> list[str]:
        return _clean_tech_stack(v)


class ProjectUpdate(ProjectBase):
    """Partial project update."""

    title: str | None = Field(None, min_length=1, max_length=100)
    tech_stack: list[str] | None = Field(None, min_length=1, max_length=10)
    cta_type: CtaType | None = None
    status: ProjectStatus | None = None
    featured: bool | None = None
    is_public: bool | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("tech_stack")
    @classmethod
    def valid_tech_stack(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tech_stack(v) if v is not None else None


class ImageRead(BaseModel):
    """Schema for reading a project image."""

    id: uuid.UUID
    project_id: uuid.UUID
    url: str
    alt_text: str | None
    position: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    """Schema for reading a project."""

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None
    demo_url: str | None
    repo_url: str | None
    tech_stack: list[str]
    category: str | None
    cta_type: str
    cta_url: str | None
    cta_text: str | None
    status: str
    featured: bool
    is_public: bool
    image_url: str | None
    position: int
    click_count: int
    view_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectDetail(ProjectRead):
    """Project with its images."""

    images: list[ImageRead] = Field(default_factory=list)


class ProjectListItem(ProjectRead):
    """Project row in the owner's list with aggregate counts."""

    total_clicks: int = 0
    total_email_captures: int = 0


class ProjectReorderRequest(BaseModel):
    """Project ids in their new display order."""

    project_ids: list[uuid.UUID] = Field(..., min_length=1)


class ImageReorderRequest(BaseModel):
    """Image ids of one project in their new order; the first becomes primary."""

    project_id: uuid.UUID
    image_ids: list[uuid.UUID] = Field(..., min_length=1)
