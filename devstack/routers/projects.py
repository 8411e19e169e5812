"""Project management endpoints."""

import uuid

from fastapi import APIRouter, Query, status

from devstack.auth import CurrentUser
from devstack.database import DbSession
from devstack.deps import PaginationDep
from devstack.models.project import ProjectStatus
from devstack.schemas.analytics import ProjectAnalytics
from devstack.schemas.project import (
    ProjectCreate,
    ProjectDetail,
    ProjectListItem,
    ProjectRead,
    ProjectReorderRequest,
    ProjectUpdate,
)
from devstack.schemas.responses import (
    MessageResponse,
    PaginatedResponse,
    SuccessResponse,
    pagination_meta,
)
from devstack.services import project_service, reconcile_click_counts, stats_service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=PaginatedResponse[ProjectListItem], summary="List projects")
async def list_projects(
    db: DbSession,
    user: CurrentUser,
    pagination: PaginationDep,
    search: str | None = Query(None, max_length=100),
    category: str | None = Query(None, max_length=50),
    project_status: ProjectStatus | None = Query(None, alias="status"),
    featured: bool | None = Query(None),
) -> PaginatedResponse[ProjectListItem]:
    """
    List the authenticated user's projects.

    Ordered featured first, then by manual position, then newest first.
    """
    items, total = await project_service.list_projects(
        db,
        user.id,
        search=search,
        category=category,
        status=project_status.value if project_status else None,
        featured=featured,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return PaginatedResponse(
        data=items,
        meta=pagination_meta(total, pagination.limit, pagination.offset),
    )


@router.post(
    "",
    response_model=SuccessResponse[ProjectRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    project_in: ProjectCreate,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[ProjectRead]:
    """
    Create a project at the end of the user's ordering.

    Free plans are limited to three projects.
    """
    project = await project_service.create_project(db, user, project_in)
    return SuccessResponse(data=ProjectRead.model_validate(project))


@router.put(
    "/reorder",
    response_model=SuccessResponse[list[ProjectRead]],
    summary="Reorder projects",
)
async def reorder_projects(
    reorder_in: ProjectReorderRequest,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[list[ProjectRead]]:
    """
    Assign positions in the given order.

    Fails with 403 and changes nothing if any id is not one of the user's projects.
    """
    projects = await project_service.reorder_projects(db, user.id, reorder_in.project_ids)
    return SuccessResponse(data=[ProjectRead.model_validate(p) for p in projects])


@router.post(
    "/reconcile-clicks",
    response_model=SuccessResponse[dict[str, int]],
    summary="Recompute click counters from the click log",
)
async def reconcile_clicks(db: DbSession, user: CurrentUser) -> SuccessResponse[dict[str, int]]:
    corrected = await reconcile_click_counts(db, user.id)
    return SuccessResponse(data={"corrected": corrected})


@router.get("/{project_id}", response_model=SuccessResponse[ProjectDetail], summary="Get a project")
async def get_project(
    project_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[ProjectDetail]:
    project = await project_service.get_project(db, project_id, user.id, with_images=True)
    return SuccessResponse(data=ProjectDetail.model_validate(project))


@router.put(
    "/{project_id}",
    response_model=SuccessResponse[ProjectRead],
    summary="Update a project",
)
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[ProjectRead]:
    project = await project_service.get_project(db, project_id, user.id)
    project = await project_service.update_project(db, project, project_in)
    return SuccessResponse(data=ProjectRead.model_validate(project))


@router.delete("/{project_id}", response_model=MessageResponse, summary="Delete a project")
async def delete_project(
    project_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
) -> MessageResponse:
    """Delete a project; later projects move up one position."""
    project = await project_service.get_project(db, project_id, user.id)
    await project_service.delete_project(db, project)
    return MessageResponse(message="Project deleted successfully")


@router.get(
    "/{project_id}/analytics",
    response_model=SuccessResponse[ProjectAnalytics],
    summary="Click analytics for a project",
)
async def project_analytics(
    project_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
    days: int = Query(30, ge=1, le=365),
) -> SuccessResponse[ProjectAnalytics]:
    data = await stats_service.project_analytics(db, user, project_id, days)
    return SuccessResponse(data=data)
