"""Public (unauthenticated) profile, click tracking and email capture endpoints."""

import uuid

import structlog
from fastapi import APIRouter, Depends, Request, status

from devstack.database import DbSession
from devstack.deps import RecorderDep
from devstack.ratelimit import RateLimit
from devstack.schemas.analytics import ClickRequest, EmailCaptureRequest, PublicProfile
from devstack.schemas.responses import MessageResponse, SuccessResponse
from devstack.services import profile_service
from devstack.services.fingerprint import VisitorInfo

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/public", tags=["public"])

HOUR_MS = 60 * 60 * 1000


@router.get(
    "/profiles/{username}",
    response_model=SuccessResponse[PublicProfile],
    summary="Get a public profile",
)
async def get_public_profile(
    username: str,
    request: Request,
    db: DbSession,
    recorder: RecorderDep,
) -> SuccessResponse[PublicProfile]:
    """
    Return a public profile with its live, public projects.

    The view is recorded in the background after the profile is read;
    the response never waits on it.
    """
    user, profile = await profile_service.get_public_profile(db, username)
    recorder.dispatch_profile_view(user.id, VisitorInfo.from_request(request))
    return SuccessResponse(data=profile)


@router.post(
    "/projects/{project_id}/click",
    response_model=MessageResponse,
    summary="Track a project click",
)
async def track_click(
    project_id: uuid.UUID,
    click_in: ClickRequest,
    request: Request,
    db: DbSession,
    recorder: RecorderDep,
) -> MessageResponse:
    """
    Record a click on a public, live project.

    - 404 if the project does not exist
    - 403 if it is private or not live
    """
    project = await profile_service.get_trackable_project(db, project_id)
    recorder.dispatch_project_click(
        project.id, click_in.click_type.value, VisitorInfo.from_request(request)
    )
    return MessageResponse(message="Click tracked successfully")


@router.post(
    "/profiles/{username}/email-captures",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("email-capture", 10, HOUR_MS))],
    summary="Leave an email on a profile",
)
async def capture_email(
    username: str,
    capture_in: EmailCaptureRequest,
    db: DbSession,
) -> MessageResponse:
    await profile_service.capture_email(db, username, capture_in)
    return MessageResponse(message="Thanks! You're on the list.")
