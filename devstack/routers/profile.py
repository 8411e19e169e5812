"""Own profile and onboarding endpoints."""

from fastapi import APIRouter

from devstack.auth import CurrentUser
from devstack.database import DbSession
from devstack.schemas.responses import SuccessResponse
from devstack.schemas.user import OnboardingRequest, OnboardingResult, ProfileRead, ProfileUpdate
from devstack.services.account_service import account_service

router = APIRouter(prefix="/profile", tags=["profile"])
onboarding_router = APIRouter(prefix="/onboarding", tags=["profile"])


@router.get("", response_model=SuccessResponse[ProfileRead], summary="Get own profile")
async def get_profile(user: CurrentUser) -> SuccessResponse[ProfileRead]:
    return SuccessResponse(data=ProfileRead.model_validate(user))


@router.put("", response_model=SuccessResponse[ProfileRead], summary="Update own profile")
async def update_profile(
    profile_in: ProfileUpdate,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[ProfileRead]:
    """
    Update profile fields.

    - Blank optional fields clear the stored value
    - Changing the username fails with 409 if it is taken
    """
    user = await account_service.update_profile(db, user, profile_in)
    return SuccessResponse(data=ProfileRead.model_validate(user))


@onboarding_router.post(
    "/complete",
    response_model=SuccessResponse[OnboardingResult],
    summary="Finish onboarding and publish the profile",
)
async def complete_onboarding(
    data: OnboardingRequest,
    db: DbSession,
    user: CurrentUser,
) -> SuccessResponse[OnboardingResult]:
    user = await account_service.complete_onboarding(db, user, data)
    return SuccessResponse(
        data=OnboardingResult(
            message="Onboarding completed successfully",
            portfolio_url=f"/profile/{user.username}",
            user=ProfileRead.model_validate(user),
        )
    )
