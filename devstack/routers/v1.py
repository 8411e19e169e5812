"""V1 API router - aggregates all versioned endpoints."""

from fastapi import APIRouter

from devstack.routers import auth, dashboard, images, profile, projects, public

router = APIRouter()

# Auth endpoints
router.include_router(auth.router, prefix="/auth", tags=["Auth"])

# Own profile and onboarding
router.include_router(profile.router)
router.include_router(profile.onboarding_router)

# Project and image management
router.include_router(projects.router)
router.include_router(images.router)

# Public profile, click tracking and email capture
router.include_router(public.router)

# Dashboard
router.include_router(dashboard.router)


@router.get("/")
async def v1_root() -> dict[str, str]:
    """V1 API root endpoint."""
    return {
        "version": "1",
        "status": "active",
    }
