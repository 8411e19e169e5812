"""SQLAlchemy models package."""

from devstack.models.analytics import ClickType, EmailCapture, ProfileView, ProjectClick
from devstack.models.project import CtaType, Project, ProjectImage, ProjectStatus
from devstack.models.token import AuthToken, TokenPurpose
from devstack.models.user import PlanTier, User

__all__ = [
    # User
    "User",
    "PlanTier",
    # Tokens
    "AuthToken",
    "TokenPurpose",
    # Projects
    "Project",
    "ProjectImage",
    "ProjectStatus",
    "CtaType",
    # Analytics
    "ProfileView",
    "ProjectClick",
    "EmailCapture",
    "ClickType",
]
