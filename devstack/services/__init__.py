"""Business logic services package."""

from devstack.services.account_service import account_service
from devstack.services.analytics import AnalyticsRecorder, reconcile_click_counts
from devstack.services.image_service import image_service
from devstack.services.profile_service import profile_service
from devstack.services.project_service import project_service
from devstack.services.stats_service import stats_service
from devstack.services.tokens import token_service

__all__ = [
    "AnalyticsRecorder",
    "account_service",
    "image_service",
    "profile_service",
    "project_service",
    "reconcile_click_counts",
    "stats_service",
    "token_service",
]
