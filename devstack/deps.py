"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Query

from devstack.config import Settings, get_settings
from devstack.database import DbSession
from devstack.services.analytics import AnalyticsRecorder, get_analytics_recorder
from devstack.services.mail import Mailer, get_mailer
from devstack.services.storage import LocalStorage, get_storage

# Re-export DbSession for convenience
__all__ = [
    "DbSession",
    "SettingsDep",
    "RecorderDep",
    "MailerDep",
    "StorageDep",
    "PaginationDep",
]


SettingsDep = Annotated[Settings, Depends(get_settings)]
RecorderDep = Annotated[AnalyticsRecorder, Depends(get_analytics_recorder)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
StorageDep = Annotated[LocalStorage, Depends(get_storage)]


class PaginationParams:
    """Offset pagination query parameters."""

    def __init__(
        self,
        limit: int = Query(10, ge=1, le=100, description="Items per page"),
        offset: int = Query(0, ge=0, description="Items to skip"),
    ):
        self.limit = limit
        self.offset = offset


PaginationDep = Annotated[PaginationParams, Depends()]
