"""Server-rendered public profile page using Jinja2 templates."""

from pathlib import Path

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from devstack.database import DbSession
from devstack.deps import RecorderDep
from devstack.exceptions import DevStackError
from devstack.services import profile_service
from devstack.services.fingerprint import VisitorInfo

logger = structlog.get_logger()

TEMPLATES_DIR = Path(__file__).parent.parent.parent / "web" / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["web"])


@router.get("/profile/{username}", response_class=HTMLResponse, include_in_schema=False)
async def profile_page(
    request: Request,
    username: str,
    db: DbSession,
    recorder: RecorderDep,
) -> HTMLResponse:
    """Render a public profile; counts a view like the JSON endpoint."""
    try:
        user, profile = await profile_service.get_public_profile(db, username)
    except DevStackError as e:
        return templates.TemplateResponse(
            request,
            "error.html",
            {"status_code": e.status_code, "message": e.message},
            status_code=e.status_code,
        )

    recorder.dispatch_profile_view(user.id, VisitorInfo.from_request(request))
    return templates.TemplateResponse(
        request,
        "profile.html",
        {"profile": profile},
    )
