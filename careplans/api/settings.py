"""Profile settings and privilege changes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from careplans.core.activity_log import log_activity
from careplans.core.auth import require_profile
from careplans.core.config import TEMPLATES_DIR
from careplans.core.db import get_session
from careplans.core.permissions import is_admin, role_for_access_code
from careplans.models.base import utcnow
from careplans.models.profiles import Profile, ProfileRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _render_settings(
    request: Request,
    profile: Profile,
    *,
    error: str | None = None,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "settings.html",
        {
            "request": request,
            "profile": profile,
            "is_admin": is_admin(profile),
            "notice": request.query_params.get("notice"),
            "error": error,
        },
        status_code=status_code,
    )


@router.get("", response_class=HTMLResponse)
def settings_page(request: Request, profile: Profile = Depends(require_profile)):
    return _render_settings(request, profile)


@router.post("/profile")
def update_profile(
    full_name: str = Form(""),
    unit: str = Form(""),
    team: str = Form(""),
    micro_area: str = Form(""),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Update the descriptive fields of the signed-in profile."""

    profile.full_name = full_name.strip() or None
    profile.unit = unit.strip() or None
    profile.team = team.strip() or None
    profile.micro_area = micro_area.strip() or None
    profile.updated_at = utcnow()
    session.add(profile)
    session.commit()
    return RedirectResponse(url="/settings?notice=Profile+saved.", status_code=303)


@router.post("/privilege")
def change_privilege(
    request: Request,
    code: str = Form(""),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Switch the signed-in profile's role using an access code."""

    role = role_for_access_code(code)
    if role is None:
        return _render_settings(
            request, profile, error="The access code is not valid.", status_code=400
        )

    previous = ProfileRole(profile.role)
    if previous != role:
        profile.role = role
        profile.updated_at = utcnow()
        session.add(profile)
        log_activity(
            session,
            action="profile.role_changed",
            entity_type="profile",
            entity_id=profile.id,
            details={"previous_role": previous.value, "new_role": role.value},
            profile=profile,
        )
        session.commit()
        logger.info("Profile %s role changed from %s to %s", profile.username, previous.value, role.value)

    label = "administrator" if role == ProfileRole.ADMIN else "member"
    return RedirectResponse(url=f"/settings?notice=Access+level+set+to+{label}.", status_code=303)
