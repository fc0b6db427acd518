"""Sign-in, registration and sign-out pages."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from careplans.core.activity_log import log_activity
from careplans.core.auth import (
    find_profile,
    get_current_profile,
    register_profile,
    sign_in,
    sign_out,
)
from careplans.core.config import TEMPLATES_DIR
from careplans.core.db import get_session
from careplans.core.errors import ValidationRequired
from careplans.models.profiles import Profile

router = APIRouter(prefix="/auth")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, profile: Profile | None = Depends(get_current_profile)):
    if profile is not None:
        return RedirectResponse(url="/", status_code=303)
    return templates.TemplateResponse(
        request,
        "login.html", {"request": request, "profile": None, "username": "", "error": None}
    )


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    session: Session = Depends(get_session),
):
    """Start a session for an already registered profile."""

    profile = find_profile(session, username)
    if profile is None:
        return templates.TemplateResponse(
            request,
            "login.html",
            {
                "request": request,
                "profile": None,
                "username": username,
                "error": "No profile is registered with that username.",
            },
            status_code=400,
        )

    sign_in(request, profile)
    return RedirectResponse(url="/", status_code=303)


@router.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    return templates.TemplateResponse(
        request,
        "register.html", {"request": request, "profile": None, "values": {}, "errors": {}}
    )


@router.post("/register")
def register(
    request: Request,
    username: str = Form(""),
    full_name: str = Form(""),
    unit: str = Form(""),
    team: str = Form(""),
    micro_area: str = Form(""),
    session: Session = Depends(get_session),
):
    """Create a profile and sign it in."""

    try:
        profile = register_profile(
            session,
            username=username,
            full_name=full_name,
            unit=unit,
            team=team,
            micro_area=micro_area,
        )
    except ValidationRequired as exc:
        values = {
            "username": username,
            "full_name": full_name,
            "unit": unit,
            "team": team,
            "micro_area": micro_area,
        }
        return templates.TemplateResponse(
            request,
            "register.html",
            {"request": request, "profile": None, "values": values, "errors": exc.errors},
            status_code=exc.status_code,
        )

    log_activity(
        session,
        action="profile.registered",
        entity_type="profile",
        entity_id=profile.id,
        details={"username": profile.username},
        profile=profile,
        commit=True,
    )
    sign_in(request, profile)
    return RedirectResponse(url="/", status_code=303)


@router.post("/logout")
def logout(request: Request):
    sign_out(request)
    return RedirectResponse(url=router.url_path_for("login_page"), status_code=303)
