"""Create, view, edit and delete individual plans."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from careplans.core.activity_log import log_activity
from careplans.core.auth import require_profile
from careplans.core.config import TEMPLATES_DIR
from careplans.core.db import get_session
from careplans.core.errors import PermissionDenied, ValidationRequired
from careplans.core.options import grouped_options
from careplans.core.permissions import can_manage_plan, is_admin
from careplans.core.plans import (
    PlanForm,
    create_plan,
    delete_plan,
    get_plan,
    update_plan,
    validate_plan_form,
)
from careplans.models.plans import (
    QUALIFICATION_AXIS,
    WORK_PROCESS_AXIS,
    EvaluationFrequency,
    Plan,
    PlanStatus,
)
from careplans.models.profiles import Profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def plan_form(
    axis: str = Form(""),
    care_line: str = Form(""),
    status: str = Form(""),
    supporters: list[str] = Form([]),
    categories: list[str] = Form([]),
    summary: str = Form(""),
    goal: str = Form(""),
    evaluation_frequency: str = Form(""),
    cycle: str = Form(""),
    start_date: str = Form(""),
    end_date: str = Form(""),
    notes: str = Form(""),
) -> PlanForm:
    """Collect the submitted plan fields into a :class:`PlanForm`."""

    return PlanForm(
        axis=axis,
        care_line=care_line,
        status=status,
        supporters=supporters,
        categories=categories,
        summary=summary,
        goal=goal,
        evaluation_frequency=evaluation_frequency,
        cycle=cycle,
        start_date=start_date,
        end_date=end_date,
        notes=notes,
    )


def _load_plan(session: Session, plan_id: str) -> Plan:
    plan = get_plan(session, plan_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


def _ensure_can_manage(plan: Plan, profile: Profile) -> None:
    allowed, message = can_manage_plan(plan, profile=profile)
    if not allowed:
        exc = PermissionDenied(message or "You cannot change this plan.")
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)


def _render_form(
    request: Request,
    session: Session,
    profile: Profile,
    form: PlanForm,
    *,
    plan: Plan | None = None,
    errors: dict[str, str] | None = None,
    status_code: int = 200,
):
    context: dict[str, Any] = {
        "request": request,
        "profile": profile,
        "is_admin": is_admin(profile),
        "plan": plan,
        "form": form,
        "errors": errors or {},
        "options": {option_type.value: labels for option_type, labels in grouped_options(session).items()},
        "statuses": list(PlanStatus),
        "frequencies": list(EvaluationFrequency),
        "qualification_axis": QUALIFICATION_AXIS,
        "work_process_axis": WORK_PROCESS_AXIS,
    }
    return templates.TemplateResponse(request, "plan_form.html", context, status_code=status_code)


@router.get("/new", response_class=HTMLResponse)
def new_plan(
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Render an empty plan form."""

    return _render_form(request, session, profile, PlanForm(status=PlanStatus.PLANNED.value))


@router.post("")
def create(
    request: Request,
    form: PlanForm = Depends(plan_form),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Validate the submitted form and register a new plan."""

    try:
        data = validate_plan_form(form, grouped_options(session))
    except ValidationRequired as exc:
        return _render_form(
            request, session, profile, form, errors=exc.errors, status_code=exc.status_code
        )

    plan = create_plan(session, profile, data)
    log_activity(
        session,
        action="plan.created",
        entity_type="plan",
        entity_id=plan.id,
        details={"axis": plan.axis, "care_line": plan.care_line, "status": plan.status.value},
        profile=profile,
        commit=True,
    )
    logger.info("Plan %s created by %s", plan.id, profile.username)
    return RedirectResponse(url=f"/plans/{plan.id}", status_code=303)


@router.get("/{plan_id}", response_class=HTMLResponse)
def plan_detail(
    plan_id: str,
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Render a plan with its management actions when permitted."""

    plan = _load_plan(session, plan_id)
    can_manage, _ = can_manage_plan(plan, profile=profile)
    owner = session.get(Profile, plan.owner_id)
    return templates.TemplateResponse(
        request,
        "plan_detail.html",
        {
            "request": request,
            "profile": profile,
            "is_admin": is_admin(profile),
            "plan": plan,
            "owner": owner,
            "can_manage": can_manage,
        },
    )


@router.get("/{plan_id}/edit", response_class=HTMLResponse)
def edit_plan(
    plan_id: str,
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    plan = _load_plan(session, plan_id)
    _ensure_can_manage(plan, profile)
    return _render_form(request, session, profile, PlanForm.from_plan(plan), plan=plan)


@router.post("/{plan_id}")
def update(
    plan_id: str,
    request: Request,
    form: PlanForm = Depends(plan_form),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Overwrite a plan with the submitted form values."""

    plan = _load_plan(session, plan_id)
    _ensure_can_manage(plan, profile)

    try:
        data = validate_plan_form(form, grouped_options(session))
    except ValidationRequired as exc:
        return _render_form(
            request,
            session,
            profile,
            form,
            plan=plan,
            errors=exc.errors,
            status_code=exc.status_code,
        )

    previous_status = PlanStatus(plan.status)
    plan = update_plan(session, plan, data)
    details: dict[str, Any] = {"status": plan.status.value}
    if previous_status != plan.status:
        details["previous_status"] = previous_status.value
    log_activity(
        session,
        action="plan.updated",
        entity_type="plan",
        entity_id=plan.id,
        details=details,
        profile=profile,
        commit=True,
    )
    return RedirectResponse(url=f"/plans/{plan.id}", status_code=303)


@router.post("/{plan_id}/delete")
def delete(
    plan_id: str,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Remove a plan permanently."""

    plan = _load_plan(session, plan_id)
    _ensure_can_manage(plan, profile)

    details = {"axis": plan.axis, "care_line": plan.care_line}
    delete_plan(session, plan)
    log_activity(
        session,
        action="plan.deleted",
        entity_type="plan",
        entity_id=plan_id,
        details=details,
        profile=profile,
        commit=True,
    )
    logger.info("Plan %s deleted by %s", plan_id, profile.username)
    return RedirectResponse(url="/history", status_code=303)
