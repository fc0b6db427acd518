"""Administrative endpoints: controlled vocabularies and the activity log."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session, select

from careplans.api.history import follow_option_rename, forget_option_label
from careplans.core.activity_log import log_activity
from careplans.core.aggregation import Bucket, Dimension, aggregate
from careplans.core.auth import require_profile
from careplans.core.config import TEMPLATES_DIR
from careplans.core.db import get_session
from careplans.core.errors import (
    OptionNotFound,
    PartialCascadeFailure,
    PermissionDenied,
    PlanTrackerError,
)
from careplans.core.options import (
    add_option,
    grouped_options,
    rename_option,
    resume_rename,
)
from careplans.core.options import delete_option as remove_option
from careplans.core.pagination import PageState, paginate, pagination_context
from careplans.core.permissions import is_admin
from careplans.core.plans import list_plans
from careplans.models.activity import ActivityLog
from careplans.models.options import OptionType
from careplans.models.profiles import Profile

router = APIRouter(prefix="/admin")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

_USAGE_DIMENSIONS: dict[OptionType, Dimension] = {
    OptionType.AXIS: Dimension.AXIS,
    OptionType.CARE_LINE: Dimension.CARE_LINE,
    OptionType.SUPPORTER: Dimension.SUPPORTER,
    OptionType.CATEGORY: Dimension.CATEGORY,
}


def require_admin(profile: Profile = Depends(require_profile)) -> Profile:
    """Dependency guard for administrator-only routes."""

    if not is_admin(profile):
        exc = PermissionDenied("Only administrators can manage settings.")
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)
    return profile


def _clean_query_value(raw: str | None) -> str | None:
    if raw is None:
        return None
    cleaned = raw.strip()
    return cleaned or None


def _usage_counts(session: Session) -> dict[str, dict[str, int]]:
    plans = list_plans(session)
    usage: dict[str, dict[str, int]] = {}
    for option_type, dimension in _USAGE_DIMENSIONS.items():
        buckets: Sequence[Bucket] = aggregate(plans, dimension)
        usage[option_type.value] = {bucket.key: bucket.count for bucket in buckets}
    return usage


def _render_options(
    request: Request,
    session: Session,
    profile: Profile,
    *,
    error: str | None = None,
    pending_rename: dict[str, str] | None = None,
    status_code: int = 200,
):
    grouped = grouped_options(session)
    context = {
        "request": request,
        "profile": profile,
        "is_admin": True,
        "option_types": list(OptionType),
        "options": {option_type.value: labels for option_type, labels in grouped.items()},
        "usage": _usage_counts(session),
        "notice": request.query_params.get("notice"),
        "warning": request.query_params.get("warning"),
        "error": error,
        "pending_rename": pending_rename,
    }
    return templates.TemplateResponse(request, "options.html", context, status_code=status_code)


def _redirect_to_options(**messages: str) -> RedirectResponse:
    url = router.url_path_for("options")
    query = urlencode({key: value for key, value in messages.items() if value})
    if query:
        url = f"{url}?{query}"
    return RedirectResponse(url=url, status_code=303)


def _record_cascade_failure(
    session: Session, profile: Profile, exc: PartialCascadeFailure
) -> None:
    log_activity(
        session,
        action="option.rename_failed",
        entity_type="config_option",
        entity_id=f"{exc.option_type}:{exc.new_label}",
        details={
            "old_label": exc.old_label,
            "new_label": exc.new_label,
            "updated_ids": exc.updated_ids,
            "failed_ids": exc.failed_ids,
        },
        profile=profile,
        commit=True,
    )


@router.get("/options", response_class=HTMLResponse)
def options(
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_admin),
):
    """Render every vocabulary with usage counts and management forms."""

    return _render_options(request, session, profile)


@router.post("/options/{option_type}")
def create_option(
    option_type: OptionType,
    request: Request,
    label: str = Form(""),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_admin),
):
    """Add a label to a vocabulary."""

    try:
        option = add_option(session, option_type, label)
    except PlanTrackerError as exc:
        return _render_options(
            request, session, profile, error=exc.message, status_code=exc.status_code
        )

    log_activity(
        session,
        action="option.added",
        entity_type="config_option",
        entity_id=option.id,
        details={"type": option_type.value, "label": option.label},
        profile=profile,
        commit=True,
    )
    return _redirect_to_options(notice=f"{option.label} added to {option_type.label}.")


@router.post("/options/{option_type}/rename")
def rename(
    option_type: OptionType,
    request: Request,
    old_label: str = Form(...),
    new_label: str = Form(""),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_admin),
):
    """Rename a label and carry the new label into every plan using it."""

    try:
        result = rename_option(session, option_type, old_label, new_label)
    except OptionNotFound as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    except PartialCascadeFailure as exc:
        _record_cascade_failure(session, profile, exc)
        follow_option_rename(request.session, option_type, exc.old_label, exc.new_label)
        return _render_options(
            request,
            session,
            profile,
            error=exc.message,
            pending_rename={
                "option_type": exc.option_type,
                "old_label": exc.old_label,
                "new_label": exc.new_label,
            },
            status_code=exc.status_code,
        )
    except PlanTrackerError as exc:
        return _render_options(
            request, session, profile, error=exc.message, status_code=exc.status_code
        )

    if result.old_label == result.new_label:
        return _redirect_to_options()

    follow_option_rename(request.session, option_type, result.old_label, result.new_label)
    log_activity(
        session,
        action="option.renamed",
        entity_type="config_option",
        entity_id=f"{option_type.value}:{result.new_label}",
        details={
            "old_label": result.old_label,
            "new_label": result.new_label,
            "updated_plans": len(result.updated_ids),
        },
        profile=profile,
        commit=True,
    )
    return _redirect_to_options(
        notice=(
            f"{result.old_label} renamed to {result.new_label}; "
            f"{len(result.updated_ids)} plan(s) updated."
        )
    )


@router.post("/options/{option_type}/resume")
def resume_option_rename(
    option_type: OptionType,
    request: Request,
    old_label: str = Form(...),
    new_label: str = Form(...),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_admin),
):
    """Re-run an interrupted rename cascade for the plans it missed."""

    try:
        result = resume_rename(session, option_type, old_label, new_label)
    except OptionNotFound as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    except PartialCascadeFailure as exc:
        _record_cascade_failure(session, profile, exc)
        return _render_options(
            request,
            session,
            profile,
            error=exc.message,
            pending_rename={
                "option_type": exc.option_type,
                "old_label": exc.old_label,
                "new_label": exc.new_label,
            },
            status_code=exc.status_code,
        )
    except PlanTrackerError as exc:
        return _render_options(
            request, session, profile, error=exc.message, status_code=exc.status_code
        )

    log_activity(
        session,
        action="option.rename_resumed",
        entity_type="config_option",
        entity_id=f"{option_type.value}:{result.new_label}",
        details={
            "old_label": result.old_label,
            "new_label": result.new_label,
            "updated_plans": len(result.updated_ids),
        },
        profile=profile,
        commit=True,
    )
    return _redirect_to_options(
        notice=f"Rename of {old_label} finished; {len(result.updated_ids)} plan(s) updated."
    )


@router.post("/options/{option_type}/delete")
def delete_option(
    option_type: OptionType,
    request: Request,
    label: str = Form(...),
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_admin),
):
    """Delete a label; plans already using it keep it as stored."""

    try:
        references = remove_option(session, option_type, label)
    except OptionNotFound as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    except PlanTrackerError as exc:
        return _render_options(
            request, session, profile, error=exc.message, status_code=exc.status_code
        )

    forget_option_label(request.session, option_type, label)
    log_activity(
        session,
        action="option.deleted",
        entity_type="config_option",
        entity_id=f"{option_type.value}:{label}",
        details={"label": label, "references": references},
        profile=profile,
        commit=True,
    )

    warning = None
    if references:
        warning = f"{label} is still used by {references} plan(s); those plans keep the old label."
    return _redirect_to_options(notice=f"{label} removed from {option_type.label}.", warning=warning)


def _serialize_activity_entry(entry: ActivityLog, profiles: dict[str, Profile]) -> dict[str, Any]:
    profile_label: str | None = None
    if entry.profile_id:
        actor = profiles.get(entry.profile_id)
        profile_label = actor.display_name if actor else f"Profile {entry.profile_id}"

    details = entry.details
    details_json = "null" if details is None else json.dumps(details, sort_keys=True, indent=2)

    return {
        "id": entry.id,
        "timestamp": entry.timestamp,
        "timestamp_display": entry.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
        "action": entry.action,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "details": details,
        "details_json": details_json,
        "profile_label": profile_label,
    }


@router.get("/activity", response_class=HTMLResponse)
def activity_log(
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_admin),
):
    """Render the activity log with filtering controls."""

    params = request.query_params
    action = _clean_query_value(params.get("action"))
    entity_type = _clean_query_value(params.get("entity_type"))

    stmt = select(ActivityLog).order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    if entity_type:
        stmt = stmt.where(ActivityLog.entity_type == entity_type)
    rows = session.exec(stmt).all()

    page_state = PageState.from_params(params).clamp(len(rows))
    profiles = {row.id: row for row in session.exec(select(Profile)).all()}
    entries = [
        _serialize_activity_entry(row, profiles)
        for row in paginate(rows, page_state.page_index, page_state.page_size)
    ]

    action_options = session.exec(
        select(ActivityLog.action).distinct().order_by(ActivityLog.action)
    ).all()
    entity_type_options = session.exec(
        select(ActivityLog.entity_type).distinct().order_by(ActivityLog.entity_type)
    ).all()

    filter_form = {"action": action or "", "entity_type": entity_type or ""}
    return templates.TemplateResponse(
        request,
        "activity.html",
        {
            "request": request,
            "profile": profile,
            "is_admin": True,
            "action_options": action_options,
            "entity_type_options": entity_type_options,
            "filter_form": filter_form,
            "filter_query": urlencode({key: value for key, value in filter_form.items() if value}),
            "entries": entries,
            "pagination": pagination_context(page_state, len(rows)),
        },
    )
