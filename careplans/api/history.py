"""Filterable, paginated history of every registered plan."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from careplans.core.auth import require_profile
from careplans.core.config import TEMPLATES_DIR
from careplans.core.db import get_session
from careplans.core.filtering import FilterState, filter_choices, filter_plans
from careplans.core.pagination import (
    PageState,
    paginate,
    pagination_context,
    reconcile_page,
)
from careplans.core.permissions import can_manage_plan, is_admin
from careplans.core.plans import list_plans
from careplans.models.options import OptionType
from careplans.models.profiles import Profile

router = APIRouter()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

HISTORY_FILTERS_KEY = "history_filters"
APPLIED_PARAM = "applied"

_FILTER_PARAMS = ("status", "axis", "care_line", "supporter", "start_date", "end_date", "q")


def load_saved_filters(session_data: Mapping[str, Any]) -> FilterState:
    """Return the history filters remembered in the browser session."""

    return FilterState.from_params(session_data.get(HISTORY_FILTERS_KEY) or {})


def save_filters(session_data: dict[str, Any], filters: FilterState) -> None:
    session_data[HISTORY_FILTERS_KEY] = filters.as_params()


def follow_option_rename(
    session_data: dict[str, Any], option_type: OptionType, old: str, new: str
) -> None:
    """Keep a remembered selection pointing at a renamed option label."""

    if HISTORY_FILTERS_KEY not in session_data:
        return
    save_filters(session_data, load_saved_filters(session_data).with_renamed_label(option_type, old, new))


def forget_option_label(session_data: dict[str, Any], option_type: OptionType, label: str) -> None:
    """Clear a remembered selection whose option label was deleted."""

    if HISTORY_FILTERS_KEY not in session_data:
        return
    save_filters(session_data, load_saved_filters(session_data).without_label(option_type, label))


def _requested_filters(request: Request) -> tuple[FilterState, bool]:
    """Return the filters for this render and whether they differ from the last one.

    A request carrying no filter parameters at all (for example the nav link)
    restores the filters remembered in the session. Forms and pager links
    send the signature of the filters they were rendered with as
    ``applied`` so a change of criteria can be told apart from paging.
    """

    params = request.query_params
    submitted = APPLIED_PARAM in params or any(name in params for name in _FILTER_PARAMS)
    if not submitted:
        return load_saved_filters(request.session), False

    filters = FilterState.from_params(params)
    previous = params.get(APPLIED_PARAM)
    changed = previous is None or previous != filters.signature()
    return filters, changed


def _query_string(filters: FilterState, page_state: PageState, **extra: Any) -> str:
    params: dict[str, Any] = {
        **filters.as_params(),
        APPLIED_PARAM: filters.signature(),
        "page_size": page_state.page_size,
    }
    params.update(extra)
    return urlencode(params)


@router.get("/history", response_class=HTMLResponse)
def history(
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Render one page of the filtered plan history."""

    plans = list_plans(session)
    filters, filters_changed = _requested_filters(request)
    save_filters(request.session, filters)

    filtered = filter_plans(plans, filters)
    page_state = reconcile_page(
        PageState.from_params(request.query_params),
        len(filtered),
        filters_changed=filters_changed,
    )

    rows = []
    for plan in paginate(filtered, page_state.page_index, page_state.page_size):
        allowed, _ = can_manage_plan(plan, profile=profile)
        rows.append({"plan": plan, "can_manage": allowed})

    pagination = pagination_context(page_state, len(filtered))
    pagination["page_urls"] = {
        page: f"/history?{_query_string(filters, page_state, page=page)}"
        for page in {*pagination["window"], 1, pagination["total_pages"]}
    }

    return templates.TemplateResponse(
        request,
        "history.html",
        {
            "request": request,
            "profile": profile,
            "is_admin": is_admin(profile),
            "filters": filters,
            "applied_signature": filters.signature(),
            "choices": filter_choices(plans),
            "rows": rows,
            "pagination": pagination,
        },
    )
