"""Dashboard views: headline figures and chart series over filtered plans."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from careplans.core.aggregation import (
    Bucket,
    Dimension,
    aggregate,
    axis_completion_rates,
    axis_distribution,
    care_line_distribution,
    category_distribution,
    status_distribution,
    summarize,
    supporter_distribution,
    temporal_series,
)
from careplans.core.auth import require_profile
from careplans.core.config import TEMPLATES_DIR
from careplans.core.db import get_session
from careplans.core.filtering import FilterState, filter_choices, filter_plans
from careplans.core.permissions import is_admin
from careplans.core.plans import list_plans
from careplans.models.plans import PlanStatus
from careplans.models.profiles import Profile

router = APIRouter()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

_RECENT_PLAN_COUNT = 5

STATUS_COLORS: dict[str, str] = {
    PlanStatus.PLANNED.value: "#137fec",
    PlanStatus.IN_PROGRESS.value: "#f97316",
    PlanStatus.COMPLETED.value: "#078838",
    PlanStatus.SUSPENDED.value: "#ef4444",
}


def _serialize_buckets(buckets: Sequence[Bucket]) -> list[dict[str, Any]]:
    return [
        {"key": bucket.key, "count": bucket.count, "percent": bucket.percent}
        for bucket in buckets
    ]


def _build_dashboard_context(plans: Sequence[Any]) -> dict[str, Any]:
    """Aggregate the filtered plans into the figures the dashboard renders."""

    summary = summarize(plans)
    status_series = [
        {
            "key": bucket.key,
            "label": PlanStatus(bucket.key).label,
            "count": bucket.count,
            "percent": bucket.percent,
            "color": STATUS_COLORS[bucket.key],
        }
        for bucket in status_distribution(plans)
    ]

    return {
        "summary": summary,
        "status_series": status_series,
        "status_totals": _serialize_buckets(status_distribution(plans, include_empty=True)),
        "axis_series": _serialize_buckets(axis_distribution(plans)),
        "axis_completion": _serialize_buckets(axis_completion_rates(plans)),
        "temporal_series": _serialize_buckets(temporal_series(plans)),
        "supporter_series": _serialize_buckets(supporter_distribution(plans)),
        "care_line_series": _serialize_buckets(care_line_distribution(plans)),
        "category_series": _serialize_buckets(category_distribution(plans)),
        "recent_plans": list(plans[:_RECENT_PLAN_COUNT]),
        "has_any_plans": bool(plans),
    }


@router.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
):
    """Render the dashboard for the plans matching the query filters."""

    plans = list_plans(session)
    filters = FilterState.from_params(request.query_params)
    filtered = filter_plans(plans, filters)

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "request": request,
            "profile": profile,
            "is_admin": is_admin(profile),
            "filters": filters,
            "applied_signature": filters.signature(),
            "choices": filter_choices(plans),
            "dashboard": _build_dashboard_context(filtered),
        },
    )


@router.get("/dashboard/series/{dimension}")
def dashboard_series(
    dimension: Dimension,
    request: Request,
    session: Session = Depends(get_session),
    profile: Profile = Depends(require_profile),
) -> dict[str, Any]:
    """Return one chart series as JSON for client-side chart rendering."""

    filters = FilterState.from_params(request.query_params)
    filtered = filter_plans(list_plans(session), filters)
    return {
        "dimension": dimension.value,
        "total": len(filtered),
        "buckets": _serialize_buckets(aggregate(filtered, dimension)),
    }
