"""Predicate filtering over the in-memory plan working set.

Every criterion in :class:`FilterState` is independent; ``None`` (or an empty
search string) means "any value". :func:`filter_plans` combines the active
criteria with a logical AND and preserves the input order, so callers can
feed the result straight into aggregation or pagination.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any
from urllib.parse import urlencode

from careplans.models.options import OptionType
from careplans.models.plans import Plan, PlanStatus

ANY_VALUES = frozenset({"", "all", "any"})

# Fields inspected by the free-text search.
SEARCH_FIELDS: tuple[str, ...] = ("care_line", "axis", "summary", "goal", "id")


def _clean_query_value(raw: Any) -> str | None:
    if raw is None:
        return None
    cleaned = str(raw).strip()
    if cleaned.lower() in ANY_VALUES:
        return None
    return cleaned


def as_calendar_date(value: date | datetime | str | None) -> date | None:
    """Return ``value`` as a plain calendar date.

    Datetimes are truncated rather than converted between timezones so that a
    plan starting on a given day always compares equal to that day.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _parse_status(raw: Any) -> PlanStatus | None:
    cleaned = _clean_query_value(raw)
    if cleaned is None:
        return None
    try:
        return PlanStatus(cleaned)
    except ValueError:
        return None


@dataclass(frozen=True)
class FilterState:
    """Snapshot of the filters applied to a dashboard or history render."""

    status: PlanStatus | None = None
    axis: str | None = None
    care_line: str | None = None
    supporter: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    search_text: str = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FilterState":
        """Build a filter state from query or form parameters."""

        return cls(
            status=_parse_status(params.get("status")),
            axis=_clean_query_value(params.get("axis")),
            care_line=_clean_query_value(params.get("care_line")),
            supporter=_clean_query_value(params.get("supporter")),
            start_date=as_calendar_date(_clean_query_value(params.get("start_date"))),
            end_date=as_calendar_date(_clean_query_value(params.get("end_date"))),
            search_text=(params.get("q") or "").strip(),
        )

    @property
    def is_active(self) -> bool:
        return self != FilterState()

    def as_params(self) -> dict[str, str]:
        """Return the non-empty criteria as query parameters."""

        params = {
            "status": self.status.value if self.status else "",
            "axis": self.axis or "",
            "care_line": self.care_line or "",
            "supporter": self.supporter or "",
            "start_date": self.start_date.isoformat() if self.start_date else "",
            "end_date": self.end_date.isoformat() if self.end_date else "",
            "q": self.search_text,
        }
        return {key: value for key, value in params.items() if value}

    def signature(self) -> str:
        """Return a stable key that changes whenever any criterion changes."""

        return urlencode(sorted(self.as_params().items()))

    def with_renamed_label(self, option_type: OptionType, old: str, new: str) -> "FilterState":
        """Return a copy whose selection for ``option_type`` follows a rename."""

        field_name = _SELECTION_FIELDS.get(option_type)
        if field_name is None or getattr(self, field_name) != old:
            return self
        return replace(self, **{field_name: new})

    def without_label(self, option_type: OptionType, label: str) -> "FilterState":
        """Return a copy that no longer selects a deleted ``label``."""

        field_name = _SELECTION_FIELDS.get(option_type)
        if field_name is None or getattr(self, field_name) != label:
            return self
        return replace(self, **{field_name: None})


_SELECTION_FIELDS: dict[OptionType, str] = {
    OptionType.AXIS: "axis",
    OptionType.CARE_LINE: "care_line",
    OptionType.SUPPORTER: "supporter",
}


def _matches_search(plan: Plan, term: str) -> bool:
    for field_name in SEARCH_FIELDS:
        value = getattr(plan, field_name, None)
        if value and term in str(value).casefold():
            return True
    return False


def _matches_dates(plan: Plan, state: FilterState) -> bool:
    if state.start_date is None and state.end_date is None:
        return True

    start = as_calendar_date(plan.start_date)
    if start is None:
        return False
    if state.start_date is not None and start < state.start_date:
        return False
    if state.end_date is not None and start > state.end_date:
        return False
    return True


def matches(plan: Plan, state: FilterState) -> bool:
    """Return ``True`` when ``plan`` satisfies every active criterion."""

    if state.status is not None and plan.status != state.status:
        return False
    if state.axis is not None and plan.axis != state.axis:
        return False
    if state.care_line is not None and plan.care_line != state.care_line:
        return False
    if state.supporter is not None and state.supporter not in (plan.supporters or []):
        return False
    if not _matches_dates(plan, state):
        return False

    term = state.search_text.casefold()
    if term and not _matches_search(plan, term):
        return False

    return True


def filter_plans(plans: Iterable[Plan], state: FilterState) -> list[Plan]:
    """Return the plans matching ``state`` in their original order."""

    return [plan for plan in plans if matches(plan, state)]


def filter_choices(plans: Iterable[Plan]) -> dict[str, list[str]]:
    """Return the sorted distinct values available to each filter dropdown."""

    statuses: set[str] = set()
    axes: set[str] = set()
    care_lines: set[str] = set()
    supporters: set[str] = set()

    for plan in plans:
        statuses.add(PlanStatus(plan.status).value)
        if plan.axis:
            axes.add(plan.axis)
        if plan.care_line:
            care_lines.add(plan.care_line)
        supporters.update(plan.supporters or [])

    return {
        "status": sorted(statuses),
        "axis": sorted(axes),
        "care_line": sorted(care_lines),
        "supporter": sorted(supporters),
    }
