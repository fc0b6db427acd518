"""Grouped counts and derived metrics for the dashboard."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from careplans.core.filtering import as_calendar_date
from careplans.models.plans import Plan, PlanStatus


@dataclass(frozen=True)
class Bucket:
    """A single ``(key, count)`` entry in an aggregation series."""

    key: str
    count: int
    percent: int = 0


@dataclass(frozen=True)
class DashboardSummary:
    """Headline figures displayed above the dashboard charts."""

    total: int
    in_progress: int
    completed: int
    resolution_rate: int
    average_lead_time_days: float | None


class Dimension(str, Enum):
    """Grouping dimensions understood by :func:`aggregate`."""

    STATUS = "status"
    AXIS = "axis"
    CARE_LINE = "care_line"
    SUPPORTER = "supporter"
    CATEGORY = "category"
    MONTH = "month"


def percentage(part: int, total: int) -> int:
    """Return ``part / total`` as an integer percentage rounded half-up."""

    if total <= 0 or part <= 0:
        return 0
    # Integer arithmetic keeps .5 boundaries exact.
    return min(100, (200 * part + total) // (2 * total))


def _buckets(counts: dict[str, int], total: int) -> list[Bucket]:
    return [Bucket(key=key, count=count, percent=percentage(count, total)) for key, count in counts.items()]


def _by_count_desc(counts: Counter[str], total: int) -> list[Bucket]:
    # sorted() is stable, so ties keep their first-seen order.
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return _buckets(dict(ordered), total)


def _is_completed(plan: Plan) -> bool:
    return plan.status == PlanStatus.COMPLETED


def status_distribution(plans: Sequence[Plan], *, include_empty: bool = False) -> list[Bucket]:
    """Return plan counts per status in life-cycle order."""

    counts: dict[str, int] = {status.value: 0 for status in PlanStatus}
    for plan in plans:
        counts[PlanStatus(plan.status).value] += 1

    buckets = _buckets(counts, len(plans))
    if include_empty:
        return buckets
    return [bucket for bucket in buckets if bucket.count > 0]


def axis_distribution(plans: Sequence[Plan]) -> list[Bucket]:
    """Return plan counts per axis, most common first."""

    return _by_count_desc(Counter(plan.axis for plan in plans), len(plans))


def axis_completion_rates(plans: Sequence[Plan]) -> list[Bucket]:
    """Return the completed share of each axis present in ``plans``.

    ``count`` holds the completed plans for the axis while ``percent`` holds
    ``completed / total`` for that axis.
    """

    totals: dict[str, int] = {}
    completed: dict[str, int] = {}
    for plan in plans:
        totals[plan.axis] = totals.get(plan.axis, 0) + 1
        if _is_completed(plan):
            completed[plan.axis] = completed.get(plan.axis, 0) + 1

    return [
        Bucket(
            key=axis,
            count=completed.get(axis, 0),
            percent=percentage(completed.get(axis, 0), total),
        )
        for axis, total in totals.items()
    ]


def temporal_series(plans: Sequence[Plan]) -> list[Bucket]:
    """Return plan counts per start month, oldest month first.

    Keys use the ``MM/YYYY`` display format but ordering follows the
    underlying ``(year, month)`` so that ``01/2024`` follows ``12/2023``.
    """

    counts: Counter[tuple[int, int]] = Counter()
    for plan in plans:
        start = as_calendar_date(plan.start_date)
        if start is None:
            continue
        counts[(start.year, start.month)] += 1

    total = sum(counts.values())
    return [
        Bucket(key=f"{month:02d}/{year}", count=count, percent=percentage(count, total))
        for (year, month), count in sorted(counts.items())
    ]


def _flattened(plans: Iterable[Plan], attribute: str) -> Counter[str]:
    counts: Counter[str] = Counter()
    for plan in plans:
        # Each distinct label counts once per plan.
        counts.update(dict.fromkeys(getattr(plan, attribute) or [], 1))
    return counts


def supporter_distribution(plans: Sequence[Plan]) -> list[Bucket]:
    """Return how many plans involve each supporter."""

    return _by_count_desc(_flattened(plans, "supporters"), len(plans))


def category_distribution(plans: Sequence[Plan]) -> list[Bucket]:
    """Return how many plans carry each qualification category."""

    return _by_count_desc(_flattened(plans, "categories"), len(plans))


def care_line_distribution(plans: Sequence[Plan]) -> list[Bucket]:
    """Return plan counts per care line, most common first."""

    return _by_count_desc(Counter(plan.care_line for plan in plans), len(plans))


def resolution_rate(plans: Sequence[Plan]) -> int:
    """Return the percentage of ``plans`` that are completed."""

    return percentage(sum(1 for plan in plans if _is_completed(plan)), len(plans))


def _lead_time_end(plan: Plan) -> date | None:
    reference: datetime | None = plan.completed_at or plan.created_at
    return as_calendar_date(reference)


def average_lead_time(plans: Iterable[Plan]) -> float | None:
    """Return the mean days from start to completion over completed plans.

    Plans completed before the tracker recorded ``completed_at`` fall back to
    their ``created_at`` timestamp. Returns ``None`` when nothing qualifies.
    """

    durations: list[int] = []
    for plan in plans:
        if not _is_completed(plan):
            continue
        start = as_calendar_date(plan.start_date)
        end = _lead_time_end(plan)
        if start is None or end is None:
            continue
        durations.append((end - start).days)

    if not durations:
        return None
    return round(sum(durations) / len(durations), 1)


def summarize(plans: Sequence[Plan]) -> DashboardSummary:
    """Return headline metrics for ``plans``."""

    return DashboardSummary(
        total=len(plans),
        in_progress=sum(1 for plan in plans if plan.status == PlanStatus.IN_PROGRESS),
        completed=sum(1 for plan in plans if _is_completed(plan)),
        resolution_rate=resolution_rate(plans),
        average_lead_time_days=average_lead_time(plans),
    )


_DIMENSIONS: dict[Dimension, Callable[[Sequence[Plan]], list[Bucket]]] = {
    Dimension.STATUS: status_distribution,
    Dimension.AXIS: axis_distribution,
    Dimension.CARE_LINE: care_line_distribution,
    Dimension.SUPPORTER: supporter_distribution,
    Dimension.CATEGORY: category_distribution,
    Dimension.MONTH: temporal_series,
}


def aggregate(plans: Sequence[Plan], dimension: Dimension | str) -> list[Bucket]:
    """Group ``plans`` by ``dimension`` and return the ordered buckets."""

    return _DIMENSIONS[Dimension(dimension)](list(plans))
