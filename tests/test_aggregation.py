from datetime import date, datetime

import pytest

from careplans.core.aggregation import (
    Bucket,
    Dimension,
    aggregate,
    average_lead_time,
    axis_completion_rates,
    care_line_distribution,
    category_distribution,
    percentage,
    resolution_rate,
    status_distribution,
    summarize,
    supporter_distribution,
    temporal_series,
)
from careplans.models.plans import EvaluationFrequency, Plan, PlanStatus


def _plan(plan_id: str, **overrides) -> Plan:
    values = {
        "id": plan_id,
        "owner_id": "owner-1",
        "axis": "X",
        "care_line": "DIABETES",
        "status": PlanStatus.PLANNED,
        "supporters": ["NURSING"],
        "categories": [],
        "summary": "",
        "goal": "",
        "evaluation_frequency": EvaluationFrequency.MONTHLY,
        "start_date": date(2024, 1, 1),
        "created_at": datetime(2024, 1, 1, 8, 0),
    }
    values.update(overrides)
    return Plan(**values)


def test_status_counts_partition_the_plans():
    plans = [
        _plan("a", status=PlanStatus.PLANNED),
        _plan("b", status=PlanStatus.COMPLETED),
        _plan("c", status=PlanStatus.COMPLETED),
        _plan("d", status=PlanStatus.SUSPENDED),
    ]

    buckets = status_distribution(plans)

    assert sum(bucket.count for bucket in buckets) == len(plans)
    assert [bucket.key for bucket in buckets] == ["planned", "completed", "suspended"]
    assert status_distribution([], include_empty=True) == [
        Bucket(key=status.value, count=0, percent=0) for status in PlanStatus
    ]


@pytest.mark.parametrize(
    ("part", "total", "expected"),
    [(0, 0, 0), (3, 0, 0), (1, 3, 33), (1, 2, 50), (2, 3, 67), (1, 8, 13), (5, 5, 100)],
)
def test_percentage_rounds_half_up_within_bounds(part, total, expected):
    assert percentage(part, total) == expected


def test_axis_completion_rates_per_axis():
    plans = [
        _plan("x1", axis="X", status=PlanStatus.COMPLETED),
        _plan("x2", axis="X", status=PlanStatus.IN_PROGRESS),
        _plan("y1", axis="Y", status=PlanStatus.COMPLETED),
    ]

    rates = {bucket.key: bucket.percent for bucket in axis_completion_rates(plans)}

    assert rates == {"X": 50, "Y": 100}


def test_temporal_series_orders_by_date_not_label():
    plans = [
        _plan("a", start_date=date(2024, 1, 15)),
        _plan("b", start_date=date(2023, 12, 2)),
        _plan("c", start_date=date(2024, 1, 3)),
        _plan("d", start_date=None),
    ]

    series = temporal_series(plans)

    assert [(bucket.key, bucket.count) for bucket in series] == [("12/2023", 1), ("01/2024", 2)]


def test_supporter_distribution_counts_each_plan_once_per_label():
    plans = [
        _plan("a", supporters=["NURSING", "PHARMACY"]),
        _plan("b", supporters=["PHARMACY"]),
        _plan("c", supporters=["PSYCHOLOGY", "PHARMACY", "PHARMACY"]),
    ]

    buckets = supporter_distribution(plans)

    assert [(bucket.key, bucket.count) for bucket in buckets] == [
        ("PHARMACY", 3),
        ("NURSING", 1),
        ("PSYCHOLOGY", 1),
    ]
    assert buckets[0].percent == 100


def test_category_and_care_line_distributions_put_most_common_first():
    plans = [
        _plan("a", care_line="MATERNAL", categories=["TRAINING"]),
        _plan("b", care_line="DIABETES", categories=["AUDIT", "TRAINING"]),
        _plan("c", care_line="DIABETES", categories=["AUDIT"]),
        _plan("d", care_line="DIABETES", categories=["AUDIT"]),
    ]

    care_lines = care_line_distribution(plans)
    categories = category_distribution(plans)

    assert [(bucket.key, bucket.count, bucket.percent) for bucket in care_lines] == [
        ("DIABETES", 3, 75),
        ("MATERNAL", 1, 25),
    ]
    assert [(bucket.key, bucket.count) for bucket in categories] == [
        ("AUDIT", 3),
        ("TRAINING", 2),
    ]


def test_resolution_rate_and_summary():
    plans = [
        _plan("a", status=PlanStatus.COMPLETED),
        _plan("b", status=PlanStatus.IN_PROGRESS),
        _plan("c", status=PlanStatus.IN_PROGRESS),
    ]

    summary = summarize(plans)

    assert resolution_rate(plans) == 33
    assert summary.total == 3
    assert summary.in_progress == 2
    assert summary.completed == 1
    assert resolution_rate([]) == 0


def test_average_lead_time_prefers_completed_at():
    plans = [
        _plan(
            "a",
            status=PlanStatus.COMPLETED,
            start_date=date(2024, 1, 1),
            completed_at=datetime(2024, 1, 11, 17, 30),
        ),
        _plan(
            "b",
            status=PlanStatus.COMPLETED,
            start_date=date(2024, 1, 1),
            created_at=datetime(2024, 1, 6, 8, 0),
        ),
        _plan("c", status=PlanStatus.PLANNED, start_date=date(2020, 1, 1)),
    ]

    assert average_lead_time(plans) == 7.5
    assert average_lead_time([plans[2]]) is None


def test_average_lead_time_keeps_negative_durations():
    plans = [
        _plan(
            "a",
            status=PlanStatus.COMPLETED,
            start_date=date(2024, 3, 10),
            completed_at=datetime(2024, 3, 5, 12, 0),
        ),
        _plan(
            "b",
            status=PlanStatus.COMPLETED,
            start_date=date(2024, 3, 1),
            completed_at=datetime(2024, 3, 4, 12, 0),
        ),
    ]

    assert average_lead_time(plans[:1]) == -5.0
    assert average_lead_time(plans) == -1.0


def test_aggregate_dispatches_on_dimension_name():
    plans = [_plan("a", care_line="MATERNAL"), _plan("b", care_line="MATERNAL")]

    assert aggregate(plans, "care_line") == [Bucket(key="MATERNAL", count=2, percent=100)]
    assert aggregate(plans, Dimension.MONTH) == [Bucket(key="01/2024", count=2, percent=100)]
