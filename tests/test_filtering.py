from datetime import date, datetime

from careplans.core.filtering import FilterState, as_calendar_date, filter_choices, filter_plans
from careplans.models.options import OptionType
from careplans.models.plans import EvaluationFrequency, Plan, PlanStatus


def _plan(plan_id: str, **overrides) -> Plan:
    values = {
        "id": plan_id,
        "owner_id": "owner-1",
        "axis": "CARE",
        "care_line": "DIABETES",
        "status": PlanStatus.PLANNED,
        "supporters": ["NURSING"],
        "categories": [],
        "summary": "Weekly foot checks",
        "goal": "Reduce ulcers",
        "evaluation_frequency": EvaluationFrequency.MONTHLY,
        "start_date": date(2024, 1, 10),
        "created_at": datetime(2024, 1, 10, 9, 0),
    }
    values.update(overrides)
    return Plan(**values)


def _sample_plans() -> list[Plan]:
    return [
        _plan("p-1", care_line="DIABETES", supporters=["NURSING", "NUTRITION"]),
        _plan(
            "p-2",
            care_line="HYPERTENSION",
            axis="WORK PROCESS",
            status=PlanStatus.IN_PROGRESS,
            start_date=date(2024, 3, 1),
        ),
        _plan(
            "p-3",
            care_line="DIABETES",
            status=PlanStatus.COMPLETED,
            supporters=["PHARMACY"],
            summary="Insulin group sessions",
            start_date=date(2023, 12, 31),
        ),
        _plan("p-4", care_line="MATERNAL", start_date=None),
    ]


def test_empty_filter_keeps_every_plan_in_order():
    plans = _sample_plans()

    assert filter_plans(plans, FilterState()) == plans


def test_filter_is_idempotent():
    plans = _sample_plans()
    state = FilterState(care_line="DIABETES", supporter="NURSING")

    once = filter_plans(plans, state)

    assert filter_plans(once, state) == once
    assert [plan.id for plan in once] == ["p-1"]


def test_adding_a_criterion_never_grows_the_result():
    plans = _sample_plans()
    broad = filter_plans(plans, FilterState(care_line="DIABETES"))
    narrow = filter_plans(plans, FilterState(care_line="DIABETES", status=PlanStatus.COMPLETED))

    assert {plan.id for plan in narrow} <= {plan.id for plan in broad}
    assert [plan.id for plan in narrow] == ["p-3"]


def test_supporter_matches_membership():
    plans = _sample_plans()

    result = filter_plans(plans, FilterState(supporter="NUTRITION"))

    assert [plan.id for plan in result] == ["p-1"]


def test_date_bounds_are_inclusive_calendar_days():
    plans = _sample_plans()
    state = FilterState(start_date=date(2024, 1, 10), end_date=date(2024, 3, 1))

    result = filter_plans(plans, state)

    assert [plan.id for plan in result] == ["p-1", "p-2"]


def test_plans_without_start_date_do_not_match_a_date_bound():
    plans = _sample_plans()

    result = filter_plans(plans, FilterState(end_date=date(2030, 1, 1)))

    assert "p-4" not in {plan.id for plan in result}


def test_datetime_start_dates_compare_by_calendar_day():
    plan = _plan("p-9", start_date=datetime(2024, 5, 31, 23, 59))

    result = filter_plans([plan], FilterState(start_date=date(2024, 5, 31), end_date=date(2024, 5, 31)))

    assert result == [plan]


def test_search_is_case_insensitive_across_fields():
    plans = _sample_plans()

    assert [plan.id for plan in filter_plans(plans, FilterState(search_text="insulin"))] == ["p-3"]
    assert [plan.id for plan in filter_plans(plans, FilterState(search_text="hyperTENSION"))] == ["p-2"]
    assert [plan.id for plan in filter_plans(plans, FilterState(search_text="P-4"))] == ["p-4"]


def test_from_params_treats_blank_and_all_as_any():
    state = FilterState.from_params(
        {
            "status": "all",
            "axis": "",
            "care_line": " DIABETES ",
            "supporter": "any",
            "start_date": "not-a-date",
            "end_date": "2024-02-29",
            "q": "  foot ",
        }
    )

    assert state.status is None
    assert state.axis is None
    assert state.care_line == "DIABETES"
    assert state.supporter is None
    assert state.start_date is None
    assert state.end_date == date(2024, 2, 29)
    assert state.search_text == "foot"


def test_from_params_ignores_unknown_status():
    assert FilterState.from_params({"status": "archived"}).status is None
    assert FilterState.from_params({"status": "completed"}).status == PlanStatus.COMPLETED


def test_signature_tracks_every_criterion():
    base = FilterState(care_line="DIABETES")

    assert base.signature() == FilterState(care_line="DIABETES").signature()
    assert base.signature() != FilterState(care_line="DIABETES", search_text="x").signature()
    assert FilterState().signature() == ""
    assert not FilterState().is_active
    assert base.is_active


def test_signature_escapes_values():
    status_and_search = FilterState(status=PlanStatus.COMPLETED, search_text="a")
    search_only = FilterState(search_text="a&status=completed")

    assert status_and_search.signature() == "q=a&status=completed"
    assert search_only.signature() != status_and_search.signature()


def test_selection_follows_rename_and_delete():
    state = FilterState(axis="CARE", supporter="NURSING")

    renamed = state.with_renamed_label(OptionType.SUPPORTER, "NURSING", "NURSING TEAM")
    untouched = state.with_renamed_label(OptionType.CARE_LINE, "NURSING", "OTHER")
    cleared = state.without_label(OptionType.AXIS, "CARE")

    assert renamed.supporter == "NURSING TEAM"
    assert untouched is state
    assert cleared.axis is None
    assert cleared.supporter == "NURSING"


def test_filter_choices_are_sorted_and_unique():
    choices = filter_choices(_sample_plans())

    assert choices["care_line"] == ["DIABETES", "HYPERTENSION", "MATERNAL"]
    assert choices["supporter"] == ["NURSING", "NUTRITION", "PHARMACY"]
    assert choices["status"] == ["completed", "in_progress", "planned"]


def test_as_calendar_date_accepts_strings_and_datetimes():
    assert as_calendar_date("2024-01-05T22:00:00+00:00") == date(2024, 1, 5)
    assert as_calendar_date(datetime(2024, 1, 5, 1, 0)) == date(2024, 1, 5)
    assert as_calendar_date("") is None
    assert as_calendar_date("05/01/2024") is None
