"""Plan persistence helpers and form validation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlmodel import Session, select

from careplans.core.errors import ValidationRequired
from careplans.core.filtering import as_calendar_date
from careplans.models.base import utcnow
from careplans.models.options import OptionType
from careplans.models.plans import (
    QUALIFICATION_AXIS,
    WORK_PROCESS_AXIS,
    EvaluationFrequency,
    Plan,
    PlanStatus,
)
from careplans.models.profiles import Profile


def list_plans(session: Session) -> list[Plan]:
    """Return the working set of plans, newest first."""

    return list(session.exec(select(Plan).order_by(Plan.created_at.desc())).all())


def get_plan(session: Session, plan_id: str) -> Plan | None:
    return session.get(Plan, plan_id)


@dataclass
class PlanForm:
    """Raw values submitted through the plan create/edit form."""

    axis: str = ""
    care_line: str = ""
    status: str = ""
    supporters: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    summary: str = ""
    goal: str = ""
    evaluation_frequency: str = ""
    cycle: str = ""
    start_date: str = ""
    end_date: str = ""
    notes: str = ""

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanForm":
        return cls(
            axis=plan.axis,
            care_line=plan.care_line,
            status=PlanStatus(plan.status).value,
            supporters=list(plan.supporters or []),
            categories=list(plan.categories or []),
            summary=plan.summary or "",
            goal=plan.goal or "",
            evaluation_frequency=EvaluationFrequency(plan.evaluation_frequency).value,
            cycle=EvaluationFrequency(plan.cycle).value if plan.cycle else "",
            start_date=plan.start_date.isoformat() if plan.start_date else "",
            end_date=plan.end_date.isoformat() if plan.end_date else "",
            notes=plan.notes or "",
        )


def _unique(values: Sequence[str]) -> list[str]:
    cleaned = (value.strip() for value in values)
    return list(dict.fromkeys(value for value in cleaned if value))


def validate_plan_form(
    form: PlanForm, options: Mapping[OptionType, Sequence[str]]
) -> dict[str, Any]:
    """Return cleaned plan fields or raise :class:`ValidationRequired`.

    Labels must exist in the current vocabularies. Categories are only kept
    for qualification plans and the cycle only for work-process plans.
    """

    errors: dict[str, str] = {}

    axis = form.axis.strip()
    care_line = form.care_line.strip()
    supporters = _unique(form.supporters)
    categories = _unique(form.categories)

    if not axis:
        errors["axis"] = "Select an axis."
    elif axis not in options.get(OptionType.AXIS, ()):
        errors["axis"] = f"{axis!r} is not an available axis."

    if not care_line:
        errors["care_line"] = "Select a care line."
    elif care_line not in options.get(OptionType.CARE_LINE, ()):
        errors["care_line"] = f"{care_line!r} is not an available care line."

    status: PlanStatus | None = None
    try:
        status = PlanStatus(form.status.strip())
    except ValueError:
        errors["status"] = "Select a status."

    if not supporters:
        errors["supporters"] = "Select at least one supporter."
    else:
        unknown = [label for label in supporters if label not in options.get(OptionType.SUPPORTER, ())]
        if unknown:
            errors["supporters"] = f"Unknown supporter(s): {', '.join(unknown)}."

    summary = form.summary.strip()
    if not summary:
        errors["summary"] = "Describe the planned actions."
    goal = form.goal.strip()
    if not goal:
        errors["goal"] = "Enter the goal."

    evaluation_frequency: EvaluationFrequency | None = None
    try:
        evaluation_frequency = EvaluationFrequency(form.evaluation_frequency.strip())
    except ValueError:
        errors["evaluation_frequency"] = "Select an evaluation frequency."

    start_date: date | None = as_calendar_date(form.start_date)
    if start_date is None:
        errors["start_date"] = "Enter a valid start date."

    end_date: date | None = None
    if form.end_date.strip():
        end_date = as_calendar_date(form.end_date)
        if end_date is None:
            errors["end_date"] = "Enter a valid end date."
        elif start_date is not None and end_date < start_date:
            errors["end_date"] = "End date must be on or after the start date."

    cycle: EvaluationFrequency | None = None
    if axis == WORK_PROCESS_AXIS and form.cycle.strip():
        try:
            cycle = EvaluationFrequency(form.cycle.strip())
        except ValueError:
            errors["cycle"] = "Select a valid cycle."

    if axis == QUALIFICATION_AXIS:
        unknown = [label for label in categories if label not in options.get(OptionType.CATEGORY, ())]
        if unknown:
            errors["categories"] = f"Unknown categor(ies): {', '.join(unknown)}."
    else:
        categories = []

    if errors:
        raise ValidationRequired(errors)

    return {
        "axis": axis,
        "care_line": care_line,
        "status": status,
        "supporters": supporters,
        "categories": categories,
        "summary": summary,
        "goal": goal,
        "evaluation_frequency": evaluation_frequency,
        "cycle": cycle,
        "start_date": start_date,
        "end_date": end_date,
        "notes": form.notes.strip() or None,
    }


def apply_plan_data(plan: Plan, data: Mapping[str, Any], *, now: datetime | None = None) -> Plan:
    """Copy validated ``data`` onto ``plan`` and maintain completion timestamps."""

    now = now or utcnow()
    was_completed = plan.status == PlanStatus.COMPLETED

    for key, value in data.items():
        setattr(plan, key, value)

    is_completed = plan.status == PlanStatus.COMPLETED
    if is_completed and (not was_completed or plan.completed_at is None):
        plan.completed_at = now
    elif not is_completed:
        plan.completed_at = None
    plan.updated_at = now
    return plan


def create_plan(session: Session, owner: Profile, data: Mapping[str, Any]) -> Plan:
    """Insert a plan owned by ``owner``."""

    now = utcnow()
    plan = Plan(owner_id=owner.id, created_at=now)
    apply_plan_data(plan, data, now=now)
    session.add(plan)
    session.commit()
    session.refresh(plan)
    return plan


def update_plan(session: Session, plan: Plan, data: Mapping[str, Any]) -> Plan:
    """Overwrite the editable fields of ``plan``; the last write wins."""

    apply_plan_data(plan, data)
    session.add(plan)
    session.commit()
    session.refresh(plan)
    return plan


def delete_plan(session: Session, plan: Plan) -> None:
    session.delete(plan)
    session.commit()
