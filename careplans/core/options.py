"""Controlled-vocabulary maintenance with cascades into stored plans.

Plans store option labels by value, not by reference, so renaming an option
must rewrite every plan that carries the old label. The store offers no
multi-record transaction: scalar fields are rewritten with one ``UPDATE``,
set-valued fields are patched and committed plan by plan. A failure part way
through leaves earlier plans renamed; :func:`cascade_rename` can be re-run to
finish the job because re-applying a rename is a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from careplans.core.errors import (
    DuplicateLabel,
    OptionInUse,
    OptionNotFound,
    PartialCascadeFailure,
    ValidationRequired,
)
from careplans.models.base import utcnow
from careplans.models.options import ConfigOption, OptionType
from careplans.models.plans import Plan

logger = logging.getLogger(__name__)

SCALAR_FIELDS: dict[OptionType, str] = {
    OptionType.AXIS: "axis",
    OptionType.CARE_LINE: "care_line",
}
LIST_FIELDS: dict[OptionType, str] = {
    OptionType.SUPPORTER: "supporters",
    OptionType.CATEGORY: "categories",
}


@dataclass
class CascadeResult:
    """Outcome of propagating a label rename into stored plans."""

    option_type: OptionType
    old_label: str
    new_label: str
    updated_ids: list[str] = field(default_factory=list)


def normalize_label(label: str | None) -> str:
    """Return ``label`` trimmed and uppercased; reject blank labels."""

    cleaned = (label or "").strip().upper()
    if not cleaned:
        raise ValidationRequired({"label": "Enter a label."})
    return cleaned


def _get_option(session: Session, option_type: OptionType, label: str) -> ConfigOption | None:
    return session.exec(
        select(ConfigOption)
        .where(ConfigOption.type == option_type)
        .where(ConfigOption.label == label)
    ).first()


def grouped_options(session: Session) -> dict[OptionType, list[str]]:
    """Return every vocabulary with its labels in ascending order."""

    grouped: dict[OptionType, list[str]] = {option_type: [] for option_type in OptionType}
    rows = session.exec(select(ConfigOption).order_by(ConfigOption.label)).all()
    for row in rows:
        grouped[OptionType(row.type)].append(row.label)
    return grouped


def add_option(session: Session, option_type: OptionType, label: str) -> ConfigOption:
    """Insert a new label into ``option_type``."""

    option_type = OptionType(option_type)
    normalized = normalize_label(label)
    if _get_option(session, option_type, normalized) is not None:
        raise DuplicateLabel(option_type.value, normalized)

    option = ConfigOption(type=option_type, label=normalized)
    session.add(option)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise DuplicateLabel(option_type.value, normalized) from exc
    session.refresh(option)

    logger.info("Added %s option %r", option_type.value, normalized)
    return option


def replace_label(labels: Sequence[str], old: str, new: str) -> list[str]:
    """Return ``labels`` with ``old`` swapped for ``new`` in place.

    If ``new`` is already present the duplicate produced by the swap is
    dropped, keeping the first occurrence.
    """

    swapped = [new if label == old else label for label in labels]
    return list(dict.fromkeys(swapped))


def cascade_rename(
    session: Session, option_type: OptionType, old: str, new: str
) -> CascadeResult:
    """Rewrite plans that still reference ``old`` so they carry ``new``.

    Safe to call repeatedly: plans already renamed are left untouched.
    Raises :class:`PartialCascadeFailure` when some plans could not be saved.
    """

    option_type = OptionType(option_type)
    result = CascadeResult(option_type=option_type, old_label=old, new_label=new)

    scalar_field = SCALAR_FIELDS.get(option_type)
    if scalar_field is not None:
        column = getattr(Plan, scalar_field)
        affected = session.exec(select(Plan.id).where(column == old)).all()
        if not affected:
            return result
        try:
            session.exec(
                update(Plan)
                .where(column == old)
                .values({scalar_field: new, "updated_at": utcnow()})
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Rename cascade for %s %r failed", option_type.value, old)
            raise PartialCascadeFailure(
                option_type.value, old, new, updated_ids=[], failed_ids=list(affected)
            )
        result.updated_ids.extend(affected)
        return result

    list_field = LIST_FIELDS[option_type]
    failed_ids: list[str] = []
    plans = session.exec(select(Plan).order_by(Plan.created_at)).all()
    for plan in plans:
        labels = list(getattr(plan, list_field) or [])
        if old not in labels:
            continue
        plan_id = plan.id
        setattr(plan, list_field, replace_label(labels, old, new))
        plan.updated_at = utcnow()
        session.add(plan)
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.warning("Could not rename %r on plan %s", old, plan_id, exc_info=True)
            failed_ids.append(plan_id)
            continue
        result.updated_ids.append(plan_id)

    if failed_ids:
        logger.error(
            "Rename of %s %r -> %r left %d plan(s) unchanged",
            option_type.value,
            old,
            new,
            len(failed_ids),
        )
        raise PartialCascadeFailure(
            option_type.value, old, new, updated_ids=result.updated_ids, failed_ids=failed_ids
        )
    return result


def rename_option(
    session: Session, option_type: OptionType, old: str, new: str
) -> CascadeResult:
    """Rename an option label and propagate it to every plan using it."""

    option_type = OptionType(option_type)
    normalized = normalize_label(new)

    option = _get_option(session, option_type, old)
    if option is None:
        raise OptionNotFound(option_type.value, old)
    if normalized == option.label:
        return CascadeResult(option_type=option_type, old_label=old, new_label=normalized)
    if _get_option(session, option_type, normalized) is not None:
        raise DuplicateLabel(option_type.value, normalized)

    option.label = normalized
    session.add(option)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise DuplicateLabel(option_type.value, normalized) from exc

    logger.info("Renamed %s option %r to %r", option_type.value, old, normalized)
    return cascade_rename(session, option_type, old, normalized)


def resume_rename(
    session: Session, option_type: OptionType, old: str, new: str
) -> CascadeResult:
    """Finish an interrupted rename of ``old`` to ``new``.

    Only valid once the vocabulary itself has been renamed: ``new`` must be a
    known label and ``old`` must no longer be one.
    """

    option_type = OptionType(option_type)
    normalized = normalize_label(new)
    if _get_option(session, option_type, normalized) is None:
        raise OptionNotFound(option_type.value, normalized)
    if _get_option(session, option_type, old) is not None:
        raise DuplicateLabel(option_type.value, old)
    return cascade_rename(session, option_type, old, normalized)


def count_references(session: Session, option_type: OptionType, label: str) -> int:
    """Return how many plans currently reference ``label``."""

    option_type = OptionType(option_type)
    scalar_field = SCALAR_FIELDS.get(option_type)
    if scalar_field is not None:
        return len(session.exec(select(Plan.id).where(getattr(Plan, scalar_field) == label)).all())

    list_field = LIST_FIELDS[option_type]
    plans = session.exec(select(Plan)).all()
    return sum(1 for plan in plans if label in (getattr(plan, list_field) or []))


def delete_option(session: Session, option_type: OptionType, label: str) -> int:
    """Remove ``label`` from ``option_type`` and return its remaining usage.

    Usage is not verified beforehand; plans keep displaying the old label but
    it can no longer be chosen for new data.
    """

    option_type = OptionType(option_type)
    option = _get_option(session, option_type, label)
    if option is None:
        raise OptionNotFound(option_type.value, label)

    references = count_references(session, option_type, label)
    session.delete(option)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise OptionInUse(option_type.value, label) from exc

    if references:
        logger.warning(
            "Deleted %s option %r still referenced by %d plan(s)",
            option_type.value,
            label,
            references,
        )
    else:
        logger.info("Deleted %s option %r", option_type.value, label)
    return references
