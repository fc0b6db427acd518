"""Utility helpers for recording activity log entries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlmodel import Session

from careplans.models.activity import ActivityLog

if TYPE_CHECKING:  # pragma: no cover - only imported for typing
    from careplans.models.profiles import Profile


def log_activity(
    session: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: str | int,
    details: Mapping[str, Any] | None = None,
    profile: "Profile | None" = None,
    profile_id: str | None = None,
    commit: bool = False,
) -> ActivityLog:
    """Persist an ``ActivityLog`` row and optionally commit the transaction.

    Parameters
    ----------
    session:
        The open database session that will persist the log entry.
    action:
        A stable action name describing what occurred (``plan.created``,
        ``option.renamed`` etc.).
    entity_type:
        The domain entity that was affected (``plan``, ``config_option``...).
    entity_id:
        Identifier for the target entity. Stored as text because plan ids are
        opaque strings while option ids are integers.
    details:
        Optional JSON-serialisable payload with additional context. The mapping
        is copied to avoid mutating caller-provided dictionaries.
    profile / profile_id:
        Actor context. The ``profile`` object takes precedence when provided.
    commit:
        When ``True`` the helper commits the session after adding the log.
    """

    payload: dict[str, Any] | None
    if details:
        payload = dict(details)
    else:
        payload = None

    log = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=payload,
        profile_id=getattr(profile, "id", None) or profile_id,
    )

    session.add(log)

    if commit:
        session.commit()

    return log


__all__ = ["log_activity"]
