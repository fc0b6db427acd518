"""Session-backed identity helpers.

Credentials are verified by the hosted identity provider; this module only
tracks which profile a browser session belongs to and tells interested
listeners when that changes.

:func:`on_auth_state_change` is an extension hook for integrations that react
to sign-in and sign-out; the application itself registers no listener and
records sign-ins only through the ``careplans.core.auth`` logger.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from careplans.core.db import get_session
from careplans.core.errors import StaleSession, ValidationRequired
from careplans.models.base import utcnow
from careplans.models.profiles import Profile, ProfileRole

logger = logging.getLogger(__name__)

SESSION_KEY = "profile_id"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthListener = Callable[[str, "Profile | None"], None]

_listeners: list[AuthListener] = []


def on_auth_state_change(callback: AuthListener) -> Callable[[], None]:
    """Register ``callback`` for sign-in/sign-out events and return an unsubscriber."""

    _listeners.append(callback)

    def unsubscribe() -> None:
        if callback in _listeners:
            _listeners.remove(callback)

    return unsubscribe


def clear_auth_listeners() -> None:
    _listeners.clear()


def _notify(event: str, profile: Profile | None) -> None:
    for listener in list(_listeners):
        listener(event, profile)


def sign_in(request: Request, profile: Profile) -> None:
    request.session[SESSION_KEY] = profile.id
    logger.info("Profile %s signed in", profile.username)
    _notify(SIGNED_IN, profile)


def sign_out(request: Request) -> None:
    had_session = request.session.pop(SESSION_KEY, None) is not None
    request.session.clear()
    if had_session:
        logger.info("Profile signed out")
        _notify(SIGNED_OUT, None)


def get_current_profile(
    request: Request, session: Session = Depends(get_session)
) -> Profile | None:
    """Return the signed-in profile, or ``None`` when the session is absent or stale."""

    profile_id = request.session.get(SESSION_KEY)
    if not profile_id:
        return None
    profile = session.get(Profile, profile_id)
    if profile is None:
        request.session.pop(SESSION_KEY, None)
    return profile


def require_profile(profile: Profile | None = Depends(get_current_profile)) -> Profile:
    """Dependency guard for routes that need a signed-in profile."""

    if profile is None:
        raise StaleSession()
    return profile


def find_profile(session: Session, username: str) -> Profile | None:
    cleaned = (username or "").strip().lower()
    if not cleaned:
        return None
    return session.exec(select(Profile).where(Profile.username == cleaned)).first()


def register_profile(
    session: Session,
    *,
    username: str,
    full_name: str | None = None,
    unit: str | None = None,
    team: str | None = None,
    micro_area: str | None = None,
    role: ProfileRole = ProfileRole.NORMAL,
) -> Profile:
    """Create a profile with a unique username."""

    cleaned = (username or "").strip().lower()
    if not cleaned:
        raise ValidationRequired({"username": "Enter a username."})
    if find_profile(session, cleaned) is not None:
        raise ValidationRequired({"username": "That username is already registered."})

    now = utcnow()
    profile = Profile(
        username=cleaned,
        full_name=(full_name or "").strip() or None,
        unit=(unit or "").strip() or None,
        team=(team or "").strip() or None,
        micro_area=(micro_area or "").strip() or None,
        role=role,
        created_at=now,
        updated_at=now,
    )
    session.add(profile)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ValidationRequired({"username": "That username is already registered."}) from exc
    session.refresh(profile)
    return profile
