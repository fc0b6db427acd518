"""Authorisation rules for plans, vocabularies and privilege changes."""

from __future__ import annotations

from careplans.core.config import settings
from careplans.models.plans import Plan
from careplans.models.profiles import Profile, ProfileRole


def is_admin(profile: Profile | None) -> bool:
    """Return ``True`` when ``profile`` holds the administrator role."""

    return profile is not None and profile.role == ProfileRole.ADMIN


def can_manage_plan(plan: Plan | None, *, profile: Profile | None) -> tuple[bool, str | None]:
    """Return whether ``profile`` may edit or delete ``plan``.

    Everyone signed in can view every plan; only administrators and the plan
    owner can change it. A missing ``plan`` means a new one is being created.
    """

    if profile is None:
        return False, "Please sign in to continue."

    if plan is None or is_admin(profile):
        return True, None

    if plan.owner_id == profile.id:
        return True, None

    return False, "Only the professional who registered this plan can change it."


def role_for_access_code(code: str) -> ProfileRole | None:
    """Map a privilege code entered on the settings page to a role."""

    cleaned = (code or "").strip()
    if not cleaned:
        return None
    if cleaned == settings.admin_access_code:
        return ProfileRole.ADMIN
    if cleaned == settings.member_access_code:
        return ProfileRole.NORMAL
    return None
