from careplans.core.permissions import can_manage_plan, is_admin, role_for_access_code
from careplans.models.plans import Plan, PlanStatus
from careplans.models.profiles import Profile, ProfileRole


def _build_plan(owner_id: str) -> Plan:
    return Plan(
        id="plan-1",
        owner_id=owner_id,
        axis="CARE",
        care_line="DIABETES",
        status=PlanStatus.IN_PROGRESS,
    )


def test_owner_can_manage_own_plan():
    owner = Profile(id="u-1", username="ana", role=ProfileRole.NORMAL)

    allowed, message = can_manage_plan(_build_plan("u-1"), profile=owner)

    assert allowed is True
    assert message is None


def test_other_professional_cannot_manage_plan():
    other = Profile(id="u-2", username="bruno", role=ProfileRole.NORMAL)

    allowed, message = can_manage_plan(_build_plan("u-1"), profile=other)

    assert allowed is False
    assert message == "Only the professional who registered this plan can change it."


def test_admin_can_manage_any_plan():
    admin = Profile(id="u-3", username="carla", role=ProfileRole.ADMIN)

    assert is_admin(admin)
    assert can_manage_plan(_build_plan("u-1"), profile=admin) == (True, None)


def test_signed_out_visitor_cannot_manage():
    allowed, message = can_manage_plan(_build_plan("u-1"), profile=None)

    assert allowed is False
    assert message == "Please sign in to continue."


def test_access_codes_map_to_roles():
    assert role_for_access_code(" DAPS-ADMIN ") == ProfileRole.ADMIN
    assert role_for_access_code("DAPS-USER") == ProfileRole.NORMAL
    assert role_for_access_code("daps-admin") is None
    assert role_for_access_code("") is None
