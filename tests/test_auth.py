import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from careplans.core.auth import (
    SIGNED_IN,
    SIGNED_OUT,
    find_profile,
    on_auth_state_change,
    register_profile,
)
from careplans.core.errors import ValidationRequired
from careplans.models.activity import ActivityLog
from careplans.models.profiles import Profile, ProfileRole


def test_register_profile_lowercases_and_rejects_duplicates(session: Session):
    profile = register_profile(session, username=" Ana ", full_name="Ana Souza", unit="UBS Centro")

    assert profile.username == "ana"
    assert profile.display_name == "Ana Souza"
    assert profile.role == ProfileRole.NORMAL
    assert find_profile(session, "ANA").id == profile.id

    with pytest.raises(ValidationRequired) as excinfo:
        register_profile(session, username="ana")

    assert excinfo.value.errors == {"username": "That username is already registered."}


def test_protected_pages_redirect_to_login(client: TestClient):
    response = client.get("/history", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/login"


def test_register_sign_in_and_out_notify_listeners(client: TestClient, session: Session):
    events: list[tuple[str, str | None]] = []
    on_auth_state_change(lambda event, profile: events.append((event, getattr(profile, "username", None))))

    response = client.post(
        "/auth/register",
        data={"username": "bruno", "full_name": "Bruno Lima"},
        follow_redirects=False,
    )
    assert response.status_code == 303

    assert client.get("/settings").status_code == 200

    response = client.post("/auth/logout", follow_redirects=False)
    assert response.status_code == 303
    assert client.get("/settings", follow_redirects=False).status_code == 303

    assert events == [(SIGNED_IN, "bruno"), (SIGNED_OUT, None)]
    actions = session.exec(select(ActivityLog.action)).all()
    assert actions == ["profile.registered"]


def test_unknown_username_cannot_sign_in(client: TestClient):
    response = client.post("/auth/login", data={"username": "ghost"}, follow_redirects=False)

    assert response.status_code == 400
    assert "No profile is registered" in response.text


def test_privilege_code_switches_role(client: TestClient, session: Session):
    session.add(Profile(id="u-1", username="carla"))
    session.commit()
    client.post("/auth/login", data={"username": "carla"}, follow_redirects=False)

    rejected = client.post("/settings/privilege", data={"code": "wrong"}, follow_redirects=False)
    granted = client.post("/settings/privilege", data={"code": "DAPS-ADMIN"}, follow_redirects=False)

    assert rejected.status_code == 400
    assert granted.status_code == 303
    session.expire_all()
    assert session.get(Profile, "u-1").role == ProfileRole.ADMIN
    assert client.get("/admin/options").status_code == 200
