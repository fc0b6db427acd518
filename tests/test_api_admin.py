from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from careplans.core.options import grouped_options
from careplans.models.activity import ActivityLog
from careplans.models.options import ConfigOption, OptionType
from careplans.models.plans import EvaluationFrequency, Plan, PlanStatus
from careplans.models.profiles import Profile, ProfileRole


def _seed(session: Session) -> None:
    session.add(Profile(id="u-admin", username="carla", role=ProfileRole.ADMIN))
    session.add(Profile(id="u-member", username="ana"))
    session.add(ConfigOption(type=OptionType.SUPPORTER, label="A"))
    session.add(ConfigOption(type=OptionType.SUPPORTER, label="B"))
    session.add(
        Plan(
            id="plan-1",
            owner_id="u-member",
            axis="CARE",
            care_line="DIABETES",
            status=PlanStatus.PLANNED,
            supporters=["A", "B"],
            categories=[],
            summary="Home visits",
            goal="Coverage",
            evaluation_frequency=EvaluationFrequency.MONTHLY,
            start_date=date(2024, 1, 1),
        )
    )
    session.commit()


def _sign_in(client: TestClient, username: str) -> None:
    client.post("/auth/login", data={"username": username}, follow_redirects=False)


def test_members_cannot_manage_options(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "ana")

    response = client.get("/admin/options")

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "permission_denied"


def test_add_option_normalizes_and_rejects_duplicates(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "carla")

    added = client.post("/admin/options/care_line", data={"label": " aline "}, follow_redirects=False)
    duplicate = client.post("/admin/options/care_line", data={"label": "ALINE"})

    assert added.status_code == 303
    assert grouped_options(session)[OptionType.CARE_LINE] == ["ALINE"]
    assert duplicate.status_code == 409
    assert "already exists" in duplicate.text


def test_rename_cascades_and_updates_remembered_filter(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "carla")
    client.get("/history", params={"supporter": "A", "applied": ""})

    response = client.post(
        "/admin/options/supporter/rename",
        data={"old_label": "A", "new_label": "c"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    session.expire_all()
    assert session.get(Plan, "plan-1").supporters == ["C", "B"]
    assert grouped_options(session)[OptionType.SUPPORTER] == ["B", "C"]

    history = client.get("/history")
    assert 'value="C" selected' in history.text
    assert "Showing 1-1 of 1" in history.text


def test_rename_of_unknown_label_is_not_found(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "carla")

    response = client.post(
        "/admin/options/supporter/rename", data={"old_label": "Z", "new_label": "Y"}
    )

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "option_not_found"


def test_delete_in_use_option_warns(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "carla")
    client.get("/history", params={"supporter": "B", "applied": ""})

    response = client.post("/admin/options/supporter/delete", data={"label": "B"})

    assert response.status_code == 200
    assert "still used by 1 plan(s)" in response.text
    assert grouped_options(session)[OptionType.SUPPORTER] == ["A"]
    session.expire_all()
    assert session.get(Plan, "plan-1").supporters == ["A", "B"]

    history = client.get("/history")
    assert "Showing 1-1 of 1" in history.text
    assert 'value="B" selected' not in history.text


def test_activity_log_lists_option_changes(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "carla")
    client.post("/admin/options/axis", data={"label": "care"}, follow_redirects=False)
    client.post("/admin/options/supporter/delete", data={"label": "A"}, follow_redirects=False)

    actions = session.exec(select(ActivityLog.action).order_by(ActivityLog.id)).all()
    page = client.get("/admin/activity", params={"action": "option.deleted"})

    assert actions == ["option.added", "option.deleted"]
    assert page.status_code == 200
    assert "option.deleted" in page.text
    assert "carla" in page.text


def test_interrupted_rename_is_logged_and_can_be_finished(
    client: TestClient, session: Session, monkeypatch: pytest.MonkeyPatch
):
    _seed(session)
    _sign_in(client, "carla")

    real_commit = session.commit
    calls = {"count": 0}

    def flaky_commit() -> None:
        calls["count"] += 1
        if calls["count"] == 2:
            raise SQLAlchemyError("simulated write failure")
        real_commit()

    monkeypatch.setattr(session, "commit", flaky_commit)
    failed = client.post(
        "/admin/options/supporter/rename", data={"old_label": "A", "new_label": "C"}
    )
    monkeypatch.setattr(session, "commit", real_commit)

    assert failed.status_code == 500
    assert "Finish renaming A to C" in failed.text
    session.expire_all()
    assert session.get(Plan, "plan-1").supporters == ["A", "B"]
    assert grouped_options(session)[OptionType.SUPPORTER] == ["B", "C"]

    resumed = client.post(
        "/admin/options/supporter/resume",
        data={"old_label": "A", "new_label": "C"},
        follow_redirects=False,
    )

    assert resumed.status_code == 303
    session.expire_all()
    assert session.get(Plan, "plan-1").supporters == ["C", "B"]

    logs = session.exec(select(ActivityLog).order_by(ActivityLog.id)).all()
    assert [log.action for log in logs] == ["option.rename_failed", "option.rename_resumed"]
    assert logs[0].details["failed_ids"] == ["plan-1"]
    assert logs[1].details["updated_plans"] == 1


def test_resume_refuses_labels_outside_the_vocabulary(client: TestClient, session: Session):
    _seed(session)
    _sign_in(client, "carla")

    unknown = client.post(
        "/admin/options/supporter/resume", data={"old_label": "A", "new_label": "GHOST"}
    )
    not_renamed = client.post(
        "/admin/options/supporter/resume", data={"old_label": "A", "new_label": "B"}
    )

    assert unknown.status_code == 404
    assert unknown.json()["detail"]["code"] == "option_not_found"
    assert not_renamed.status_code == 409
    assert "already exists" in not_renamed.text

    session.expire_all()
    assert session.get(Plan, "plan-1").supporters == ["A", "B"]
    assert grouped_options(session)[OptionType.SUPPORTER] == ["A", "B"]
    assert session.exec(select(ActivityLog)).all() == []
