from datetime import timedelta

import pytest

from devjobs.models.application import Application, ApplicationStatus
from devjobs.models.custom_question import CustomQuestion
from devjobs.models.notification import Notification
from devjobs.models.position import PositionStatus
from devjobs.models.user import AccountState


@pytest.fixture
def position(db, hr_user, make_position):
    position = make_position(hr_user.primary_company(), hr_user, expires_in=timedelta(days=20))
    position.custom_questions.append(CustomQuestion(question_text="Why us?", is_required=True, order=0))
    position.custom_questions.append(CustomQuestion(question_text="Anything else?", is_required=False, order=1))
    db.commit()
    db.refresh(position)
    return position


def answers_for(position, required="Because."):
    return {str(position.custom_questions[0].id): required}


def apply(client, headers, position, **body):
    return client.post(f"/applications/positions/{position.id}", json=body, headers=headers)


def test_developer_applies_and_company_is_notified(client, db, developer, hr_user, position, auth_headers):
    response = apply(client, auth_headers(developer), position,
                     cover_letter="<p>Hello</p>", custom_answers=answers_for(position))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["cover_letter"] == "Hello"
    assert body["position_title"] == position.title
    assert db.query(Notification).filter(
        Notification.user_id == hr_user.id, Notification.type == "new_application"
    ).count() == 1


def test_required_question_must_be_answered(client, developer, position, auth_headers):
    response = apply(client, auth_headers(developer), position, custom_answers=answers_for(position, "  "))

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["body", f"custom_answers.{position.custom_questions[0].id}"]


def test_cannot_apply_twice(client, developer, position, auth_headers):
    headers = auth_headers(developer)
    assert apply(client, headers, position, custom_answers=answers_for(position)).status_code == 201

    response = apply(client, headers, position, custom_answers=answers_for(position))

    assert response.status_code == 400
    assert response.json()["detail"] == "You have already applied to this position."


@pytest.mark.parametrize("change", [
    {"status": PositionStatus.DRAFT, "published_at": None},
    {"allow_platform_applications": False},
    {"is_external": True, "external_apply_url": "https://example.com/apply"},
])
def test_closed_positions_reject_applications(client, db, developer, position, auth_headers, change):
    for key, value in change.items():
        setattr(position, key, value)
    db.commit()

    response = apply(client, auth_headers(developer), position, custom_answers=answers_for(position))

    assert response.status_code == 400


def test_expired_by_date_rejects_applications(client, db, developer, position, auth_headers):
    from devjobs.utils.dates import utcnow

    position.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    assert apply(client, auth_headers(developer), position, custom_answers=answers_for(position)).status_code == 400


def test_unknown_position_is_404(client, developer, auth_headers):
    import uuid

    response = client.post(f"/applications/positions/{uuid.uuid4()}", json={}, headers=auth_headers(developer))
    assert response.status_code == 404


def test_hr_cannot_apply(client, hr_user, position, auth_headers):
    assert apply(client, auth_headers(hr_user), position).status_code == 403


def make_application(db, position, user, status=ApplicationStatus.PENDING):
    application = Application(position_id=position.id, user_id=user.id, custom_answers={}, status=status)
    db.add(application)
    db.commit()
    db.refresh(application)
    return application


def test_hr_updates_status(client, db, make_user, hr_user, position, auth_headers):
    from devjobs.models.user import UserRole

    # Admin applicants get status notifications; developers see status on their dashboard
    applicant = make_user(UserRole.ADMIN)
    application = make_application(db, position, applicant)

    response = client.patch(f"/hr/applications/{application.id}/status", json={"status": "reviewing"},
                            headers=auth_headers(hr_user))

    assert response.status_code == 200
    db.refresh(application)
    assert application.status == ApplicationStatus.REVIEWING
    assert application.reviewed_by_user_id == hr_user.id
    assert db.query(Notification).filter(
        Notification.user_id == applicant.id, Notification.type == "application_status_changed"
    ).count() == 1


def test_anonymized_applicant_can_only_be_rejected(client, db, developer, hr_user, position, auth_headers):
    application = make_application(db, position, developer)
    developer.account_state = AccountState.ANONYMIZED
    db.commit()
    headers = auth_headers(hr_user)

    accepted = client.patch(f"/hr/applications/{application.id}/status", json={"status": "accepted"}, headers=headers)
    rejected = client.patch(f"/hr/applications/{application.id}/status", json={"status": "rejected"}, headers=headers)

    assert accepted.status_code == 422
    assert rejected.status_code == 200
    assert client.get(f"/hr/applications/{application.id}", headers=headers).status_code == 410


def test_hr_of_another_company_cannot_review(client, db, make_user, make_company, developer, position, auth_headers):
    from devjobs.models.user import UserRole

    application = make_application(db, position, developer)
    outsider = make_user(UserRole.HR)
    make_company(owner=outsider, name="Elsewhere")

    response = client.patch(f"/hr/applications/{application.id}/status", json={"status": "rejected"},
                            headers=auth_headers(outsider))

    assert response.status_code == 403


def test_developer_sees_own_applications(client, db, developer, position, auth_headers):
    make_application(db, position, developer)

    response = client.get("/developer/applications", headers=auth_headers(developer))

    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_answers_are_stored_as_plain_text(client, db, developer, position, auth_headers):
    response = apply(client, auth_headers(developer), position,
                     custom_answers=answers_for(position, "<b>Postgres</b><script>alert(1)</script>"))

    assert response.status_code == 201
    application = db.query(Application).one()
    assert application.custom_answers == {str(position.custom_questions[0].id): "Postgres"}


def test_concurrent_duplicate_is_reported_not_crashed(client, db, monkeypatch, developer, position, auth_headers):
    from devjobs.crud import application_crud

    db.add(Application(position_id=position.id, user_id=developer.id, custom_answers={}))
    db.commit()
    # the other request inserted between our duplicate check and our commit
    monkeypatch.setattr(application_crud, "has_applied", lambda db, position, user: False)

    response = apply(client, auth_headers(developer), position, custom_answers=answers_for(position))

    assert response.status_code == 400
    assert response.json()["detail"] == "You have already applied to this position."
    assert db.query(Application).count() == 1
