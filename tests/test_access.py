import uuid

from devjobs.models.user import UserRole
from devjobs.models.position import PositionStatus


def test_anonymous_requests_are_rejected(client):
    assert client.get("/developer/dashboard").status_code == 401
    assert client.get("/hr/dashboard").status_code == 401
    assert client.get("/admin/dashboard").status_code == 401


def test_user_without_role_is_sent_to_account_type_step(client, make_user, auth_headers):
    user = make_user(role=None)

    response = client.get("/developer/dashboard", headers=auth_headers(user))

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/account-type"
    assert response.headers["x-next-step"] == "select_account_type"


def test_wrong_role_is_forbidden(client, developer, hr_user, auth_headers):
    assert client.get("/hr/dashboard", headers=auth_headers(developer)).status_code == 403
    assert client.get("/admin/dashboard", headers=auth_headers(hr_user)).status_code == 403
    assert client.get("/developer/dashboard", headers=auth_headers(hr_user)).status_code == 403


def test_each_role_reaches_its_dashboard(client, developer, hr_user, admin, auth_headers):
    assert client.get("/developer/dashboard", headers=auth_headers(developer)).status_code == 200
    assert client.get("/hr/dashboard", headers=auth_headers(hr_user)).status_code == 200
    assert client.get("/admin/dashboard", headers=auth_headers(admin)).status_code == 200


def test_hr_without_company_is_sent_to_company_setup(client, make_user, auth_headers):
    hr = make_user(UserRole.HR)

    response = client.post("/hr/positions/", json={
        "title": "Backend Engineer", "short_description": "APIs", "long_description": "Build APIs.",
        "company_id": str(uuid.uuid4())
    }, headers=auth_headers(hr))

    assert response.status_code == 303
    assert response.headers["location"] == "/hr/company/setup"
    assert response.headers["x-next-step"] == "complete_company_profile"


def test_hr_with_incomplete_company_is_sent_to_company_setup(client, make_user, make_company, auth_headers):
    hr = make_user(UserRole.HR)
    make_company(owner=hr, description=None)

    response = client.get("/hr/dashboard", headers=auth_headers(hr))

    assert response.status_code == 303
    assert response.headers["location"] == "/hr/company/setup"


def test_developer_without_cv_cannot_apply(client, db, make_user, hr_user, make_position, auth_headers):
    from devjobs.models.developer_profile import DeveloperProfile

    dev = make_user(UserRole.DEVELOPER)
    db.add(DeveloperProfile(user_id=dev.id, summary="Hello", other_links=[]))
    db.commit()
    position = make_position(hr_user.primary_company(), hr_user, status=PositionStatus.PUBLISHED)

    response = client.post(f"/applications/positions/{position.id}", json={}, headers=auth_headers(dev))

    assert response.status_code == 303
    assert response.headers["location"] == "/developer/profile"
    assert response.headers["x-next-step"] == "complete_developer_profile"


def test_anonymized_token_no_longer_authenticates(client, db, developer, auth_headers):
    from devjobs.models.user import AccountState

    headers = auth_headers(developer)
    developer.account_state = AccountState.ANONYMIZED
    db.commit()

    assert client.get("/auth/me", headers=headers).status_code == 401
