from devjobs.models.company import Company, CompanyMember, CompanyMemberRole
from devjobs.models.technology import Technology
from devjobs.models.user import UserRole


def test_hr_sets_up_company_then_updates_it(client, db, make_user, auth_headers):
    hr = make_user(UserRole.HR)
    headers = auth_headers(hr)

    created = client.post("/hr/company/setup", json={
        "name": "Widget Works", "description": "<b>Widgets</b> for everyone", "website": "https://widgets.example.com"
    }, headers=headers)
    updated = client.post("/hr/company/setup", json={
        "name": "Widget Works", "description": "Now with gadgets"
    }, headers=headers)

    assert created.status_code == 200
    assert created.json()["slug"] == "widget-works"
    assert created.json()["description"] == "Widgets for everyone"
    assert updated.json()["id"] == created.json()["id"]
    assert updated.json()["description"] == "Now with gadgets"
    assert db.query(Company).count() == 1
    membership = db.query(CompanyMember).filter(CompanyMember.user_id == hr.id).one()
    assert membership.role == CompanyMemberRole.ADMIN

    assert client.get("/hr/dashboard", headers=headers).status_code == 200


def test_company_member_without_admin_rights_cannot_edit(client, make_user, make_company, auth_headers):
    hr = make_user(UserRole.HR)
    make_company(owner=hr, role=CompanyMemberRole.MEMBER)

    response = client.put("/hr/company", json={"description": "Edited"}, headers=auth_headers(hr))

    assert response.status_code == 403


def test_admin_manages_members(client, admin, make_user, make_company, auth_headers):
    owner = make_user(UserRole.HR)
    company = make_company(owner=owner, role=CompanyMemberRole.OWNER)
    recruiter = make_user(UserRole.HR)
    headers = auth_headers(admin)
    members_url = f"/admin/companies/{company.id}/members"

    attached = client.post(members_url, json={"user_id": str(recruiter.id)}, headers=headers)
    again = client.post(members_url, json={"user_id": str(recruiter.id)}, headers=headers)
    promoted = client.put(f"{members_url}/{recruiter.id}", json={"role": "admin"}, headers=headers)
    detached = client.delete(f"{members_url}/{recruiter.id}", headers=headers)

    assert attached.status_code == 201
    assert attached.json()["role"] == "member"
    assert again.status_code == 400
    assert promoted.json()["role"] == "admin"
    assert detached.status_code == 200


def test_sole_owner_cannot_be_detached_or_demoted(client, admin, make_user, make_company, auth_headers):
    owner = make_user(UserRole.HR)
    company = make_company(owner=owner, role=CompanyMemberRole.OWNER)
    headers = auth_headers(admin)
    member_url = f"/admin/companies/{company.id}/members/{owner.id}"

    demoted = client.put(member_url, json={"role": "member"}, headers=headers)
    detached = client.delete(member_url, headers=headers)

    assert demoted.status_code == 400
    assert detached.status_code == 400
    assert detached.json()["detail"] == "Cannot detach the company creator as they are the only owner."


def test_admin_deletes_company_with_positions(client, db, monkeypatch, admin, hr_user, make_position, auth_headers):
    from devjobs.routes import admin_routes
    from devjobs.models.position import Position

    company = hr_user.primary_company()
    company.logo_path = "devjobs/company_logos/acme"
    db.commit()
    make_position(company, hr_user)
    removed = []
    monkeypatch.setattr(admin_routes, "delete_file", lambda public_id, private=False: removed.append(public_id))

    response = client.delete(f"/admin/companies/{company.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert removed == ["devjobs/company_logos/acme"]
    assert db.query(Company).count() == 0
    assert db.query(Position).count() == 0


def test_admin_technology_catalogue(client, db, admin, auth_headers):
    headers = auth_headers(admin)

    created = client.post("/admin/technologies", json={"name": "Node.js"}, headers=headers)
    technology_id = created.json()["id"]
    renamed = client.put(f"/admin/technologies/{technology_id}", json={"name": "Deno"}, headers=headers)

    assert created.status_code == 201
    assert created.json()["slug"] == "node-js"
    assert renamed.json()["slug"] == "deno"
    assert [t["name"] for t in client.get("/technologies").json()] == ["Deno"]

    assert client.delete(f"/admin/technologies/{technology_id}", headers=headers).status_code == 204
    assert db.query(Technology).count() == 0


def test_company_name_is_plain_text(client, make_user, auth_headers):
    hr = make_user(UserRole.HR)
    headers = auth_headers(hr)

    created = client.post("/hr/company/setup", json={
        "name": "<script>alert(1)</script>Tech <b>Corp</b>", "description": "Great company."
    }, headers=headers)
    blank = client.put("/hr/company", json={"name": "<b></b>"}, headers=headers)

    assert created.json()["name"] == "Tech Corp"
    assert created.json()["slug"] == "tech-corp"
    assert blank.status_code == 422
    assert blank.json()["detail"][0]["loc"] == ["body", "name"]
