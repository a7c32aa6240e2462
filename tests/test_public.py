from datetime import timedelta

from devjobs.models.position import PositionStatus, ListingType
from devjobs.models.position_view import PositionView


def test_browse_lists_live_positions_with_top_tier_first(client, hr_user, make_position):
    company = hr_user.primary_company()
    regular = make_position(company, hr_user, title="Regular")
    top = make_position(company, hr_user, title="Top", listing_type=ListingType.TOP)
    make_position(company, hr_user, title="Draft", status=PositionStatus.DRAFT)
    make_position(company, hr_user, title="Lapsed", expires_in=timedelta(hours=-1))
    make_position(company, hr_user, title="Archived", status=PositionStatus.ARCHIVED)

    response = client.get("/positions")

    assert response.status_code == 200
    titles = [item["title"] for item in response.json()["items"]]
    assert titles[0] == top.title
    assert set(titles) == {regular.title, top.title}


def test_browse_filters_by_search(client, hr_user, make_position):
    company = hr_user.primary_company()
    make_position(company, hr_user, title="Rust Engineer")
    make_position(company, hr_user, title="Designer")

    response = client.get("/positions", params={"search": "rust"})

    assert [item["title"] for item in response.json()["items"]] == ["Rust Engineer"]


def test_has_applied_flag_for_signed_in_developer(client, db, developer, hr_user, make_position, auth_headers):
    from devjobs.models.application import Application

    position = make_position(hr_user.primary_company(), hr_user)
    db.add(Application(position_id=position.id, user_id=developer.id, custom_answers={}))
    db.commit()

    anonymous = client.get("/positions").json()["items"][0]
    signed_in = client.get("/positions", headers=auth_headers(developer)).json()["items"][0]

    assert anonymous["has_applied"] is False
    assert signed_in["has_applied"] is True
    assert signed_in["accepting_applications"] is True


def test_show_records_one_view_per_visitor_per_day(client, db, hr_user, make_position):
    position = make_position(hr_user.primary_company(), hr_user)

    for _ in range(3):
        assert client.get(f"/positions/{position.slug}", headers={"cf-ipcountry": "de"}).status_code == 200

    views = db.query(PositionView).filter(PositionView.position_id == position.id).all()
    assert len(views) == 1
    assert views[0].country_code == "DE"
    assert views[0].ip_address_hash != "testclient"


def test_show_hides_drafts(client, hr_user, make_position):
    draft = make_position(hr_user.primary_company(), hr_user, status=PositionStatus.DRAFT)

    assert client.get(f"/positions/{draft.slug}").status_code == 404


def test_show_keeps_published_position_past_expiry_but_closed(client, hr_user, make_position):
    position = make_position(hr_user.primary_company(), hr_user, expires_in=timedelta(hours=-1))

    response = client.get(f"/positions/{position.slug}")

    assert response.status_code == 200
    assert response.json()["accepting_applications"] is False


def test_company_page_lists_its_live_positions(client, hr_user, make_position):
    company = hr_user.primary_company()
    make_position(company, hr_user, title="Live")
    make_position(company, hr_user, title="Hidden", status=PositionStatus.DRAFT)

    response = client.get(f"/companies/{company.slug}")

    assert response.status_code == 200
    assert [p["title"] for p in response.json()["positions"]] == ["Live"]
    assert client.get("/companies/nope").status_code == 404
