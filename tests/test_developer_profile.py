import cloudinary.exceptions
import pytest

from devjobs.models.user import UserRole
from devjobs.routes import developer_routes
from devjobs.utils.storage import StoredFile


@pytest.fixture
def fake_storage(monkeypatch):
    calls = {"stored": [], "deleted": []}

    def store_private(content, folder, filename=None):
        public_id = f"{folder}/upload-{len(calls['stored']) + 1}"
        calls["stored"].append(public_id)
        return StoredFile(public_id, None)

    def delete_file(public_id, private=False):
        calls["deleted"].append((public_id, private))
        return True

    monkeypatch.setattr(developer_routes.storage, "store_private", store_private)
    monkeypatch.setattr(developer_routes.storage, "delete_file", delete_file)
    monkeypatch.setattr(developer_routes.storage, "private_download_url", lambda public_id: f"https://signed/{public_id}")
    return calls


def upload_cv(client, headers, content=b"%PDF-1.7 resume", filename="cv.pdf"):
    return client.post("/developer/profile/cv", files={"file": (filename, content, "application/pdf")}, headers=headers)


def test_profile_update_strips_markup(client, make_user, auth_headers):
    dev = make_user(UserRole.DEVELOPER)

    response = client.put("/developer/profile", json={
        "summary": "<script>alert(1)</script>Python <em>developer</em>",
        "github_url": "https://github.com/dev"
    }, headers=auth_headers(dev))

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == "Python developer"
    assert body["github_url"] == "https://github.com/dev"
    assert body["profile_complete"] is False


def test_uploading_cv_completes_profile(client, make_user, auth_headers, fake_storage):
    dev = make_user(UserRole.DEVELOPER)
    headers = auth_headers(dev)
    client.put("/developer/profile", json={"summary": "Backend developer"}, headers=headers)

    response = upload_cv(client, headers)

    assert response.status_code == 200
    assert response.json()["has_cv"] is True
    assert response.json()["profile_complete"] is True
    assert fake_storage["stored"] == ["devjobs/cvs/upload-1"]


def test_replacing_cv_removes_the_old_file(client, developer, auth_headers, fake_storage):
    response = upload_cv(client, auth_headers(developer))

    assert response.status_code == 200
    assert fake_storage["deleted"] == [("devjobs/cvs/dev-cv", True)]


def test_cv_download_is_a_signed_url(client, developer, auth_headers, fake_storage):
    response = client.get("/developer/profile/cv", headers=auth_headers(developer))

    assert response.json() == {"download_url": "https://signed/devjobs/cvs/dev-cv"}


def test_cv_must_look_like_the_declared_type(client, developer, auth_headers, fake_storage):
    headers = auth_headers(developer)

    assert upload_cv(client, headers, content=b"not a pdf").status_code == 400
    assert upload_cv(client, headers, filename="cv.exe").status_code == 400
    assert fake_storage["stored"] == []


def test_storage_failure_is_reported(client, monkeypatch, developer, auth_headers, fake_storage):
    def broken(content, folder, filename=None):
        raise cloudinary.exceptions.Error("offline")

    monkeypatch.setattr(developer_routes.storage, "store_private", broken)

    response = upload_cv(client, auth_headers(developer))

    assert response.status_code == 502


def test_deleting_cv(client, developer, auth_headers, fake_storage):
    headers = auth_headers(developer)

    first = client.delete("/developer/profile/cv", headers=headers)
    second = client.delete("/developer/profile/cv", headers=headers)

    assert first.status_code == 200
    assert first.json()["has_cv"] is False
    assert second.status_code == 404
