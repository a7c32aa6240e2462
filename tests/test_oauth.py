import pytest
import requests

from devjobs.models.social_account import SocialAccount
from devjobs.models.user import User
from devjobs.schema.auth_schema import SocialUser
from devjobs.services import oauth


@pytest.fixture
def provider_user(monkeypatch):
    """Makes fetch_social_user return whatever identity the test sets"""
    identity = {"value": SocialUser(provider="github", provider_id="42", email="octo@example.com", name="Octo Cat")}

    def fake_fetch(provider, access_token):
        if isinstance(identity["value"], Exception):
            raise identity["value"]
        return identity["value"]

    monkeypatch.setattr(oauth, "fetch_social_user", fake_fetch)
    return identity


def test_unknown_provider_is_404(client):
    assert client.get("/oauth/myspace/redirect").status_code == 404
    assert client.post("/oauth/myspace/login", json={"access_token": "x"}).status_code == 404


def test_redirect_points_at_provider(client):
    response = client.get("/oauth/github/redirect")

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://github.com/login/oauth/authorize?")


def test_first_social_login_creates_roleless_user(client, db, provider_user):
    response = client.post("/oauth/github/login", json={"access_token": "gho_token"})

    assert response.status_code == 200
    assert response.json()["next_step"] == "select_account_type"
    user = db.query(User).filter(User.email == "octo@example.com").one()
    assert user.role is None
    assert user.is_social_user
    assert user.is_email_verified


def test_social_login_links_existing_account(client, db, developer, provider_user):
    provider_user["value"] = SocialUser(provider="google", provider_id="g-1", email=developer.email, name="Dev")

    response = client.post("/oauth/google/login", json={"access_token": "ya29"})

    assert response.status_code == 200
    assert response.json()["next_step"] is None
    account = db.query(SocialAccount).filter(SocialAccount.provider == "google").one()
    assert account.user_id == developer.id
    assert db.query(User).count() == 1


def test_repeat_login_reuses_social_account(client, db, provider_user):
    client.post("/oauth/github/login", json={"access_token": "a"})
    client.post("/oauth/github/login", json={"access_token": "b"})

    assert db.query(SocialAccount).count() == 1


def test_provider_failure_redirects_to_login(client, provider_user):
    provider_user["value"] = oauth.OAuthError("token rejected")

    response = client.post("/oauth/github/login", json={"access_token": "bad"})

    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert response.json()["detail"] == "Authentication failed. Please try again."


def test_callback_with_error_redirects_to_login(client):
    response = client.get("/oauth/github/callback", params={"error": "access_denied"})

    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_callback_exchanges_code(client, monkeypatch, provider_user):
    monkeypatch.setattr(oauth, "exchange_code", lambda provider, code: f"token-for-{code}")
    state = oauth.issue_state("github")

    response = client.get("/oauth/github/callback", params={"code": "abc", "state": state})

    assert response.status_code == 200
    assert response.json()["access_token"]


def test_github_prefers_verified_primary_email(monkeypatch):
    responses = {
        "https://api.github.com/user": {"id": 7, "login": "octo", "name": None, "email": "public@example.com"},
        "https://api.github.com/user/emails": [
            {"email": "old@example.com", "primary": False, "verified": True},
            {"email": "main@example.com", "primary": True, "verified": True},
        ],
    }
    monkeypatch.setattr(oauth, "_get_json", lambda url, token, extra_headers=None: responses[url])

    social_user = oauth.fetch_social_user("github", "token")

    assert social_user.email == "main@example.com"
    assert social_user.provider_id == "7"
    assert social_user.name == "octo"


def test_account_without_email_is_rejected(monkeypatch):
    monkeypatch.setattr(oauth, "_get_json", lambda url, token, extra_headers=None: {"sub": "123"})

    with pytest.raises(oauth.OAuthError):
        oauth.fetch_social_user("google", "token")


class FakeResponse:
    def __init__(self, payload=None, status_code=200, error=None):
        self.status_code = status_code
        self._payload = payload
        self._error = error

    def json(self):
        if self._error:
            raise self._error
        return self._payload


def test_redirect_state_is_accepted_by_callback(client, monkeypatch, provider_user):
    monkeypatch.setattr(oauth, "exchange_code", lambda provider, code: "token")
    location = client.get("/oauth/github/redirect").headers["location"]
    state = dict(pair.split("=", 1) for pair in location.split("?", 1)[1].split("&"))["state"]

    response = client.get("/oauth/github/callback", params={"code": "abc", "state": state})

    assert response.status_code == 200


@pytest.mark.parametrize("state", [None, "forged", "google"])
def test_callback_rejects_bad_state(client, monkeypatch, provider_user, state):
    exchanged = []
    monkeypatch.setattr(oauth, "exchange_code", lambda provider, code: exchanged.append(code) or "token")
    params = {"code": "abc"}
    if state == "google":
        params["state"] = oauth.issue_state("google")
    elif state:
        params["state"] = state

    response = client.get("/oauth/github/callback", params=params)

    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert exchanged == []


@pytest.mark.parametrize("token_response", [
    FakeResponse(error=requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)),
    FakeResponse(payload=["not", "an", "object"]),
    FakeResponse(payload={"error": "bad_verification_code"}),
])
def test_unusable_token_response_redirects_to_login(client, monkeypatch, token_response):
    monkeypatch.setattr(oauth.requests, "post", lambda *args, **kwargs: token_response)

    response = client.get("/oauth/github/callback", params={"code": "abc", "state": oauth.issue_state("github")})

    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert response.json()["detail"] == "Authentication failed. Please try again."


def test_unusable_profile_response_redirects_to_login(client, monkeypatch):
    broken = FakeResponse(error=requests.exceptions.JSONDecodeError("Expecting value", "", 0))
    monkeypatch.setattr(oauth.requests, "get", lambda *args, **kwargs: broken)

    response = client.post("/oauth/google/login", json={"access_token": "ya29"})

    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_github_ignores_malformed_email_list(monkeypatch):
    responses = {
        "https://api.github.com/user": {"id": 7, "login": "octo", "email": "public@example.com"},
        "https://api.github.com/user/emails": {"message": "Bad credentials"},
    }
    monkeypatch.setattr(oauth, "_get_json", lambda url, token, extra_headers=None: responses[url])

    assert oauth.fetch_social_user("github", "token").email == "public@example.com"
