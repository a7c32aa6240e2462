"""
Social login against GitHub, Google and LinkedIn.

The authorization-code flow is handled server side (redirect + callback);
fetch_social_user also serves the frontend flow where the client already
holds a provider access token.
"""
import logging
import secrets
from datetime import timedelta
from urllib.parse import urlencode

import requests
from jose import JWTError, jwt

from devjobs.config import OAUTH_PROVIDERS, JWT_SECRET_KEY, ALGORITHM
from devjobs.schema.auth_schema import SocialUser
from devjobs.utils.dates import utcnow

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
STATE_TTL = timedelta(minutes=10)

SUPPORTED_PROVIDERS = ("github", "google", "linkedin")

AUTHORIZE_URLS = {
    "github": "https://github.com/login/oauth/authorize",
    "google": "https://accounts.google.com/o/oauth2/v2/auth",
    "linkedin": "https://www.linkedin.com/oauth/v2/authorization",
}

TOKEN_URLS = {
    "github": "https://github.com/login/oauth/access_token",
    "google": "https://oauth2.googleapis.com/token",
    "linkedin": "https://www.linkedin.com/oauth/v2/accessToken",
}

SCOPES = {
    "github": "read:user user:email",
    "google": "openid email profile",
    "linkedin": "openid profile email",
}


class OAuthError(Exception):
    """The provider rejected the exchange or returned unusable data"""


def is_supported(provider: str) -> bool:
    return provider in SUPPORTED_PROVIDERS


def issue_state(provider: str) -> str:
    """Signed, short-lived state bound to the provider the browser is sent to"""
    claims = {
        "oauth_provider": provider,
        "nonce": secrets.token_urlsafe(16),
        "exp": utcnow() + STATE_TTL,
    }
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_state(provider: str, state: str):
    if not state:
        raise OAuthError("Missing OAuth state")
    try:
        claims = jwt.decode(state, JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise OAuthError("Invalid or expired OAuth state") from e
    if claims.get("oauth_provider") != provider:
        raise OAuthError("OAuth state was issued for another provider")


def authorization_url(provider: str, state: str) -> str:
    settings = OAUTH_PROVIDERS[provider]
    params = {
        "client_id": settings["client_id"] or "",
        "redirect_uri": settings["redirect_uri"],
        "scope": SCOPES[provider],
        "state": state,
        "response_type": "code",
    }
    return f"{AUTHORIZE_URLS[provider]}?{urlencode(params)}"


def _json_object(response, source: str) -> dict:
    """Decoded JSON body; anything that is not a JSON object is an OAuthError"""
    try:
        payload = response.json()
    except ValueError as e:
        raise OAuthError(f"{source} returned a non-JSON body") from e
    if not isinstance(payload, dict):
        raise OAuthError(f"{source} returned an unexpected payload")
    return payload


def exchange_code(provider: str, code: str) -> str:
    """Trade an authorization code for a provider access token"""
    settings = OAUTH_PROVIDERS[provider]
    try:
        response = requests.post(
            TOKEN_URLS[provider],
            data={
                "client_id": settings["client_id"],
                "client_secret": settings["client_secret"],
                "code": code,
                "redirect_uri": settings["redirect_uri"],
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
            timeout=REQUEST_TIMEOUT
        )
    except requests.RequestException as e:
        raise OAuthError(f"{provider} token exchange failed") from e

    if response.status_code != 200:
        raise OAuthError(f"{provider} token exchange returned {response.status_code}")

    access_token = _json_object(response, f"{provider} token exchange").get("access_token")
    if not access_token or not isinstance(access_token, str):
        raise OAuthError(f"{provider} token exchange returned no access token")
    return access_token


def _get_json(url: str, access_token: str, extra_headers: dict = None):
    headers = {"Authorization": f"Bearer {access_token}"}
    headers.update(extra_headers or {})
    try:
        response = requests.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise OAuthError(f"{url} request failed") from e
    if response.status_code != 200:
        raise OAuthError(f"{url} returned {response.status_code}")
    try:
        return response.json()
    except ValueError as e:
        raise OAuthError(f"{url} returned a non-JSON body") from e


def _github_user(access_token: str) -> SocialUser:
    accept = {"Accept": "application/vnd.github+json"}
    user_info = _get_json("https://api.github.com/user", access_token, accept)
    if not isinstance(user_info, dict):
        raise OAuthError("GitHub returned an unexpected user payload")

    email = user_info.get("email")
    try:
        emails = _get_json("https://api.github.com/user/emails", access_token, accept)
        if not isinstance(emails, list):
            raise OAuthError("GitHub returned an unexpected email list")
        primary = next(
            (e for e in emails if isinstance(e, dict) and e.get("primary") and e.get("verified")),
            None
        )
        if primary:
            email = primary.get("email")
    except OAuthError:
        logger.info("GitHub email list unavailable; using profile email")

    return SocialUser(
        provider="github",
        provider_id=str(user_info.get("id")),
        email=email or "",
        name=user_info.get("name") or user_info.get("login")
    )


def _userinfo(url: str, access_token: str) -> dict:
    user_info = _get_json(url, access_token)
    if not isinstance(user_info, dict):
        raise OAuthError(f"{url} returned an unexpected payload")
    return user_info


def _google_user(access_token: str) -> SocialUser:
    user_info = _userinfo("https://openidconnect.googleapis.com/v1/userinfo", access_token)
    return SocialUser(
        provider="google",
        provider_id=str(user_info.get("sub")),
        email=user_info.get("email") or "",
        name=user_info.get("name")
    )


def _linkedin_user(access_token: str) -> SocialUser:
    user_info = _userinfo("https://api.linkedin.com/v2/userinfo", access_token)
    return SocialUser(
        provider="linkedin",
        provider_id=str(user_info.get("sub")),
        email=user_info.get("email") or "",
        name=user_info.get("name")
    )


_FETCHERS = {
    "github": _github_user,
    "google": _google_user,
    "linkedin": _linkedin_user,
}


def fetch_social_user(provider: str, access_token: str) -> SocialUser:
    try:
        social_user = _FETCHERS[provider](access_token)
    except requests.RequestException as e:
        raise OAuthError(f"Failed to verify {provider} token") from e

    if not social_user.email:
        raise OAuthError(f"Email not found in {provider} account")
    if not social_user.provider_id or social_user.provider_id == "None":
        raise OAuthError(f"{provider} did not return an account id")
    return social_user
