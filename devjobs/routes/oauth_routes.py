import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import auth_crud
from devjobs.schema.auth_schema import Token, OAuthTokenLogin
from devjobs.services import oauth
from devjobs.routes.auth_routes import token_for
from devjobs.utils.validation import redirect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth"])

AUTH_FAILED_MESSAGE = "Authentication failed. Please try again."


def _ensure_provider(provider: str):
    if not oauth.is_supported(provider):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provider not supported")


def _login_failed() -> HTTPException:
    return redirect("/login", AUTH_FAILED_MESSAGE, "login")


def _complete_login(db: Session, provider: str, access_token: str) -> dict:
    try:
        social_user = oauth.fetch_social_user(provider, access_token)
        user = auth_crud.find_or_create_social_user(
            db,
            provider=provider,
            provider_id=social_user.provider_id,
            email=social_user.email,
            name=social_user.name
        )
    except (oauth.OAuthError, ValueError):
        logger.warning("%s login failed", provider, exc_info=True)
        raise _login_failed()
    return token_for(user)


@router.get("/{provider}/redirect")
def oauth_redirect(provider: str):
    """Send the browser to the provider's consent screen"""
    _ensure_provider(provider)
    return RedirectResponse(oauth.authorization_url(provider, oauth.issue_state(provider)))


@router.get("/{provider}/callback", response_model=Token)
def oauth_callback(
    provider: str,
    code: str = None,
    state: str = None,
    error: str = None,
    db: Session = Depends(get_db)
):
    _ensure_provider(provider)
    if error or not code:
        raise _login_failed()

    try:
        oauth.verify_state(provider, state)
        access_token = oauth.exchange_code(provider, code)
    except oauth.OAuthError:
        logger.warning("%s code exchange failed", provider, exc_info=True)
        raise _login_failed()

    return _complete_login(db, provider, access_token)


@router.post("/{provider}/login", response_model=Token)
def oauth_token_login(provider: str, request: OAuthTokenLogin, db: Session = Depends(get_db)):
    """Login/Register with a provider access token obtained by the frontend"""
    _ensure_provider(provider)
    return _complete_login(db, provider, request.access_token)
