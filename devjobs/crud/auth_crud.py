import logging
from typing import Optional

from sqlalchemy.orm import Session

from devjobs.models.user import User, AccountState
from devjobs.models.social_account import SocialAccount
from devjobs.crud.user_crud import get_user_by_email
from devjobs.utils.security import generate_remember_token
from devjobs.utils.dates import utcnow

logger = logging.getLogger(__name__)


# ----------------- Remember token -----------------
def issue_remember_token(db: Session, user: User) -> str:
    token = generate_remember_token()
    user.remember_token = token
    db.commit()
    return token


def get_user_by_remember_token(db: Session, token: str) -> Optional[User]:
    if not token:
        return None
    return db.query(User).filter(
        User.remember_token == token,
        User.account_state == AccountState.ACTIVE
    ).first()


def clear_remember_token(db: Session, user: User):
    user.remember_token = None
    db.commit()


# ----------------- OAuth -----------------
def find_or_create_social_user(
    db: Session,
    provider: str,
    provider_id: str,
    email: str,
    name: Optional[str] = None
) -> User:
    """
    Resolve a social identity to a local user.

    Known social account -> its user. Otherwise an existing user with the
    same email gets the account linked. Otherwise a new password-less user
    is created with no role yet; they pick one at the account-type step.
    """
    social = db.query(SocialAccount).filter(
        SocialAccount.provider == provider,
        SocialAccount.provider_id == provider_id
    ).first()
    if social:
        if social.user.account_state != AccountState.ACTIVE:
            raise ValueError("This account has been deleted")
        return social.user

    user = get_user_by_email(db, email)
    if user:
        logger.info("Linking %s account to existing user %s", provider, user.id)
    else:
        user = User(
            name=name or email.split("@")[0],
            email=email,
            hashed_password=None,
            role=None,
            email_verified_at=utcnow()
        )
        db.add(user)
        db.flush()
        logger.info("Created user %s from %s login", user.id, provider)

    db.add(SocialAccount(user_id=user.id, provider=provider, provider_id=provider_id))
    db.commit()
    db.refresh(user)
    return user
