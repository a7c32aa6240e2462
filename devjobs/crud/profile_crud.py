import logging
import secrets
import string
from typing import Optional

from sqlalchemy.orm import Session

from devjobs.models.user import User, AccountState
from devjobs.models.developer_profile import DeveloperProfile
from devjobs.models.social_account import SocialAccount
from devjobs.utils.security import verify_password, hash_password
from devjobs.utils.sanitizer import strip_html
from devjobs.utils.dates import utcnow
from devjobs.utils.validation import FieldError

logger = logging.getLogger(__name__)

_ALPHANUMERIC = string.ascii_letters + string.digits


class AccountDeletionError(FieldError):
    """Deletion confirmation did not match the account"""


# ----------------- Developer profile -----------------
def get_developer_profile(db: Session, user: User) -> Optional[DeveloperProfile]:
    return db.query(DeveloperProfile).filter(DeveloperProfile.user_id == user.id).first()


def get_or_create_developer_profile(db: Session, user: User) -> DeveloperProfile:
    profile = get_developer_profile(db, user)
    if not profile:
        profile = DeveloperProfile(user_id=user.id, other_links=[])
        db.add(profile)
        db.flush()
    return profile


def update_developer_profile(db: Session, user: User, **fields) -> DeveloperProfile:
    profile = get_or_create_developer_profile(db, user)

    if "summary" in fields:
        fields["summary"] = strip_html(fields["summary"])

    for key, value in fields.items():
        if hasattr(profile, key):
            setattr(profile, key, value)

    db.commit()
    db.refresh(profile)
    return profile


def replace_cv(db: Session, user: User, public_id: str) -> Optional[str]:
    """Point the profile at a new CV; returns the id of the CV it replaced"""
    profile = get_or_create_developer_profile(db, user)
    old = profile.cv_path
    profile.cv_path = public_id
    db.commit()
    return old


def clear_cv(db: Session, user: User) -> Optional[str]:
    profile = get_developer_profile(db, user)
    if not profile or not profile.cv_path:
        return None
    old = profile.cv_path
    profile.cv_path = None
    db.commit()
    return old


def replace_photo(db: Session, user: User, public_id: str, url: str) -> Optional[str]:
    profile = get_or_create_developer_profile(db, user)
    old = profile.profile_photo_path
    profile.profile_photo_path = public_id
    profile.profile_photo_url = url
    db.commit()
    return old


def clear_photo(db: Session, user: User) -> Optional[str]:
    profile = get_developer_profile(db, user)
    if not profile or not profile.profile_photo_path:
        return None
    old = profile.profile_photo_path
    profile.profile_photo_path = None
    profile.profile_photo_url = None
    db.commit()
    return old


# ----------------- Account deletion -----------------
def confirm_account_deletion(user: User, email: Optional[str] = None, password: Optional[str] = None):
    """Social users retype their email, everyone else their password"""
    if user.is_social_user:
        if not email:
            raise AccountDeletionError("email", "The email field is required.")
        if email != user.email:
            raise AccountDeletionError("email", "The provided email does not match your account email.")
        return

    if not password:
        raise AccountDeletionError("password", "The password field is required.")
    if not verify_password(password, user.hashed_password):
        raise AccountDeletionError("password", "The password is incorrect.")


def _random_id(length: int = 8) -> str:
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def anonymize_user(db: Session, user: User) -> list[tuple[str, bool]]:
    """
    Replace identifying data, drop the developer profile and social accounts,
    and mark the row anonymized. Returns the stored files that belonged to the
    profile as (public_id, is_private) pairs; removing them is up to the caller.
    """
    files: list[tuple[str, bool]] = []

    profile = get_developer_profile(db, user)
    if profile:
        if profile.cv_path:
            files.append((profile.cv_path, True))
        if profile.profile_photo_path:
            files.append((profile.profile_photo_path, False))
        db.delete(profile)

    db.query(SocialAccount).filter(SocialAccount.user_id == user.id).delete(synchronize_session=False)

    random_id = _random_id()
    user.name = f"Deleted User {random_id}"
    user.email = f"deleted.{random_id}@deleted.local"
    user.hashed_password = hash_password(secrets.token_urlsafe(32))
    user.email_verified_at = None
    user.remember_token = None
    user.account_state = AccountState.ANONYMIZED
    user.deleted_at = utcnow()

    db.commit()
    db.expire(user)
    logger.info("Anonymized user %s", user.id)
    return files
