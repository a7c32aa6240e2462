"""
Access control dependencies.

require_roles() is the role gate every role-scoped router hangs off:
no identity -> 401, no role chosen yet -> 303 to the account-type step,
any other role -> 403. The completeness gates sit behind it on routes that
need a finished developer profile or company profile.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status

from devjobs.models.user import User, UserRole
from devjobs.models.position import Position
from devjobs.models.application import Application
from devjobs.utils.security import get_current_user
from devjobs.utils.validation import redirect

logger = logging.getLogger(__name__)


def check_roles(user: Optional[User], *roles: str) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if user.role is None:
        raise redirect("/auth/account-type", "Please select your account type to continue.", "select_account_type")

    allowed = {UserRole(role) for role in roles}
    if user.role not in allowed:
        logger.info("User %s with role %s denied (needs one of %s)", user.id, user.role.value, sorted(roles))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    return user


def require_roles(*roles: str):
    """Dependency factory: require_roles("hr", "admin")"""
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        return check_roles(current_user, *roles)
    return dependency


def check_developer_profile_complete(user: User) -> User:
    if user.is_developer and not user.has_complete_profile():
        raise redirect(
            "/developer/profile",
            "Please complete your profile (summary and CV) before applying to positions.",
            "complete_developer_profile"
        )
    return user


def check_company_profile_complete(user: User) -> User:
    if user.is_hr and not user.has_complete_company_profile():
        raise redirect(
            "/hr/company/setup",
            "Please complete your company profile before posting positions.",
            "complete_company_profile"
        )
    return user


def require_complete_company_profile(current_user: User = Depends(get_current_user)) -> User:
    return check_company_profile_complete(current_user)


# ----------------- Resource policies -----------------

def can_manage_position(user: User, position: Position) -> bool:
    if user.is_admin:
        return True
    return user.is_hr and position.company_id in user.company_ids()


def can_view_application(user: User, application: Application) -> bool:
    if user.is_admin:
        return True
    if user.is_developer:
        return application.user_id == user.id
    return user.is_hr and application.position.company_id in user.company_ids()


def can_update_application(user: User, application: Application) -> bool:
    if user.is_admin:
        return True
    return user.is_hr and application.position.company_id in user.company_ids()
