from typing import Optional
import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session, Query

from devjobs.models.user import User, UserRole, AccountState
from devjobs.utils.security import hash_password, verify_password
from devjobs.utils.dates import utcnow


def user_query(db: Session, include_trashed: bool = False) -> Query:
    """Anonymized accounts are hidden unless explicitly asked for"""
    query = db.query(User)
    if not include_trashed:
        query = query.filter(User.account_state == AccountState.ACTIVE)
    return query


def get_user_by_email(db: Session, email: str, include_trashed: bool = False) -> Optional[User]:
    return user_query(db, include_trashed).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: uuid.UUID, include_trashed: bool = False) -> Optional[User]:
    return user_query(db, include_trashed).filter(User.id == user_id).first()


def create_user(
    db: Session,
    name: str,
    email: str,
    role: Optional[UserRole] = None,
    password: Optional[str] = None,
    email_verified: bool = False
) -> User:
    hashed_pw = hash_password(password) if password else None
    user = User(
        name=name,
        email=email,
        role=role,
        hashed_password=hashed_pw,
        email_verified_at=utcnow() if email_verified else None
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def set_account_type(db: Session, user: User, role: UserRole) -> User:
    if role not in (UserRole.DEVELOPER, UserRole.HR):
        raise ValueError("Only developer or hr can be selected")
    user.role = role
    db.commit()
    db.refresh(user)
    return user


def update_account(db: Session, user: User, name: str, email: str) -> User:
    taken = db.query(User).filter(User.email == email, User.id != user.id).first()
    if taken:
        raise ValueError("The email has already been taken.")

    user.name = name
    if email != user.email:
        user.email = email
        user.email_verified_at = None

    db.commit()
    db.refresh(user)
    return user


def list_users(
    db: Session,
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    include_trashed: bool = False,
    skip: int = 0,
    limit: int = 20
) -> dict:
    query = user_query(db, include_trashed)

    if search:
        query = query.filter(or_(User.name.ilike(f"%{search}%"), User.email.ilike(f"%{search}%")))
    if role:
        query = query.filter(User.role == role)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(skip).limit(limit).all()
    return {"items": users, "total": total}
