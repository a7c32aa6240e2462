from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional
import secrets
import uuid

from devjobs.config import JWT_SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from devjobs.database import get_db
from devjobs.models.user import User, AccountState

if not JWT_SECRET_KEY:
    raise ValueError("JWT_SECRET_KEY environment variable must be set")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# auto_error=False so public routes can serve anonymous visitors
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

REMEMBER_TOKEN_BYTES = 48


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


# ----------------- Passwords -----------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Password-less (social) accounts never match"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_remember_token() -> str:
    return secrets.token_urlsafe(REMEMBER_TOKEN_BYTES)


# ----------------- JWT -----------------
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    expires_delta = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + expires_delta}
    return jwt.encode(claims, JWT_SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the subject (user id) of a valid token"""
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Could not validate credentials")

    subject = payload.get("sub")
    if subject is None:
        raise _unauthorized("Invalid authentication credentials")
    return subject


def _resolve_user(token: str, db: Session) -> User:
    try:
        user_id = uuid.UUID(decode_access_token(token))
    except ValueError:
        raise _unauthorized("Invalid user ID format")

    user = db.query(User).filter(
        User.id == user_id,
        User.account_state == AccountState.ACTIVE
    ).first()
    if not user:
        raise _unauthorized("User not found")
    return user


# ----------------- Dependencies -----------------
def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Fetch the current authenticated user from the bearer token.
    Anonymized accounts no longer authenticate.
    """
    if not token:
        raise _unauthorized("Not authenticated")
    return _resolve_user(token, db)


def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous visitors get None"""
    if not token:
        return None
    try:
        return _resolve_user(token, db)
    except HTTPException:
        return None
