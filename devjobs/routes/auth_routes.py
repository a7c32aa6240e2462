from fastapi import APIRouter, Depends, HTTPException, status, Form
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import user_crud, auth_crud
from devjobs.models.user import User, UserRole
from devjobs.schema.user_schema import UserCreate, UserResponse, AccountTypeSelect
from devjobs.schema.auth_schema import Token, RememberLoginRequest
from devjobs.services.notifications import NotificationDispatcher, get_notifier
from devjobs.utils.security import create_access_token, get_current_user
from devjobs.utils.validation import field_error

router = APIRouter(prefix="/auth", tags=["auth"])


def token_for(user: User, remember_token: str = None) -> dict:
    return {
        "access_token": create_access_token({"sub": str(user.id)}),
        "token_type": "bearer",
        "remember_token": remember_token,
        "next_step": "select_account_type" if user.role is None else None,
    }


# --------------------------
# Registration
# --------------------------
@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier)
):
    if user_in.role == UserRole.ADMIN:
        raise field_error("role", "The selected role is invalid.")

    if user_crud.get_user_by_email(db, user_in.email, include_trashed=True):
        raise field_error("email", "The email has already been taken.")

    user = user_crud.create_user(
        db,
        name=user_in.name,
        email=user_in.email,
        role=user_in.role,
        password=user_in.password
    )
    notifier.welcome(user)
    return token_for(user)


# --------------------------
# Login
# --------------------------
@router.post("/login", response_model=Token)
def login_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    remember: bool = Form(False),
    db: Session = Depends(get_db)
):
    user = user_crud.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    remember_token = auth_crud.issue_remember_token(db, user) if remember else None
    return token_for(user, remember_token)


@router.post("/remember", response_model=Token)
def login_with_remember_token(data: RememberLoginRequest, db: Session = Depends(get_db)):
    """Trade a remember token for a fresh access token"""
    user = auth_crud.get_user_by_remember_token(db, data.remember_token)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid remember token")
    return token_for(user, data.remember_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    auth_crud.clear_remember_token(db, current_user)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


# --------------------------
# Account type
# --------------------------
@router.get("/account-type")
def account_type_options(current_user: User = Depends(get_current_user)):
    return {
        "current_role": current_user.role.value if current_user.role else None,
        "options": [UserRole.DEVELOPER.value, UserRole.HR.value],
    }


@router.post("/account-type", response_model=UserResponse)
def select_account_type(
    data: AccountTypeSelect,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if current_user.role is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account type already selected")

    try:
        user = user_crud.set_account_type(db, current_user, data.role)
    except ValueError as e:
        raise field_error("role", str(e))

    if user.is_hr:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            detail="Account type saved. Please set up your company.",
            headers={"Location": "/hr/company/setup", "X-Next-Step": "complete_company_profile"}
        )
    return user
