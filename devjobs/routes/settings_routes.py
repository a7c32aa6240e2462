import logging

import cloudinary.exceptions
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import user_crud, profile_crud
from devjobs.models.user import User
from devjobs.schema.user_schema import AccountUpdate, AccountDelete, UserResponse
from devjobs.utils.security import get_current_user
from devjobs.utils.storage import delete_file
from devjobs.utils.validation import field_error, FieldError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/account", response_model=UserResponse)
def show_account(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/account", response_model=UserResponse)
def update_account(
    data: AccountUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        return user_crud.update_account(db, current_user, name=data.name, email=data.email)
    except ValueError as e:
        raise field_error("email", str(e))


@router.delete("/account")
def delete_account(
    data: AccountDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Anonymize the account. Stored CV and photo are removed afterwards;
    a storage failure is logged and never blocks the deletion.
    """
    try:
        profile_crud.confirm_account_deletion(current_user, email=data.email, password=data.password)
    except FieldError as e:
        raise e.to_http()

    files = profile_crud.anonymize_user(db, current_user)

    for public_id, is_private in files:
        try:
            delete_file(public_id, private=is_private)
        except cloudinary.exceptions.Error:
            logger.exception("Failed to delete stored file %s after account deletion", public_id)

    return {"message": "Your account has been deleted."}
