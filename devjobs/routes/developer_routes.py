import logging
import uuid

import cloudinary.exceptions
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import profile_crud, application_crud
from devjobs.models.user import User
from devjobs.schema.developer_schema import (
    DeveloperProfileUpdate,
    DeveloperProfileResponse,
    DeveloperDashboardResponse
)
from devjobs.schema.application_schema import ApplicationResponse
from devjobs.utils.file_validators import validate_cv_file, validate_image_file
from devjobs.utils.permissions import require_roles
from devjobs.utils import storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/developer", tags=["developer"])

CV_FOLDER = "devjobs/cvs"
PHOTO_FOLDER = "devjobs/profile_photos"

developer_only = require_roles("developer")


def _discard(public_id, private: bool):
    """Remove a replaced file; failures only cost storage space"""
    try:
        storage.delete_file(public_id, private=private)
    except cloudinary.exceptions.Error:
        logger.exception("Failed to delete replaced file %s", public_id)


# ===================== DASHBOARD =====================

@router.get("/dashboard", response_model=DeveloperDashboardResponse)
def dashboard(db: Session = Depends(get_db), current_user: User = Depends(developer_only)):
    recent = application_crud.list_user_applications(db, current_user, limit=5)["items"]
    return {
        "applications": application_crud.count_by_status(db, current_user),
        "profile_complete": current_user.has_complete_profile(),
        "recent_applications": [
            ApplicationResponse.from_application(application).model_dump(mode="json")
            for application in recent
        ],
    }


@router.get("/applications")
def my_applications(
    page: int = 1,
    db: Session = Depends(get_db),
    current_user: User = Depends(developer_only)
):
    per_page = 15
    result = application_crud.list_user_applications(
        db, current_user, skip=(max(page, 1) - 1) * per_page, limit=per_page
    )
    return {
        "items": [ApplicationResponse.from_application(a) for a in result["items"]],
        "total": result["total"],
        "page": page,
    }


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def my_application(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(developer_only)
):
    application = application_crud.get_application(db, application_id)
    if not application or application.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Application not found")
    return ApplicationResponse.from_application(application)


# ===================== PROFILE =====================

@router.get("/profile", response_model=DeveloperProfileResponse)
def get_profile(db: Session = Depends(get_db), current_user: User = Depends(developer_only)):
    profile = profile_crud.get_or_create_developer_profile(db, current_user)
    db.commit()
    return DeveloperProfileResponse.from_profile(profile)


@router.put("/profile", response_model=DeveloperProfileResponse)
def update_profile(
    data: DeveloperProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(developer_only)
):
    profile = profile_crud.update_developer_profile(db, current_user, **data.to_fields())
    return DeveloperProfileResponse.from_profile(profile)


# ===================== CV =====================

@router.post("/profile/cv", response_model=DeveloperProfileResponse)
async def upload_cv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(developer_only)
):
    content = await validate_cv_file(file)

    try:
        stored = storage.store_private(content, CV_FOLDER, file.filename)
    except cloudinary.exceptions.Error:
        logger.exception("CV upload failed for user %s", current_user.id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="File upload failed")

    old = profile_crud.replace_cv(db, current_user, stored.public_id)
    if old:
        _discard(old, private=True)

    return DeveloperProfileResponse.from_profile(profile_crud.get_developer_profile(db, current_user))


@router.get("/profile/cv")
def download_cv(db: Session = Depends(get_db), current_user: User = Depends(developer_only)):
    """Short-lived signed URL to the private CV"""
    profile = profile_crud.get_developer_profile(db, current_user)
    if not profile or not profile.cv_path:
        raise HTTPException(status_code=404, detail="CV not found")
    return {"download_url": storage.private_download_url(profile.cv_path)}


@router.delete("/profile/cv", response_model=DeveloperProfileResponse)
def delete_cv(db: Session = Depends(get_db), current_user: User = Depends(developer_only)):
    old = profile_crud.clear_cv(db, current_user)
    if not old:
        raise HTTPException(status_code=404, detail="CV not found")
    _discard(old, private=True)
    return DeveloperProfileResponse.from_profile(profile_crud.get_developer_profile(db, current_user))


# ===================== PHOTO =====================

@router.post("/profile/photo", response_model=DeveloperProfileResponse)
async def upload_photo(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(developer_only)
):
    content = await validate_image_file(file)

    try:
        stored = storage.store_public(content, PHOTO_FOLDER)
    except cloudinary.exceptions.Error:
        logger.exception("Photo upload failed for user %s", current_user.id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="File upload failed")

    old = profile_crud.replace_photo(db, current_user, stored.public_id, stored.url)
    if old:
        _discard(old, private=False)

    return DeveloperProfileResponse.from_profile(profile_crud.get_developer_profile(db, current_user))


@router.delete("/profile/photo", response_model=DeveloperProfileResponse)
def delete_photo(db: Session = Depends(get_db), current_user: User = Depends(developer_only)):
    old = profile_crud.clear_photo(db, current_user)
    if not old:
        raise HTTPException(status_code=404, detail="Photo not found")
    _discard(old, private=False)
    return DeveloperProfileResponse.from_profile(profile_crud.get_developer_profile(db, current_user))
