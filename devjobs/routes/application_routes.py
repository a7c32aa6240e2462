import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import application_crud, company_crud, position_crud
from devjobs.models.user import User
from devjobs.models.application import Application, ApplicationStatus
from devjobs.schema.application_schema import ApplicationCreate, ApplicationStatusUpdate, ApplicationResponse
from devjobs.services.notifications import NotificationDispatcher, get_notifier
from devjobs.utils.permissions import (
    require_roles,
    check_developer_profile_complete,
    can_view_application,
    can_update_application
)
from devjobs.utils.storage import private_download_url
from devjobs.utils.validation import FieldError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["applications"])
hr_router = APIRouter(prefix="/hr/applications", tags=["hr-applications"])

reviewers = require_roles("hr", "admin")


# ===================== APPLY =====================

@router.post("/positions/{position_id}", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def apply_to_position(
    position_id: uuid.UUID,
    data: ApplicationCreate,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    current_user: User = Depends(require_roles("developer", "admin"))
):
    """Apply to a published position with the cover letter and custom answers"""
    check_developer_profile_complete(current_user)

    position = position_crud.get_position(db, position_id)
    if not position:
        raise HTTPException(status_code=404, detail="Position not found")

    try:
        application = application_crud.create_application(
            db,
            position,
            current_user,
            cover_letter=data.cover_letter,
            custom_answers=data.custom_answers
        )
    except FieldError as e:
        raise e.to_http()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    notifier.new_application(application, company_crud.company_recipients(db, position.company_id))
    logger.info("User %s applied to position %s", current_user.id, position.id)
    return ApplicationResponse.from_application(application)


# ===================== HR REVIEW =====================

def _get_application(db: Session, application_id: uuid.UUID) -> Application:
    application = application_crud.get_application(db, application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


@hr_router.get("/")
def list_applications(
    status: Optional[ApplicationStatus] = None,
    position_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewers)
):
    per_page = 20
    company_ids = None if current_user.is_admin else current_user.company_ids()
    result = application_crud.list_company_applications(
        db,
        company_ids,
        status=status,
        position_id=position_id,
        company_id=company_id,
        skip=(max(page, 1) - 1) * per_page,
        limit=per_page
    )
    return {
        "items": [ApplicationResponse.from_application(a, include_applicant=True) for a in result["items"]],
        "total": result["total"],
        "page": page,
    }


@hr_router.get("/{application_id}", response_model=ApplicationResponse)
def show_application(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewers)
):
    application = _get_application(db, application_id)
    if not can_view_application(current_user, application):
        raise HTTPException(status_code=403, detail="Forbidden")
    if application.user.is_trashed:
        raise HTTPException(status_code=410, detail="Cannot view details of archived user application.")
    return ApplicationResponse.from_application(application, include_applicant=True)


@hr_router.patch("/{application_id}/status", response_model=ApplicationResponse)
def update_status(
    application_id: uuid.UUID,
    data: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
    current_user: User = Depends(reviewers)
):
    application = _get_application(db, application_id)
    if not can_update_application(current_user, application):
        raise HTTPException(status_code=403, detail="Forbidden")

    try:
        previous = application_crud.update_application_status(db, application, current_user, data.status)
    except FieldError as e:
        raise e.to_http()

    applicant = application.user
    # developers follow their applications on the dashboard instead
    if previous != application.status and not applicant.is_trashed and not applicant.is_developer:
        notifier.application_status_changed(application, previous.value)

    return ApplicationResponse.from_application(application, include_applicant=True)


@hr_router.get("/{application_id}/cv")
def download_applicant_cv(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(reviewers)
):
    application = _get_application(db, application_id)
    if not can_view_application(current_user, application):
        raise HTTPException(status_code=403, detail="Forbidden")

    profile = application.user.developer_profile
    if not profile or not profile.cv_path:
        raise HTTPException(status_code=404, detail="CV not found")
    return {"download_url": private_download_url(profile.cv_path)}
