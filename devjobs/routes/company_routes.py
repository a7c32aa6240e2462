import logging

import cloudinary.exceptions
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy import func
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import company_crud, position_crud
from devjobs.models.user import User
from devjobs.models.position import Position, PositionStatus
from devjobs.models.position_view import PositionView
from devjobs.schema.company_schema import CompanySetup, CompanyUpdate, CompanyResponse
from devjobs.utils.file_validators import validate_image_file
from devjobs.utils.permissions import require_roles, require_complete_company_profile
from devjobs.utils import storage
from devjobs.utils.validation import FieldError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hr", tags=["hr"])

LOGO_FOLDER = "devjobs/company_logos"

hr_only = require_roles("hr")


def _own_company(user: User):
    company = user.primary_company()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


# ===== COMPANY =====

@router.get("/company", response_model=CompanyResponse)
def show_company(current_user: User = Depends(hr_only)):
    return _own_company(current_user)


@router.post("/company/setup", response_model=CompanyResponse)
def setup_company(
    data: CompanySetup,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    """Create the company on first visit, update it afterwards"""
    try:
        return company_crud.setup_company(db, current_user, **data.to_fields())
    except FieldError as e:
        raise e.to_http()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/company", response_model=CompanyResponse)
def update_company(
    data: CompanyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    company = _own_company(current_user)
    if not company_crud.can_manage_company(db, company, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        return company_crud.update_company(db, company, **data.to_fields())
    except FieldError as e:
        raise e.to_http()


@router.post("/company/logo", response_model=CompanyResponse)
async def upload_logo(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    company = _own_company(current_user)
    if not company_crud.can_manage_company(db, company, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")

    content = await validate_image_file(file)
    try:
        stored = storage.store_public(content, LOGO_FOLDER)
    except cloudinary.exceptions.Error:
        logger.exception("Logo upload failed for company %s", company.id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="File upload failed")

    old = company_crud.replace_logo(db, company, stored.public_id, stored.url)
    if old:
        try:
            storage.delete_file(old)
        except cloudinary.exceptions.Error:
            logger.exception("Failed to delete replaced logo %s", old)
    db.refresh(company)
    return company


@router.delete("/company/logo", response_model=CompanyResponse)
def delete_logo(db: Session = Depends(get_db), current_user: User = Depends(hr_only)):
    company = _own_company(current_user)
    if not company_crud.can_manage_company(db, company, current_user):
        raise HTTPException(status_code=403, detail="Forbidden")

    old = company_crud.clear_logo(db, company)
    if old:
        try:
            storage.delete_file(old)
        except cloudinary.exceptions.Error:
            logger.exception("Failed to delete logo %s", old)
    db.refresh(company)
    return company


# ===== DASHBOARD =====

@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only),
    _: User = Depends(require_complete_company_profile)
):
    company_ids = current_user.company_ids()
    position_ids = [
        row[0] for row in db.query(Position.id).filter(Position.company_id.in_(company_ids)).all()
    ]

    by_status = {position_status.value: 0 for position_status in PositionStatus}
    for position_status, count in db.query(Position.status, func.count(Position.id)).filter(
        Position.company_id.in_(company_ids)
    ).group_by(Position.status).all():
        by_status[position_status.value] = count

    total_views = 0
    if position_ids:
        total_views = db.query(func.count(PositionView.id)).filter(
            PositionView.position_id.in_(position_ids)
        ).scalar() or 0

    return {
        "positions": {"total": len(position_ids), **by_status},
        "applications": position_crud.application_stats(db, position_ids),
        "views": total_views,
    }
