import logging
import uuid
from datetime import timedelta
from typing import Optional, List

import cloudinary.exceptions
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.crud import (
    position_crud,
    user_crud,
    company_crud,
    technology_crud,
    application_crud
)
from devjobs.models.user import User, UserRole
from devjobs.models.company import Company
from devjobs.models.position import Position, PositionStatus
from devjobs.models.application import Application, ApplicationStatus
from devjobs.models.payment import Payment, PaymentStatus
from devjobs.schema.position_schema import (
    PositionCreate,
    PositionUpdate,
    PositionResponse,
    ListingTypeUpdate,
    ExtendExpiration,
    BulkPositionAction
)
from devjobs.schema.company_schema import (
    CompanySetup,
    CompanyUpdate,
    CompanyResponse,
    CompanyMemberAttach,
    CompanyMemberRoleUpdate,
    CompanyMemberResponse
)
from devjobs.schema.user_schema import AdminUserResponse
from devjobs.schema.application_schema import ApplicationResponse
from devjobs.schema.misc_schema import TechnologyCreate, TechnologyUpdate, TechnologyResponse
from devjobs.utils.dates import utcnow, as_utc
from devjobs.utils.permissions import require_roles
from devjobs.utils.storage import delete_file
from devjobs.utils.validation import FieldError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

admin_only = require_roles("admin")


def _get_position(db: Session, position_id: uuid.UUID) -> Position:
    position = position_crud.get_position(db, position_id)
    if not position:
        raise HTTPException(status_code=404, detail="Position not found")
    return position


def _get_company(db: Session, company_id: uuid.UUID) -> Company:
    company = company_crud.get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


# ===== DASHBOARD =====

@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    now = utcnow()

    def payment_sum(payment_status: PaymentStatus) -> float:
        total = db.query(func.sum(Payment.amount)).filter(Payment.status == payment_status).scalar()
        return float(total or 0)

    positions_by_status = dict(
        (row_status.value, count)
        for row_status, count in db.query(Position.status, func.count(Position.id)).group_by(Position.status).all()
    )
    applications_by_status = dict(
        (row_status.value, count)
        for row_status, count in db.query(Application.status, func.count(Application.id)).group_by(Application.status).all()
    )
    payments_by_status = dict(
        (row_status.value, count)
        for row_status, count in db.query(Payment.status, func.count(Payment.id)).group_by(Payment.status).all()
    )

    monthly_revenue = {}
    completed = db.query(Payment).filter(
        Payment.status == PaymentStatus.COMPLETED,
        Payment.created_at >= now - timedelta(days=183)
    ).all()
    for payment in completed:
        month = as_utc(payment.created_at).strftime("%Y-%m")
        monthly_revenue[month] = monthly_revenue.get(month, 0.0) + float(payment.amount)

    stats = {
        "total_positions": db.query(func.count(Position.id)).scalar(),
        "active_positions": db.query(func.count(Position.id)).filter(
            Position.status == PositionStatus.PUBLISHED,
            (Position.expires_at.is_(None)) | (Position.expires_at > now)
        ).scalar(),
        "total_applications": db.query(func.count(Application.id)).scalar(),
        "pending_applications": db.query(func.count(Application.id)).filter(
            Application.status == ApplicationStatus.PENDING
        ).scalar(),
        "total_companies": db.query(func.count(Company.id)).scalar(),
        "total_developers": db.query(func.count(User.id)).filter(User.role == UserRole.DEVELOPER).scalar(),
        "total_hrs": db.query(func.count(User.id)).filter(User.role == UserRole.HR).scalar(),
        "total_revenue": payment_sum(PaymentStatus.COMPLETED),
        "pending_payments": payment_sum(PaymentStatus.PENDING),
        "failed_payments": payment_sum(PaymentStatus.FAILED),
        "refunded_payments": payment_sum(PaymentStatus.REFUNDED),
        "total_payments": db.query(func.count(Payment.id)).scalar(),
        "completed_payments": payments_by_status.get(PaymentStatus.COMPLETED.value, 0),
    }

    return {
        "stats": stats,
        "positions_by_status": positions_by_status,
        "applications_by_status": applications_by_status,
        "payments_by_status": payments_by_status,
        "monthly_revenue": dict(sorted(monthly_revenue.items())),
    }


# ===== POSITIONS =====

@router.get("/positions")
def list_positions(
    status: Optional[PositionStatus] = None,
    company_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    per_page = 20
    result = position_crud.list_admin_positions(
        db, admin, status=status, company_id=company_id, search=search,
        skip=(max(page, 1) - 1) * per_page, limit=per_page
    )
    result["items"] = [PositionResponse.model_validate(p) for p in result["items"]]
    return result


@router.post("/positions", response_model=PositionResponse, status_code=status.HTTP_201_CREATED)
def create_position(data: PositionCreate, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    """Admins post without payment and may publish directly"""
    try:
        return position_crud.create_position(db, admin, data.to_fields())
    except FieldError as e:
        raise e.to_http()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/positions/bulk")
def bulk_positions(data: BulkPositionAction, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    try:
        count = position_crud.bulk_action(db, data.action, data.position_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Admin %s applied %s to %d positions", admin.id, data.action, count)
    return {"message": f"Bulk action completed on {count} positions.", "count": count}


@router.get("/positions/{position_id}", response_model=PositionResponse)
def show_position(position_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    return _get_position(db, position_id)


@router.put("/positions/{position_id}", response_model=PositionResponse)
def update_position(
    position_id: uuid.UUID,
    data: PositionUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    position = _get_position(db, position_id)
    try:
        return position_crud.update_position(db, position, admin, data.to_fields())
    except FieldError as e:
        raise e.to_http()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/positions/{position_id}/feature", response_model=PositionResponse)
def toggle_featured(position_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    return position_crud.toggle_featured(db, _get_position(db, position_id))


@router.post("/positions/{position_id}/archive", response_model=PositionResponse)
def archive_position(position_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    return position_crud.archive_position(db, _get_position(db, position_id))


@router.put("/positions/{position_id}/tier", response_model=PositionResponse)
def update_tier(
    position_id: uuid.UUID,
    data: ListingTypeUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    return position_crud.set_listing_type(db, _get_position(db, position_id), data.listing_type)


@router.post("/positions/{position_id}/extend", response_model=PositionResponse)
def extend_expiration(
    position_id: uuid.UUID,
    data: ExtendExpiration,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    try:
        return position_crud.extend_expiration(db, _get_position(db, position_id), data.days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ===== APPLICATIONS =====

@router.get("/applications")
def list_applications(
    status: Optional[ApplicationStatus] = None,
    position_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    per_page = 20
    result = application_crud.list_company_applications(
        db, None, status=status, position_id=position_id, company_id=company_id,
        skip=(max(page, 1) - 1) * per_page, limit=per_page
    )
    return {
        "items": [ApplicationResponse.from_application(a, include_applicant=True) for a in result["items"]],
        "total": result["total"],
        "page": page,
    }


# ===== USERS =====

@router.get("/users")
def list_users(
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    include_trashed: bool = False,
    page: int = 1,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    per_page = 20
    result = user_crud.list_users(
        db, search=search, role=role, include_trashed=include_trashed,
        skip=(max(page, 1) - 1) * per_page, limit=per_page
    )
    return {
        "items": [AdminUserResponse.model_validate(u) for u in result["items"]],
        "total": result["total"],
        "page": page,
    }


# ===== COMPANIES =====

@router.get("/companies")
def list_companies(
    search: Optional[str] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    per_page = 20
    result = company_crud.list_companies(db, search=search, skip=(max(page, 1) - 1) * per_page, limit=per_page)
    return {
        "items": [CompanyResponse.model_validate(c) for c in result["items"]],
        "total": result["total"],
        "page": page,
    }


@router.post("/companies", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
def create_company(data: CompanySetup, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    try:
        return company_crud.create_company(db, admin, **data.to_fields())
    except FieldError as e:
        raise e.to_http()


@router.get("/companies/{company_id}")
def show_company(company_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    company = _get_company(db, company_id)
    return {
        "company": CompanyResponse.model_validate(company),
        "members": [CompanyMemberResponse.model_validate(m) for m in company.members],
        "positions_count": len(company.positions),
    }


@router.put("/companies/{company_id}", response_model=CompanyResponse)
def update_company(
    company_id: uuid.UUID,
    data: CompanyUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    company = _get_company(db, company_id)
    try:
        return company_crud.update_company(db, company, **data.to_fields())
    except FieldError as e:
        raise e.to_http()


@router.delete("/companies/{company_id}")
def delete_company(company_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    logo = company_crud.delete_company(db, _get_company(db, company_id))
    if logo:
        try:
            delete_file(logo)
        except cloudinary.exceptions.Error:
            logger.exception("Failed to delete logo %s of deleted company", logo)
    return {"message": "Company deleted successfully."}


@router.post("/companies/{company_id}/members", response_model=CompanyMemberResponse, status_code=status.HTTP_201_CREATED)
def attach_member(
    company_id: uuid.UUID,
    data: CompanyMemberAttach,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    company = _get_company(db, company_id)
    user = user_crud.get_user_by_id(db, data.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        return company_crud.attach_member(db, company, user, data.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/companies/{company_id}/members/{user_id}", response_model=CompanyMemberResponse)
def update_member_role(
    company_id: uuid.UUID,
    user_id: uuid.UUID,
    data: CompanyMemberRoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    try:
        return company_crud.set_member_role(db, _get_company(db, company_id), user_id, data.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/companies/{company_id}/members/{user_id}")
def detach_member(
    company_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    try:
        company_crud.detach_member(db, _get_company(db, company_id), user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "User detached from company successfully."}


# ===== TECHNOLOGIES =====

@router.get("/technologies", response_model=List[TechnologyResponse])
def list_technologies(db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    return technology_crud.list_technologies(db)


@router.post("/technologies", response_model=TechnologyResponse, status_code=status.HTTP_201_CREATED)
def create_technology(data: TechnologyCreate, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    try:
        return technology_crud.create_technology(db, name=data.name, icon=data.icon, slug=data.slug)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/technologies/{technology_id}", response_model=TechnologyResponse)
def update_technology(
    technology_id: uuid.UUID,
    data: TechnologyUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only)
):
    technology = technology_crud.get_technology(db, technology_id)
    if not technology:
        raise HTTPException(status_code=404, detail="Technology not found")
    try:
        return technology_crud.update_technology(db, technology, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/technologies/{technology_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_technology(technology_id: uuid.UUID, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    technology = technology_crud.get_technology(db, technology_id)
    if not technology:
        raise HTTPException(status_code=404, detail="Technology not found")
    technology_crud.delete_technology(db, technology)
