from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
import uuid

from devjobs.database import get_db
from devjobs.crud import position_crud
from devjobs.models.user import User
from devjobs.models.position import Position, PositionStatus
from devjobs.schema.position_schema import (
    PositionCreate,
    PositionUpdate,
    PositionResponse,
    HrPositionListItem,
    PositionDetailResponse
)
from devjobs.services.payment import get_payment_service
from devjobs.utils.permissions import require_roles, check_company_profile_complete, can_manage_position
from devjobs.utils.validation import FieldError

router = APIRouter(prefix="/hr/positions", tags=["hr-positions"])

hr_only = require_roles("hr")


def get_managed_position(db: Session, position_id: uuid.UUID, user: User) -> Position:
    position = position_crud.get_position(db, position_id)
    if not position:
        raise HTTPException(status_code=404, detail="Position not found")
    if not can_manage_position(user, position):
        raise HTTPException(status_code=403, detail="Forbidden")
    return position


@router.get("/")
def list_positions(
    search: Optional[str] = None,
    status: Optional[PositionStatus] = None,
    show_archived: bool = False,
    company_id: Optional[uuid.UUID] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    per_page = 15
    result = position_crud.list_hr_positions(
        db,
        current_user,
        search=search,
        status=status,
        show_archived=show_archived,
        company_id=company_id,
        skip=(max(page, 1) - 1) * per_page,
        limit=per_page
    )

    items = []
    for position in result["items"]:
        item = HrPositionListItem.model_validate(position)
        item.payment_status = position_crud.payment_status(db, position)
        stats = position_crud.application_stats(db, [position.id])
        item.applications_count = stats["total"]
        items.append(item)

    result["items"] = items
    return result


@router.post("/", response_model=PositionResponse, status_code=status.HTTP_201_CREATED)
def create_position(
    data: PositionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    """New positions start as drafts; publishing happens through checkout"""
    check_company_profile_complete(current_user)
    try:
        return position_crud.create_position(db, current_user, data.to_fields())
    except FieldError as e:
        raise e.to_http()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{position_id}", response_model=PositionDetailResponse)
def show_position(
    position_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    position = get_managed_position(db, position_id, current_user)
    payments = get_payment_service()
    return {
        "position": PositionResponse.model_validate(position),
        "application_stats": position_crud.application_stats(db, [position.id]),
        "analytics": position_crud.view_analytics(db, position),
        "upgrade_options": payments.upgrade_options(position),
        "pricing": payments.pricing,
    }


@router.put("/{position_id}", response_model=PositionResponse)
def update_position(
    position_id: uuid.UUID,
    data: PositionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    position = get_managed_position(db, position_id, current_user)
    try:
        return position_crud.update_position(db, position, current_user, data.to_fields())
    except FieldError as e:
        raise e.to_http()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{position_id}/archive", response_model=PositionResponse)
def archive_position(
    position_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    position = get_managed_position(db, position_id, current_user)
    return position_crud.archive_position(db, position)


@router.post("/{position_id}/toggle-applications", response_model=PositionResponse)
def toggle_applications(
    position_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    position = get_managed_position(db, position_id, current_user)
    return position_crud.toggle_applications(db, position)
