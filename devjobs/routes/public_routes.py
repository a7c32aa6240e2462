from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import Optional, List

from devjobs.database import get_db
from devjobs.crud import position_crud, company_crud, application_crud, technology_crud
from devjobs.models.user import User
from devjobs.models.position import Seniority, RemoteType
from devjobs.schema.position_schema import PublicPositionResponse
from devjobs.schema.company_schema import CompanyResponse, CompanyListItem
from devjobs.schema.misc_schema import TechnologyResponse
from devjobs.utils.security import get_optional_user

router = APIRouter(tags=["public"])


def _public_position(db: Session, position, user: Optional[User]) -> PublicPositionResponse:
    item = PublicPositionResponse.model_validate(position)
    item.accepting_applications = position.can_receive_applications()
    item.has_applied = bool(user) and application_crud.has_applied(db, position, user)
    return item


# ===================== POSITIONS =====================

@router.get("/positions")
def browse_positions(
    search: Optional[str] = None,
    technology: Optional[str] = None,
    seniority: Optional[Seniority] = None,
    remote_type: Optional[RemoteType] = None,
    location_restriction: Optional[str] = None,
    min_salary: Optional[int] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Published, unexpired positions; top listings first"""
    per_page = 20
    result = position_crud.search_public_positions(
        db,
        search=search,
        technology=technology,
        seniority=seniority,
        remote_type=remote_type,
        location_restriction=location_restriction,
        min_salary=min_salary,
        skip=(max(page, 1) - 1) * per_page,
        limit=per_page
    )
    result["items"] = [_public_position(db, position, current_user) for position in result["items"]]
    return result


@router.get("/positions/{slug}", response_model=PublicPositionResponse)
def show_position(
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    position = position_crud.get_published_position_by_slug(db, slug)
    if not position:
        raise HTTPException(status_code=404, detail="Position not found")

    position_crud.record_view(
        db,
        position,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
        country_code=request.headers.get("cf-ipcountry")
    )
    return _public_position(db, position, current_user)


# ===================== COMPANIES =====================

@router.get("/companies", response_model=List[CompanyListItem])
def browse_companies(page: int = 1, db: Session = Depends(get_db)):
    per_page = 20
    rows = company_crud.list_companies_with_live_positions(db, skip=(max(page, 1) - 1) * per_page, limit=per_page)
    items = []
    for row in rows:
        item = CompanyListItem.model_validate(row["company"])
        item.positions_count = row["positions_count"]
        items.append(item)
    return items


@router.get("/companies/{slug}")
def show_company(slug: str, db: Session = Depends(get_db)):
    company = company_crud.get_company_by_slug(db, slug)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    positions = position_crud.search_public_positions(db, company_id=company.id, limit=100)
    return {
        "company": CompanyResponse.model_validate(company),
        "positions": [PublicPositionResponse.model_validate(p) for p in positions["items"]],
    }


@router.get("/technologies", response_model=List[TechnologyResponse])
def list_technologies(db: Session = Depends(get_db)):
    return technology_crud.list_technologies(db)
