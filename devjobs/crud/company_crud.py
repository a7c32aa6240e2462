from typing import Optional, List
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from devjobs.models.user import User, UserRole
from devjobs.models.company import Company, CompanyMember, CompanyMemberRole
from devjobs.models.position import Position, PositionStatus
from devjobs.utils.sanitizer import strip_html
from devjobs.utils.slugs import unique_slug
from devjobs.utils.dates import utcnow
from devjobs.utils.validation import FieldError


def _slug_taken(db: Session, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    query = db.query(Company.id).filter(Company.slug == slug)
    if exclude_id:
        query = query.filter(Company.id != exclude_id)
    return query.first() is not None


def get_company(db: Session, company_id: uuid.UUID) -> Optional[Company]:
    return db.query(Company).filter(Company.id == company_id).first()


def get_company_by_slug(db: Session, slug: str) -> Optional[Company]:
    return db.query(Company).filter(Company.slug == slug).first()


def get_member_role(db: Session, company: Company, user: User) -> Optional[CompanyMemberRole]:
    membership = db.query(CompanyMember).filter(
        CompanyMember.company_id == company.id,
        CompanyMember.user_id == user.id
    ).first()
    return membership.role if membership else None


def can_manage_company(db: Session, company: Company, user: User) -> bool:
    if user.is_admin:
        return True
    return get_member_role(db, company, user) in (CompanyMemberRole.OWNER, CompanyMemberRole.ADMIN)


def _clean_text_fields(fields: dict):
    for field in ("name", "description"):
        if fields.get(field) is not None:
            fields[field] = strip_html(fields[field])
    if "name" in fields and fields["name"] is not None and not fields["name"]:
        raise FieldError("name", "The company name cannot be empty.")


def setup_company(db: Session, user: User, **fields) -> Company:
    """
    Create the HR user's company, or update it when they already have one.
    The creator joins as an admin member.
    """
    if user.role != UserRole.HR:
        raise ValueError("Only HR users can set up a company")

    _clean_text_fields(fields)

    company = user.primary_company()
    if company:
        return update_company(db, company, **fields)

    name = fields.pop("name")
    company = Company(
        name=name,
        slug=unique_slug(name, lambda candidate: _slug_taken(db, candidate)),
        created_by_user_id=user.id,
        social_links={}
    )
    for key, value in fields.items():
        if hasattr(company, key):
            setattr(company, key, value)

    db.add(company)
    db.flush()
    db.add(CompanyMember(
        company_id=company.id,
        user_id=user.id,
        role=CompanyMemberRole.ADMIN,
        joined_at=utcnow()
    ))
    db.commit()
    db.refresh(company)
    db.refresh(user)
    return company


def update_company(db: Session, company: Company, **fields) -> Company:
    _clean_text_fields(fields)

    new_name = fields.get("name")
    if new_name and new_name != company.name:
        company.slug = unique_slug(new_name, lambda candidate: _slug_taken(db, candidate, company.id))

    for key, value in fields.items():
        if hasattr(company, key) and value is not None:
            setattr(company, key, value)

    db.commit()
    db.refresh(company)
    return company


def replace_logo(db: Session, company: Company, public_id: str, url: str) -> Optional[str]:
    old = company.logo_path
    company.logo_path = public_id
    company.logo_url = url
    db.commit()
    return old


def clear_logo(db: Session, company: Company) -> Optional[str]:
    old = company.logo_path
    company.logo_path = None
    company.logo_url = None
    db.commit()
    return old


def list_companies_with_live_positions(db: Session, skip: int = 0, limit: int = 20) -> List[dict]:
    """Companies that currently have published, unexpired positions, with counts"""
    now = utcnow()
    rows = db.query(Company, func.count(Position.id)).join(Position, Position.company_id == Company.id).filter(
        Position.status == PositionStatus.PUBLISHED,
        (Position.expires_at.is_(None)) | (Position.expires_at > now)
    ).group_by(Company.id).order_by(Company.name).offset(skip).limit(limit).all()

    return [{"company": company, "positions_count": count} for company, count in rows]


def list_companies(db: Session, search: Optional[str] = None, skip: int = 0, limit: int = 20) -> dict:
    query = db.query(Company)
    if search:
        query = query.filter(Company.name.ilike(f"%{search}%"))
    total = query.count()
    items = query.order_by(Company.created_at.desc()).offset(skip).limit(limit).all()
    return {"items": items, "total": total}


def company_recipients(db: Session, company_id: uuid.UUID) -> List[User]:
    """Active HR members who should hear about new applications"""
    return db.query(User).join(CompanyMember, CompanyMember.user_id == User.id).filter(
        CompanyMember.company_id == company_id,
        User.role == UserRole.HR,
    ).all()


# ----------------- Admin -----------------
def create_company(db: Session, creator: User, **fields) -> Company:
    """Admin-created company; no membership is implied"""
    _clean_text_fields(fields)

    name = fields.pop("name")
    company = Company(
        name=name,
        slug=unique_slug(name, lambda candidate: _slug_taken(db, candidate)),
        created_by_user_id=creator.id,
        social_links={}
    )
    for key, value in fields.items():
        if hasattr(company, key) and value is not None:
            setattr(company, key, value)

    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def delete_company(db: Session, company: Company) -> Optional[str]:
    """Delete the company with its positions; returns the logo to remove"""
    logo = company.logo_path
    db.delete(company)
    db.commit()
    return logo


def _membership(db: Session, company: Company, user_id: uuid.UUID) -> Optional[CompanyMember]:
    return db.query(CompanyMember).filter(
        CompanyMember.company_id == company.id,
        CompanyMember.user_id == user_id
    ).first()


def _is_sole_owner(db: Session, company: Company, user_id: uuid.UUID) -> bool:
    if company.created_by_user_id != user_id:
        return False
    owners = db.query(func.count(CompanyMember.id)).filter(
        CompanyMember.company_id == company.id,
        CompanyMember.role == CompanyMemberRole.OWNER
    ).scalar()
    return owners == 1


def attach_member(db: Session, company: Company, user: User, role: CompanyMemberRole) -> CompanyMember:
    if _membership(db, company, user.id):
        raise ValueError("User is already attached to this company.")

    membership = CompanyMember(company_id=company.id, user_id=user.id, role=role, joined_at=utcnow())
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def detach_member(db: Session, company: Company, user_id: uuid.UUID):
    membership = _membership(db, company, user_id)
    if not membership:
        raise ValueError("User is not a member of this company.")
    if _is_sole_owner(db, company, user_id):
        raise ValueError("Cannot detach the company creator as they are the only owner.")
    db.delete(membership)
    db.commit()


def set_member_role(db: Session, company: Company, user_id: uuid.UUID, role: CompanyMemberRole) -> CompanyMember:
    membership = _membership(db, company, user_id)
    if not membership:
        raise ValueError("User is not a member of this company.")
    if role != CompanyMemberRole.OWNER and _is_sole_owner(db, company, user_id):
        raise ValueError("Cannot change the company creator's role as they are the only owner.")
    membership.role = role
    db.commit()
    db.refresh(membership)
    return membership
