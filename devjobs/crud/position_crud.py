import hashlib
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Dict, Any
import uuid

from sqlalchemy import or_, func, case
from sqlalchemy.orm import Session

from devjobs.config import LISTING_DURATION_DAYS, JWT_SECRET_KEY
from devjobs.models.user import User
from devjobs.models.company import Company
from devjobs.models.position import Position, PositionStatus, ListingType, RemoteType
from devjobs.models.custom_question import CustomQuestion
from devjobs.models.technology import Technology
from devjobs.models.application import Application, ApplicationStatus
from devjobs.models.payment import Payment
from devjobs.models.position_view import PositionView
from devjobs.utils.sanitizer import strip_html, sanitize_rich_text
from devjobs.utils.slugs import unique_slug
from devjobs.utils.dates import utcnow, as_utc
from devjobs.utils.validation import FieldError

logger = logging.getLogger(__name__)

# Only admins may set these directly; HR goes through payment
ADMIN_ONLY_FIELDS = ("status", "expires_at", "listing_type")

PLAIN_TEXT_FIELDS = ("title", "short_description", "location_restriction")
REQUIRED_TEXT_FIELDS = ("title", "short_description", "long_description")

# Columns an update may set back to null; for the rest a null means "unchanged"
CLEARABLE_FIELDS = ("seniority", "salary_min", "salary_max", "location_restriction", "external_apply_url", "expires_at")


# ----------------- Lookups -----------------
def _slug_taken(db: Session, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    query = db.query(Position.id).filter(Position.slug == slug)
    if exclude_id:
        query = query.filter(Position.id != exclude_id)
    return query.first() is not None


def generate_position_slug(db: Session, title: str, exclude_id: Optional[uuid.UUID] = None) -> str:
    return unique_slug(title, lambda candidate: _slug_taken(db, candidate, exclude_id))


def get_position(db: Session, position_id: uuid.UUID) -> Optional[Position]:
    return db.query(Position).filter(Position.id == position_id).first()


def get_published_position_by_slug(db: Session, slug: str) -> Optional[Position]:
    return db.query(Position).filter(
        Position.slug == slug,
        Position.status == PositionStatus.PUBLISHED
    ).first()


# ----------------- Create / update -----------------
def _sanitize_fields(data: Dict[str, Any]):
    for field in PLAIN_TEXT_FIELDS:
        if data.get(field) is not None:
            data[field] = strip_html(data[field])
    if data.get("long_description") is not None:
        data["long_description"] = sanitize_rich_text(data["long_description"])

    for field in REQUIRED_TEXT_FIELDS:
        if field in data and data[field] is not None and not strip_html(data[field]):
            raise FieldError(field, "This field cannot be empty.")
    if data.get("location_restriction") == "":
        data["location_restriction"] = None


def _check_consistency(values: Dict[str, Any]):
    """Cross-field rules on the merged (stored + submitted) values of an update"""
    salary_min, salary_max = values.get("salary_min"), values.get("salary_max")
    if salary_min is not None and salary_max is not None and salary_max < salary_min:
        raise FieldError("salary_max", "The maximum salary must be greater than or equal to the minimum salary.")
    if values.get("remote_type") in (RemoteType.TIMEZONE, RemoteType.COUNTRY) and not values.get("location_restriction"):
        raise FieldError(
            "location_restriction", "Location restriction is required when remote type is timezone or country."
        )
    if values.get("is_external") and not values.get("external_apply_url"):
        raise FieldError(
            "external_apply_url", "External application URL is required when position is marked as external."
        )


def _resolve_technologies(db: Session, technology_ids: List[uuid.UUID]) -> List[Technology]:
    if not technology_ids:
        return []
    technologies = db.query(Technology).filter(Technology.id.in_(technology_ids)).all()
    if len(technologies) != len(set(technology_ids)):
        raise ValueError("One or more selected technologies are invalid.")
    return technologies


def _question_text(value: str) -> str:
    text = strip_html(value)
    if not text:
        raise FieldError("custom_questions", "Question text cannot be empty.")
    return text


def _sync_custom_questions(db: Session, position: Position, questions: List[Dict[str, Any]]):
    """Update listed questions, create new ones, drop the rest"""
    existing = {question.id: question for question in position.custom_questions}
    kept_ids = set()

    for index, data in enumerate(questions):
        question_id = data.get("id")
        if data.get("destroy"):
            continue

        attributes = {
            "question_text": _question_text(data["question_text"]),
            "is_required": data.get("is_required", False),
            "order": data.get("order") if data.get("order") is not None else index,
        }

        if question_id and question_id in existing:
            question = existing[question_id]
            for key, value in attributes.items():
                setattr(question, key, value)
            kept_ids.add(question_id)
        else:
            position.custom_questions.append(CustomQuestion(**attributes))

    for question_id, question in existing.items():
        if question_id not in kept_ids:
            position.custom_questions.remove(question)


def create_position(db: Session, creator: User, data: Dict[str, Any]) -> Position:
    """
    HR positions always start as drafts and are published by payment.
    Admins may publish directly; a published position without an expiry
    gets the standard listing duration.
    """
    data = dict(data)
    technology_ids = data.pop("technology_ids", None) or []
    custom_questions = data.pop("custom_questions", None) or []

    company = db.query(Company).filter(Company.id == data["company_id"]).first()
    if not company:
        raise ValueError("The selected company does not exist.")
    if not creator.is_admin and company.id not in creator.company_ids():
        raise ValueError("You are not a member of the selected company.")

    if creator.is_admin:
        status = data.pop("status", None) or PositionStatus.DRAFT
        listing_type = data.pop("listing_type", None) or ListingType.REGULAR
        expires_at = data.pop("expires_at", None)
    else:
        for field in ADMIN_ONLY_FIELDS:
            data.pop(field, None)
        status = PositionStatus.DRAFT
        listing_type = ListingType.REGULAR
        expires_at = None

    _sanitize_fields(data)
    _check_consistency(data)
    question_texts = [_question_text(question["question_text"]) for question in custom_questions]

    position = Position(
        **data,
        slug=generate_position_slug(db, data["title"]),
        created_by_user_id=creator.id,
        status=status,
        listing_type=listing_type,
        expires_at=expires_at,
    )

    if status == PositionStatus.PUBLISHED:
        position.published_at = utcnow()
        if position.expires_at is None:
            position.expires_at = utcnow() + timedelta(days=LISTING_DURATION_DAYS)

    position.technologies = _resolve_technologies(db, technology_ids)
    for index, question in enumerate(custom_questions):
        position.custom_questions.append(CustomQuestion(
            question_text=question_texts[index],
            is_required=question.get("is_required", False),
            order=question.get("order") if question.get("order") is not None else index,
        ))

    db.add(position)
    db.commit()
    db.refresh(position)
    logger.info("Position %s created by %s with status %s", position.id, creator.id, position.status.value)
    return position


def update_position(db: Session, position: Position, editor: User, data: Dict[str, Any]) -> Position:
    data = dict(data)
    technology_ids = data.pop("technology_ids", None)
    custom_questions = data.pop("custom_questions", None)

    if not editor.is_admin:
        for field in ADMIN_ONLY_FIELDS:
            data.pop(field, None)

    if "company_id" in data and data["company_id"] is not None:
        if not editor.is_admin and data["company_id"] not in editor.company_ids():
            raise ValueError("You are not a member of the selected company.")

    # Only submitted keys arrive here; an explicit null clears a nullable column
    changes = {
        key: value for key, value in data.items()
        if hasattr(position, key) and (value is not None or key in CLEARABLE_FIELDS)
    }
    _sanitize_fields(changes)
    _check_consistency({
        field: changes.get(field, getattr(position, field))
        for field in ("salary_min", "salary_max", "remote_type", "location_restriction", "is_external",
                      "external_apply_url")
    })

    title = changes.get("title")
    if title and title != position.title:
        position.slug = generate_position_slug(db, title, position.id)

    new_status = changes.get("status")
    if new_status == PositionStatus.PUBLISHED and position.published_at is None:
        position.published_at = utcnow()

    technologies = _resolve_technologies(db, technology_ids) if technology_ids is not None else None
    for question in custom_questions or []:
        if not question.get("destroy"):
            _question_text(question["question_text"])

    for key, value in changes.items():
        setattr(position, key, value)
    if technologies is not None:
        position.technologies = technologies
    if custom_questions is not None:
        _sync_custom_questions(db, position, custom_questions)

    db.commit()
    db.refresh(position)
    return position


def archive_position(db: Session, position: Position) -> Position:
    position.status = PositionStatus.ARCHIVED
    db.commit()
    db.refresh(position)
    return position


def toggle_applications(db: Session, position: Position) -> Position:
    position.allow_platform_applications = not position.allow_platform_applications
    db.commit()
    db.refresh(position)
    return position


# ----------------- Admin moderation -----------------
def toggle_featured(db: Session, position: Position) -> Position:
    if position.listing_type == ListingType.FEATURED:
        position.listing_type = ListingType.REGULAR
    else:
        position.listing_type = ListingType.FEATURED
    db.commit()
    db.refresh(position)
    return position


def set_listing_type(db: Session, position: Position, listing_type: ListingType) -> Position:
    position.listing_type = listing_type
    db.commit()
    db.refresh(position)
    return position


def extend_expiration(db: Session, position: Position, days: int) -> Position:
    if days < 1 or days > 365:
        raise ValueError("Days must be between 1 and 365")
    base = as_utc(position.expires_at) or utcnow()
    position.expires_at = base + timedelta(days=days)
    db.commit()
    db.refresh(position)
    return position


def bulk_action(db: Session, action: str, position_ids: List[uuid.UUID]) -> int:
    positions = db.query(Position).filter(Position.id.in_(position_ids)).all()
    if len(positions) != len(set(position_ids)):
        raise ValueError("One or more selected positions do not exist.")

    for position in positions:
        if action == "feature":
            position.listing_type = ListingType.FEATURED
        elif action == "unfeature":
            position.listing_type = ListingType.REGULAR
        elif action == "archive":
            position.status = PositionStatus.ARCHIVED
        elif action == "delete":
            db.delete(position)
        else:
            raise ValueError(f"Unknown action: {action}")

    db.commit()
    return len(positions)


# ----------------- Listings -----------------
def payment_status(db: Session, position: Position) -> str:
    if position.paid_at is not None:
        return "paid"
    latest = db.query(Payment).filter(Payment.position_id == position.id).order_by(Payment.created_at.desc()).first()
    if latest:
        return {
            "completed": "paid",
            "pending": "pending",
            "failed": "failed",
            "refunded": "refunded",
        }.get(latest.status.value, "unpaid")
    return "unpaid"


def _paginate(query, skip: int, limit: int) -> Dict:
    total = query.count()
    items = query.offset(skip).limit(limit).all()
    page = (skip // limit) + 1 if limit > 0 else 1
    pages = (total + limit - 1) // limit if limit > 0 else 1
    return {
        "items": items,
        "total": total,
        "page": page,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1
    }


def list_hr_positions(
    db: Session,
    user: User,
    search: Optional[str] = None,
    status: Optional[PositionStatus] = None,
    show_archived: bool = False,
    company_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 15
) -> Dict:
    query = db.query(Position)
    if not user.is_admin:
        query = query.filter(Position.company_id.in_(user.company_ids()))

    if search:
        query = query.filter(or_(
            Position.title.ilike(f"%{search}%"),
            Position.short_description.ilike(f"%{search}%")
        ))

    if status == PositionStatus.ARCHIVED:
        query = query.filter(Position.status == PositionStatus.ARCHIVED)
    else:
        if status:
            query = query.filter(Position.status == status)
        if not show_archived:
            query = query.filter(Position.status != PositionStatus.ARCHIVED)

    if company_id:
        query = query.filter(Position.company_id == company_id)

    return _paginate(query.order_by(Position.created_at.desc()), skip, limit)


def list_admin_positions(
    db: Session,
    admin: User,
    status: Optional[PositionStatus] = None,
    company_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 20
) -> Dict:
    """Every non-draft position, plus the admin's own drafts"""
    query = db.query(Position).filter(or_(
        Position.status != PositionStatus.DRAFT,
        Position.created_by_user_id == admin.id
    ))

    if status:
        query = query.filter(Position.status == status)
    if company_id:
        query = query.filter(Position.company_id == company_id)
    if search:
        query = query.filter(or_(
            Position.title.ilike(f"%{search}%"),
            Position.short_description.ilike(f"%{search}%")
        ))

    return _paginate(query.order_by(Position.created_at.desc()), skip, limit)


def search_public_positions(
    db: Session,
    search: Optional[str] = None,
    technology: Optional[str] = None,
    seniority: Optional[str] = None,
    remote_type: Optional[str] = None,
    location_restriction: Optional[str] = None,
    min_salary: Optional[int] = None,
    company_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 20
) -> Dict:
    """Published, unexpired positions; top listings always come first"""
    now = utcnow()
    query = db.query(Position).filter(
        Position.status == PositionStatus.PUBLISHED,
        or_(Position.expires_at.is_(None), Position.expires_at > now)
    )

    if search:
        query = query.filter(or_(
            Position.title.ilike(f"%{search}%"),
            Position.short_description.ilike(f"%{search}%"),
            Position.long_description.ilike(f"%{search}%")
        ))

    if technology:
        query = query.filter(Position.technologies.any(Technology.slug == technology))

    if seniority:
        query = query.filter(Position.seniority == seniority)

    if remote_type:
        query = query.filter(Position.remote_type == remote_type)

    if location_restriction:
        query = query.filter(Position.location_restriction == location_restriction)

    if min_salary:
        query = query.filter(Position.salary_max >= min_salary)

    if company_id:
        query = query.filter(Position.company_id == company_id)

    top_first = case((Position.listing_type == ListingType.TOP, 1), else_=2)
    query = query.order_by(top_first, Position.published_at.desc())

    return _paginate(query, skip, limit)


# ----------------- Stats & views -----------------
def application_stats(db: Session, position_ids: List[uuid.UUID]) -> Dict[str, int]:
    stats = {"total": 0, **{status.value: 0 for status in ApplicationStatus}}
    if not position_ids:
        return stats

    rows = db.query(Application.status, func.count(Application.id)).filter(
        Application.position_id.in_(position_ids)
    ).group_by(Application.status).all()

    for status, count in rows:
        stats[status.value] = count
        stats["total"] += count
    return stats


def view_analytics(db: Session, position: Position, days: int = 30) -> Dict[str, Any]:
    total = db.query(func.count(PositionView.id)).filter(PositionView.position_id == position.id).scalar()

    countries = db.query(PositionView.country_code, func.count(PositionView.id).label("count")).filter(
        PositionView.position_id == position.id,
        PositionView.country_code.isnot(None)
    ).group_by(PositionView.country_code).order_by(func.count(PositionView.id).desc()).limit(10).all()

    since = utcnow() - timedelta(days=days)
    recent = db.query(PositionView.viewed_at).filter(
        PositionView.position_id == position.id,
        PositionView.viewed_at >= since
    ).all()
    by_date: Dict[str, int] = {}
    for (viewed_at,) in recent:
        key = as_utc(viewed_at).date().isoformat()
        by_date[key] = by_date.get(key, 0) + 1

    return {
        "total_views": total or 0,
        "countries": [{"country": code, "count": count} for code, count in countries],
        "views_by_date": [{"date": date, "count": count} for date, count in sorted(by_date.items())],
    }


def hash_ip(ip_address: str) -> str:
    return hashlib.sha256(f"{JWT_SECRET_KEY}:{ip_address}".encode("utf-8")).hexdigest()


def record_view(
    db: Session,
    position: Position,
    ip_address: str,
    user_agent: Optional[str] = None,
    referrer: Optional[str] = None,
    country_code: Optional[str] = None,
    now: Optional[datetime] = None
) -> bool:
    """One view per hashed IP per position per day; returns True if recorded"""
    now = now or utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    ip_hash = hash_ip(ip_address or "unknown")

    seen = db.query(PositionView.id).filter(
        PositionView.position_id == position.id,
        PositionView.ip_address_hash == ip_hash,
        PositionView.viewed_at >= start_of_day
    ).first()
    if seen:
        return False

    db.add(PositionView(
        position_id=position.id,
        ip_address_hash=ip_hash,
        country_code=(country_code or None) and country_code[:2].upper(),
        user_agent=user_agent[:500] if user_agent else None,
        referrer=referrer[:500] if referrer else None,
        viewed_at=now
    ))
    db.commit()
    return True
