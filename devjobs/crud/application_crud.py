from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional, Dict
import uuid

from devjobs.models.user import User
from devjobs.models.position import Position
from devjobs.models.application import Application, ApplicationStatus
from devjobs.utils.sanitizer import strip_html
from devjobs.utils.validation import FieldError

COVER_LETTER_MAX_LENGTH = 5000
ANSWER_MAX_LENGTH = 2000


def has_applied(db: Session, position: Position, user: User) -> bool:
    return db.query(Application.id).filter(
        Application.position_id == position.id,
        Application.user_id == user.id
    ).first() is not None


def _validate_answers(position: Position, answers: Dict[str, Optional[str]]) -> Dict[str, str]:
    cleaned: Dict[str, str] = {}
    for question in position.custom_questions:
        key = str(question.id)
        answer = strip_html(answers.get(key) or "")
        field = f"custom_answers.{key}"

        if question.is_required and not answer:
            raise FieldError(field, "This question is required.")
        if len(answer) > ANSWER_MAX_LENGTH:
            raise FieldError(field, f"Your answer cannot exceed {ANSWER_MAX_LENGTH} characters.")
        if answer:
            cleaned[key] = answer
    return cleaned


def create_application(
    db: Session,
    position: Position,
    user: User,
    cover_letter: Optional[str] = None,
    custom_answers: Optional[Dict[str, Optional[str]]] = None
) -> Application:
    """Create new application"""
    if not position.can_receive_applications():
        raise ValueError("This position is not accepting applications.")

    if has_applied(db, position, user):
        raise ValueError("You have already applied to this position.")

    if cover_letter and len(cover_letter) > COVER_LETTER_MAX_LENGTH:
        raise FieldError("cover_letter", f"Your cover letter cannot exceed {COVER_LETTER_MAX_LENGTH} characters.")

    answers = _validate_answers(position, custom_answers or {})

    application = Application(
        position_id=position.id,
        user_id=user.id,
        cover_letter=strip_html(cover_letter) if cover_letter else None,
        custom_answers=answers,
        status=ApplicationStatus.PENDING
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent submit won the unique (position, user) race
        db.rollback()
        raise ValueError("You have already applied to this position.")
    db.refresh(application)
    return application


def get_application(db: Session, application_id: uuid.UUID) -> Optional[Application]:
    return db.query(Application).filter(Application.id == application_id).first()


def list_user_applications(db: Session, user: User, skip: int = 0, limit: int = 15) -> Dict:
    query = db.query(Application).filter(Application.user_id == user.id)
    total = query.count()
    items = query.order_by(Application.applied_at.desc()).offset(skip).limit(limit).all()
    return {"items": items, "total": total}


def list_company_applications(
    db: Session,
    company_ids: Optional[List[uuid.UUID]],
    status: Optional[ApplicationStatus] = None,
    position_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 20
) -> Dict:
    """Applications to the given companies' positions; company_ids=None means all"""
    query = db.query(Application).join(Position, Position.id == Application.position_id)

    if company_ids is not None:
        query = query.filter(Position.company_id.in_(company_ids))
    if status:
        query = query.filter(Application.status == status)
    if position_id:
        query = query.filter(Application.position_id == position_id)
    if company_id:
        query = query.filter(Position.company_id == company_id)

    total = query.count()
    items = query.order_by(Application.applied_at.desc()).offset(skip).limit(limit).all()
    return {"items": items, "total": total}


def update_application_status(
    db: Session,
    application: Application,
    reviewer: User,
    status: ApplicationStatus
) -> ApplicationStatus:
    """
    Set the review status. Applications from anonymized users can only be
    rejected. Returns the previous status.
    """
    if application.user.is_trashed and status != ApplicationStatus.REJECTED:
        raise FieldError("status", "Can only reject applications from archived users.")

    previous = application.status
    application.status = status
    application.reviewed_by_user_id = reviewer.id
    db.commit()
    db.refresh(application)
    return previous


def count_by_status(db: Session, user: User) -> Dict[str, int]:
    counts = {"total": 0, **{status.value: 0 for status in ApplicationStatus}}
    for application in db.query(Application).filter(Application.user_id == user.id).all():
        counts[application.status.value] += 1
        counts["total"] += 1
    return counts
