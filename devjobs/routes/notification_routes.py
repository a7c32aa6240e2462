import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.models.user import User
from devjobs.models.notification import Notification
from devjobs.schema.misc_schema import NotificationResponse
from devjobs.utils.dates import utcnow
from devjobs.utils.security import get_current_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/")
def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    unread_count = query.filter(Notification.read_at.is_(None)).count()
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))

    items = query.order_by(Notification.created_at.desc()).limit(min(limit, 100)).all()
    return {
        "items": [NotificationResponse.model_validate(n) for n in items],
        "unread_count": unread_count,
    }


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_as_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    if notification.read_at is None:
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification


@router.post("/read-all")
def mark_all_as_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    updated = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.read_at.is_(None)
    ).update({Notification.read_at: utcnow()}, synchronize_session=False)
    db.commit()
    return {"marked": updated}
