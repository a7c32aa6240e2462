import logging
import math
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from devjobs.config import EXPIRY_WARNING_DAYS
from devjobs import models  # noqa: F401
from devjobs.database import SessionLocal
from devjobs.models.position import Position, PositionStatus
from devjobs.services.notifications import NotificationDispatcher
from devjobs.utils.dates import utcnow, as_utc
from devjobs.utils.log_config import configure_logging

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired: int = 0
    warned: int = 0
    failed: int = 0


def _days_remaining(expires_at: datetime, now: datetime) -> int:
    return max(1, math.ceil((as_utc(expires_at) - now).total_seconds() / 86400))


def _expire_one(db: Session, position_id, now: datetime) -> bool:
    """Conditional transition; False when someone else already moved the row"""
    result = db.execute(
        update(Position)
        .where(Position.id == position_id, Position.status == PositionStatus.PUBLISHED)
        .values(status=PositionStatus.EXPIRED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def expire_positions(
    db: Optional[Session] = None,
    notifier: Optional[NotificationDispatcher] = None,
    now: Optional[datetime] = None
) -> SweepResult:
    """
    Expire published positions past expires_at and warn owners of positions
    expiring within the warning window.
    Run daily.
    """
    owns_session = db is None
    db = db or SessionLocal()
    notifier = notifier or NotificationDispatcher(db)
    now = now or utcnow()
    result = SweepResult()

    try:
        candidate_ids = [
            row.id for row in db.query(Position.id).filter(
                Position.status == PositionStatus.PUBLISHED,
                Position.expires_at.isnot(None),
                Position.expires_at <= now
            ).all()
        ]

        for position_id in candidate_ids:
            try:
                if not _expire_one(db, position_id, now):
                    continue
                result.expired += 1
                position = db.get(Position, position_id)
                db.refresh(position)
                notifier.position_expired(position)
            except Exception:
                db.rollback()
                result.failed += 1
                logger.exception("Failed to expire position %s", position_id)

        warn_until = now + timedelta(days=EXPIRY_WARNING_DAYS)
        expiring = db.query(Position).filter(
            Position.status == PositionStatus.PUBLISHED,
            Position.expires_at.isnot(None),
            Position.expires_at > now,
            Position.expires_at <= warn_until
        ).all()

        for position in expiring:
            try:
                notifier.position_expiring(position, _days_remaining(position.expires_at, now))
                result.warned += 1
            except Exception:
                db.rollback()
                result.failed += 1
                logger.exception("Failed to send expiry warning for position %s", position.id)

        logger.info(
            "Expiry sweep finished: %d expired, %d warned, %d failed",
            result.expired, result.warned, result.failed
        )
        return result
    finally:
        if owns_session:
            db.close()


def main() -> int:
    """Entry point for the scheduler (devjobs-expire-positions)"""
    configure_logging()
    try:
        result = expire_positions()
    except Exception:
        logger.exception("Expiry sweep aborted")
        return 1
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
