"""
Notification port.

Every notification is written to the notifications table (the database
channel) and, when SMTP credentials are configured, mailed to the user.
Routes get the dispatcher through the get_notifier dependency; the expiry
sweep builds one around its own session.
"""
import logging
import smtplib
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from devjobs.database import get_db
from devjobs.models.user import User, UserRole, AccountState
from devjobs.models.position import Position
from devjobs.models.application import Application
from devjobs.models.notification import Notification
from devjobs.utils.email import send_email, render_email, smtp_configured

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, db: Session, mail_enabled: Optional[bool] = None):
        self.db = db
        self.mail_enabled = smtp_configured() if mail_enabled is None else mail_enabled

    # ----------------- Channels -----------------
    def _store(self, user: User, type_: str, data: dict) -> Notification:
        notification = Notification(user_id=user.id, type=type_, data=data)
        self.db.add(notification)
        self.db.commit()
        return notification

    def _mail(self, user: User, subject: str, html_body: str):
        if not self.mail_enabled:
            return
        try:
            send_email(user.email, subject, html_body)
        except (smtplib.SMTPException, OSError):
            # the database copy is already stored
            logger.exception("Failed to mail notification to user %s", user.id)

    def _deliver(self, user: Optional[User], type_: str, data: dict, subject: str, html_body: str):
        if user is None or user.account_state != AccountState.ACTIVE:
            return
        self._store(user, type_, data)
        self._mail(user, subject, html_body)

    def _position_owner(self, position: Position) -> Optional[User]:
        return position.creator

    def _admins(self) -> list[User]:
        return self.db.query(User).filter(
            User.role == UserRole.ADMIN,
            User.account_state == AccountState.ACTIVE
        ).all()

    # ----------------- Position lifecycle -----------------
    def position_expired(self, position: Position):
        owner = self._position_owner(position)
        self._deliver(
            owner,
            "position_expired",
            {"position_id": str(position.id), "title": position.title, "slug": position.slug},
            f"Your position \"{position.title}\" has expired",
            render_email(
                f"Hi {owner.name if owner else ''},",
                [f"Your position '{position.title}' has expired and is no longer visible to candidates."],
                "Manage position",
                f"/hr/positions/{position.id}"
            )
        )

    def position_expiring(self, position: Position, days_remaining: int):
        owner = self._position_owner(position)
        day_word = "day" if days_remaining == 1 else "days"
        self._deliver(
            owner,
            "position_expiring",
            {"position_id": str(position.id), "title": position.title, "days_remaining": days_remaining},
            f"Your position \"{position.title}\" expires in {days_remaining} {day_word}",
            render_email(
                f"Hi {owner.name if owner else ''},",
                [f"Your position '{position.title}' expires in {days_remaining} {day_word}."],
                "View position",
                f"/hr/positions/{position.id}"
            )
        )

    def position_published(self, position: Position):
        """Tells administrators a paid listing went live"""
        for admin in self._admins():
            self._deliver(
                admin,
                "position_published",
                {"position_id": str(position.id), "title": position.title, "tier": position.listing_type.value},
                f"New {position.listing_type.label} position published",
                render_email(
                    f"Hi {admin.name},",
                    [f"'{position.title}' was just published as a {position.listing_type.label} listing."],
                    "Review position",
                    f"/admin/positions/{position.id}"
                )
            )

    def position_upgraded(self, position: Position, old_tier: str, new_tier: str):
        for admin in self._admins():
            self._deliver(
                admin,
                "position_upgraded",
                {"position_id": str(position.id), "title": position.title, "old_tier": old_tier, "new_tier": new_tier},
                "Position upgraded",
                render_email(
                    f"Hi {admin.name},",
                    [f"'{position.title}' was upgraded from {old_tier} to {new_tier}."]
                )
            )

    # ----------------- Applications -----------------
    def new_application(self, application: Application, recipients: list[User]):
        position = application.position
        for recipient in recipients:
            self._deliver(
                recipient,
                "new_application",
                {
                    "application_id": str(application.id),
                    "position_id": str(position.id),
                    "title": position.title,
                    "applicant": application.user.name,
                },
                f"New application for {position.title}",
                render_email(
                    f"Hi {recipient.name},",
                    [f"{application.user.name} applied to '{position.title}'."],
                    "Review application",
                    f"/hr/applications/{application.id}"
                )
            )

    def application_status_changed(self, application: Application, old_status: str):
        applicant = application.user
        self._deliver(
            applicant,
            "application_status_changed",
            {
                "application_id": str(application.id),
                "title": application.position.title,
                "old_status": old_status,
                "new_status": application.status.value,
            },
            f"Update on your application for {application.position.title}",
            render_email(
                f"Hi {applicant.name},",
                [f"Your application status changed from {old_status} to {application.status.value}."]
            )
        )

    # ----------------- Account -----------------
    def welcome(self, user: User):
        self._deliver(
            user,
            "welcome",
            {"name": user.name},
            "Welcome aboard",
            render_email(f"Welcome, {user.name}!", ["Your account is ready."], "Get started", "/dashboard")
        )


def get_notifier(db: Session = Depends(get_db)) -> NotificationDispatcher:
    return NotificationDispatcher(db)
