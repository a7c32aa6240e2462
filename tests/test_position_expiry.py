from datetime import timedelta

from devjobs.models.notification import Notification
from devjobs.models.position import Position, PositionStatus
from devjobs.services.notifications import NotificationDispatcher
from devjobs.tasks import position_expiry
from devjobs.tasks.position_expiry import SweepResult, expire_positions, _expire_one
from devjobs.utils.dates import utcnow


def notifications_of(db, user, type_):
    return db.query(Notification).filter(Notification.user_id == user.id, Notification.type == type_).all()


def test_expires_published_positions_past_their_date(db, notifier, hr_user, make_position):
    company = hr_user.primary_company()
    stale = make_position(company, hr_user, expires_in=timedelta(hours=-1))
    fresh = make_position(company, hr_user, expires_in=timedelta(days=20))

    result = expire_positions(db, notifier)

    db.refresh(stale)
    db.refresh(fresh)
    assert result.expired == 1
    assert result.failed == 0
    assert stale.status == PositionStatus.EXPIRED
    assert fresh.status == PositionStatus.PUBLISHED
    assert len(notifications_of(db, hr_user, "position_expired")) == 1


def test_second_sweep_is_a_no_op(db, notifier, hr_user, make_position):
    make_position(hr_user.primary_company(), hr_user, expires_in=timedelta(days=-2))

    assert expire_positions(db, notifier).expired == 1
    second = expire_positions(db, notifier)

    assert second.expired == 0
    assert len(notifications_of(db, hr_user, "position_expired")) == 1


def test_positions_without_expiry_or_not_published_are_left_alone(db, notifier, hr_user, make_position):
    company = hr_user.primary_company()
    open_ended = make_position(company, hr_user)
    draft = make_position(company, hr_user, status=PositionStatus.DRAFT, expires_in=timedelta(days=-1))
    archived = make_position(company, hr_user, status=PositionStatus.ARCHIVED, expires_in=timedelta(days=-1))

    result = expire_positions(db, notifier)

    assert result.expired == 0
    for position in (open_ended, draft, archived):
        status = position.status
        db.refresh(position)
        assert position.status == status


def test_conditional_transition_skips_rows_moved_by_someone_else(db, hr_user, make_position):
    position = make_position(hr_user.primary_company(), hr_user, status=PositionStatus.ARCHIVED,
                             expires_in=timedelta(days=-1))

    assert _expire_one(db, position.id, utcnow()) is False

    db.refresh(position)
    assert position.status == PositionStatus.ARCHIVED


def test_warns_owners_of_positions_expiring_soon(db, notifier, hr_user, make_position):
    company = hr_user.primary_company()
    soon = make_position(company, hr_user, expires_in=timedelta(days=2, hours=1))
    make_position(company, hr_user, expires_in=timedelta(days=10))

    result = expire_positions(db, notifier)

    assert result.warned == 1
    warnings = notifications_of(db, hr_user, "position_expiring")
    assert len(warnings) == 1
    assert warnings[0].data["position_id"] == str(soon.id)
    assert warnings[0].data["days_remaining"] == 3
    db.refresh(soon)
    assert soon.status == PositionStatus.PUBLISHED


def test_warning_window_boundaries(db, notifier, hr_user, make_position):
    now = utcnow().replace(microsecond=0)
    company = hr_user.primary_company()
    due_now = make_position(company, hr_user, title="Due now")
    at_limit = make_position(company, hr_user, title="At limit")
    past_limit = make_position(company, hr_user, title="Past limit")
    due_now.expires_at = now
    at_limit.expires_at = now + timedelta(days=3)
    past_limit.expires_at = now + timedelta(days=3, seconds=1)
    db.commit()

    result = expire_positions(db, notifier, now=now)

    assert (result.expired, result.warned, result.failed) == (1, 1, 0)
    warnings = notifications_of(db, hr_user, "position_expiring")
    assert [w.data["position_id"] for w in warnings] == [str(at_limit.id)]
    assert warnings[0].data["days_remaining"] == 3
    for position, status in ((due_now, PositionStatus.EXPIRED), (at_limit, PositionStatus.PUBLISHED),
                             (past_limit, PositionStatus.PUBLISHED)):
        db.refresh(position)
        assert position.status == status


def test_days_remaining_never_drops_below_one():
    now = utcnow()
    assert position_expiry._days_remaining(now + timedelta(minutes=5), now) == 1
    assert position_expiry._days_remaining(now + timedelta(days=2), now) == 2


class FlakyNotifier(NotificationDispatcher):
    def __init__(self, db, broken_title):
        super().__init__(db, mail_enabled=False)
        self.broken_title = broken_title

    def position_expired(self, position: Position):
        if position.title == self.broken_title:
            raise RuntimeError("notification channel down")
        super().position_expired(position)


def test_one_failure_does_not_stop_the_sweep(db, hr_user, make_position):
    company = hr_user.primary_company()
    broken = make_position(company, hr_user, title="Broken", expires_in=timedelta(days=-1))
    healthy = make_position(company, hr_user, title="Healthy", expires_in=timedelta(days=-1))

    result = expire_positions(db, FlakyNotifier(db, "Broken"))

    db.refresh(broken)
    db.refresh(healthy)
    assert result.expired == 2
    assert result.failed == 1
    assert broken.status == PositionStatus.EXPIRED
    assert healthy.status == PositionStatus.EXPIRED
    assert len(notifications_of(db, hr_user, "position_expired")) == 1


def test_anonymized_owner_gets_no_notification(db, notifier, hr_user, make_position):
    from devjobs.models.user import AccountState

    make_position(hr_user.primary_company(), hr_user, expires_in=timedelta(days=-1))
    hr_user.account_state = AccountState.ANONYMIZED
    db.commit()

    result = expire_positions(db, notifier)

    assert result.expired == 1
    assert notifications_of(db, hr_user, "position_expired") == []


def test_main_exit_code_reflects_failures(monkeypatch):
    monkeypatch.setattr(position_expiry, "configure_logging", lambda: None)

    monkeypatch.setattr(position_expiry, "expire_positions", lambda: SweepResult(expired=3))
    assert position_expiry.main() == 0

    monkeypatch.setattr(position_expiry, "expire_positions", lambda: SweepResult(expired=2, failed=1))
    assert position_expiry.main() == 1

    def boom():
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(position_expiry, "expire_positions", boom)
    assert position_expiry.main() == 1
