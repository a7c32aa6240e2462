import hashlib
import hmac
import json
from datetime import timedelta

import pytest

from devjobs.models.payment import Payment, PaymentStatus, PaymentType, PaymentProvider
from devjobs.models.position import PositionStatus, ListingType
from devjobs.routes import payment_routes
from devjobs.services.payment import (
    LemonSqueezyProvider,
    PaymentProviderBase,
    PaymentProviderError,
    PositionPaymentService,
    CheckoutSession,
    WebhookResult,
    get_payment_provider
)
from devjobs.utils.dates import utcnow, as_utc
from devjobs.main import app

WEBHOOK_SECRET = "whsec-test"


@pytest.fixture
def service():
    return PositionPaymentService()


@pytest.fixture
def draft(hr_user, make_position):
    return make_position(hr_user.primary_company(), hr_user, status=PositionStatus.DRAFT)


def use_provider(provider):
    app.dependency_overrides[get_payment_provider] = lambda: provider


def signed(payload: dict):
    body = json.dumps(payload).encode("utf-8")
    signature = hmac.new(WEBHOOK_SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return body, {"X-Signature": signature, "Content-Type": "application/json"}


def order_created(order_id, position, tier="featured"):
    return {
        "meta": {"event_name": "order_created", "custom_data": {"position_id": str(position.id), "tier": tier}},
        "data": {"id": order_id, "attributes": {"total": 9900}},
    }


# ----------------- Pricing -----------------

def test_upgrade_rules(service, hr_user, make_position):
    company = hr_user.primary_company()
    regular = make_position(company, listing_type=ListingType.REGULAR)
    featured = make_position(company, listing_type=ListingType.FEATURED)
    top = make_position(company, listing_type=ListingType.TOP)

    assert service.can_upgrade_to(regular, ListingType.FEATURED)
    assert service.can_upgrade_to(regular, ListingType.TOP)
    assert service.can_upgrade_to(featured, ListingType.TOP)
    assert not service.can_upgrade_to(featured, ListingType.FEATURED)
    assert not service.can_upgrade_to(top, ListingType.FEATURED)
    assert not service.can_upgrade_to(featured, ListingType.REGULAR)


def test_upgrade_price_is_prorated_over_remaining_days(service, hr_user, make_position):
    now = utcnow()
    position = make_position(hr_user.primary_company(), listing_type=ListingType.REGULAR,
                             expires_in=timedelta(days=15, hours=1))

    # (199 - 49) * 15 / 30
    assert service.calculate_upgrade_price(position, ListingType.TOP, now=now) == 75.0


def test_upgrade_price_without_remaining_time_is_full_difference(service, hr_user, make_position):
    company = hr_user.primary_company()
    open_ended = make_position(company, listing_type=ListingType.REGULAR)
    lapsed = make_position(company, listing_type=ListingType.FEATURED, expires_in=timedelta(days=-1))

    assert service.calculate_upgrade_price(open_ended, ListingType.FEATURED) == 50.0
    assert service.calculate_upgrade_price(lapsed, ListingType.TOP) == 100.0


def test_upgrade_options_only_for_paid_published_positions(service, hr_user, make_position):
    company = hr_user.primary_company()
    unpaid = make_position(company, expires_in=timedelta(days=10))
    paid = make_position(company, listing_type=ListingType.FEATURED, paid=True, expires_in=timedelta(days=10))

    assert service.upgrade_options(unpaid) == {}
    assert list(service.upgrade_options(paid)) == ["top"]


def test_initial_payment_publishes_for_full_duration(db, service, draft):
    payment = service.create_payment_record(
        db, draft, None, 99.0, ListingType.FEATURED, PaymentType.INITIAL, PaymentProvider.LEMON_SQUEEZY
    )

    service.complete_payment(db, payment, "order-1")

    db.refresh(draft)
    assert draft.status == PositionStatus.PUBLISHED
    assert draft.listing_type == ListingType.FEATURED
    assert draft.payment_id == "order-1"
    assert draft.is_paid()
    duration = as_utc(draft.expires_at) - as_utc(draft.published_at)
    assert duration == timedelta(days=service.duration_days)


def test_upgrade_payment_keeps_remaining_days(db, service, hr_user, make_position):
    position = make_position(hr_user.primary_company(), paid=True, expires_in=timedelta(days=12, hours=2))
    payment = service.create_payment_record(
        db, position, None, 40.0, ListingType.TOP, PaymentType.UPGRADE, PaymentProvider.LEMON_SQUEEZY
    )

    service.complete_payment(db, payment, "order-2")

    db.refresh(position)
    assert position.listing_type == ListingType.TOP
    remaining = as_utc(position.expires_at) - utcnow()
    assert timedelta(days=11, hours=23) < remaining <= timedelta(days=12)


# ----------------- Webhook application -----------------

def test_webhook_result_completes_pending_payment_once(db, service, notifier, admin, draft):
    payment = service.create_payment_record(
        db, draft, None, 99.0, ListingType.FEATURED, PaymentType.INITIAL, PaymentProvider.LEMON_SQUEEZY
    )
    result = WebhookResult(success=True, payment_id="order-7", status="completed",
                           data={"position_id": str(draft.id), "tier": "featured"})

    service.apply_webhook_result(db, result, notifier)
    first_published_at = as_utc(draft.published_at)
    service.apply_webhook_result(db, result, notifier)

    db.refresh(payment)
    db.refresh(draft)
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.provider_payment_id == "order-7"
    assert as_utc(draft.published_at) == first_published_at


def test_webhook_refund_marks_payment_refunded(db, service, draft):
    payment = service.create_payment_record(
        db, draft, None, 49.0, ListingType.REGULAR, PaymentType.INITIAL, PaymentProvider.LEMON_SQUEEZY,
        provider_payment_id="order-9", status=PaymentStatus.COMPLETED
    )

    service.apply_webhook_result(db, WebhookResult(success=True, payment_id="order-9", status="refunded"))

    db.refresh(payment)
    assert payment.status == PaymentStatus.REFUNDED


def test_webhook_result_for_unknown_position_is_ignored(db, service):
    result = WebhookResult(success=True, payment_id="order-x", status="completed",
                           data={"position_id": "not-a-uuid"})
    assert service.apply_webhook_result(db, result) is None


def test_signature_verification():
    provider = LemonSqueezyProvider({"webhook_secret": WEBHOOK_SECRET})
    body, headers = signed({"meta": {"event_name": "order_created"}})

    assert provider.verify_signature(body, headers["X-Signature"])
    assert not provider.verify_signature(body, "0" * 64)
    assert not LemonSqueezyProvider({"webhook_secret": ""}).verify_signature(body, headers["X-Signature"])


def test_webhook_endpoint_publishes_position(client, db, draft, service):
    use_provider(LemonSqueezyProvider({"webhook_secret": WEBHOOK_SECRET}))
    service.create_payment_record(
        db, draft, None, 99.0, ListingType.FEATURED, PaymentType.INITIAL, PaymentProvider.LEMON_SQUEEZY
    )
    body, headers = signed(order_created("1234", draft))

    response = client.post("/webhooks/payment", content=body, headers=headers)

    assert response.status_code == 200
    assert response.text == "OK"
    db.refresh(draft)
    assert draft.status == PositionStatus.PUBLISHED


def test_webhook_endpoint_rejects_bad_signature(client, draft):
    use_provider(LemonSqueezyProvider({"webhook_secret": WEBHOOK_SECRET}))
    body, _ = signed(order_created("1234", draft))

    response = client.post("/webhooks/payment", content=body, headers={"X-Signature": "bogus"})

    assert response.status_code == 400


def test_webhook_endpoint_without_provider(client):
    use_provider(None)
    assert client.post("/webhooks/payment", content=b"{}").status_code == 400


# ----------------- Checkout -----------------

class FakeProvider(PaymentProviderBase):
    name = "fake"

    def __init__(self, fail=False):
        self.fail = fail

    def create_checkout(self, position, tier, amount, user_id):
        if self.fail:
            raise PaymentProviderError("provider down")
        return CheckoutSession(url="https://pay.example.com/checkout/abc", session_id="abc")


def test_checkout_creates_pending_payment(client, db, hr_user, draft, auth_headers):
    use_provider(FakeProvider())

    response = client.post(f"/hr/positions/{draft.id}/checkout", json={"tier": "top"}, headers=auth_headers(hr_user))

    assert response.status_code == 200
    body = response.json()
    assert body["checkout_url"] == "https://pay.example.com/checkout/abc"
    assert body["amount"] == 199.0
    payment = db.query(Payment).filter(Payment.position_id == draft.id).one()
    assert payment.status == PaymentStatus.PENDING
    assert payment.checkout_id == "abc"


def test_checkout_provider_failure_marks_payment_failed(client, db, hr_user, draft, auth_headers):
    use_provider(FakeProvider(fail=True))

    response = client.post(f"/hr/positions/{draft.id}/checkout", json={"tier": "regular"}, headers=auth_headers(hr_user))

    assert response.status_code == 502
    assert db.query(Payment).filter(Payment.position_id == draft.id).one().status == PaymentStatus.FAILED


def test_checkout_without_provider_settles_locally(client, db, monkeypatch, hr_user, draft, auth_headers):
    use_provider(None)
    monkeypatch.setattr(payment_routes, "APP_ENV", "local")

    response = client.post(f"/hr/positions/{draft.id}/checkout", json={"tier": "featured"}, headers=auth_headers(hr_user))

    assert response.status_code == 200
    db.refresh(draft)
    assert draft.status == PositionStatus.PUBLISHED
    assert draft.listing_type == ListingType.FEATURED
    assert draft.payment_id.startswith("dev_")


def test_checkout_without_provider_outside_local(client, db, monkeypatch, hr_user, draft, auth_headers):
    use_provider(None)
    monkeypatch.setattr(payment_routes, "APP_ENV", "production")

    response = client.post(f"/hr/positions/{draft.id}/checkout", json={"tier": "featured"}, headers=auth_headers(hr_user))

    assert response.status_code == 503
    db.refresh(draft)
    assert draft.status == PositionStatus.DRAFT


def test_checkout_rejects_published_positions(client, hr_user, make_position, auth_headers):
    use_provider(FakeProvider())
    position = make_position(hr_user.primary_company(), hr_user)

    response = client.post(f"/hr/positions/{position.id}/checkout", json={"tier": "top"}, headers=auth_headers(hr_user))

    assert response.status_code == 409


def test_upgrade_requires_allowed_tier(client, hr_user, make_position, auth_headers):
    use_provider(FakeProvider())
    position = make_position(hr_user.primary_company(), hr_user, listing_type=ListingType.TOP, paid=True,
                             expires_in=timedelta(days=10))

    response = client.post(f"/hr/positions/{position.id}/upgrade", json={"tier": "featured"}, headers=auth_headers(hr_user))

    assert response.status_code == 400


def test_checkout_on_another_companys_position_is_forbidden(client, make_user, make_company, draft, auth_headers):
    from devjobs.models.user import UserRole

    other = make_user(UserRole.HR)
    make_company(owner=other, name="Other Co")

    response = client.post(f"/hr/positions/{draft.id}/checkout", json={"tier": "top"}, headers=auth_headers(other))

    assert response.status_code == 403
