import logging
import secrets
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from devjobs.config import APP_ENV, FRONTEND_URL
from devjobs.database import get_db
from devjobs.crud import position_crud
from devjobs.models.user import User
from devjobs.models.position import Position, PositionStatus
from devjobs.models.payment import Payment, PaymentStatus, PaymentType
from devjobs.schema.payment_schema import CheckoutRequest, CheckoutResponse, PaymentResponse, PaymentPageResponse
from devjobs.services.notifications import NotificationDispatcher, get_notifier
from devjobs.services.payment import (
    PaymentProviderBase,
    PaymentProviderError,
    PositionPaymentService,
    configured_provider_name,
    get_payment_provider,
    get_payment_service
)
from devjobs.utils.permissions import require_roles, can_manage_position

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hr", tags=["payments"])
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])

hr_only = require_roles("hr", "admin")


def _managed_position(db: Session, position_id: uuid.UUID, user: User) -> Position:
    position = position_crud.get_position(db, position_id)
    if not position:
        raise HTTPException(status_code=404, detail="Position not found")
    if not can_manage_position(user, position):
        raise HTTPException(status_code=403, detail="Forbidden")
    return position


def _success_url(position: Position) -> str:
    return f"{FRONTEND_URL}/hr/positions/{position.id}/payment/success"


def _start_checkout(
    db: Session,
    position: Position,
    payment: Payment,
    provider: Optional[PaymentProviderBase],
    payments: PositionPaymentService,
    notifier: NotificationDispatcher,
    user: User
) -> dict:
    """Send the payment to the provider; without one, local installs settle it on the spot"""
    if provider is not None:
        try:
            checkout = provider.create_checkout(position, payment.tier.value, float(payment.amount), str(user.id))
        except PaymentProviderError:
            logger.exception("Checkout failed for position %s", position.id)
            payment.status = PaymentStatus.FAILED
            db.commit()
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to initiate payment. Please try again.")

        payment.checkout_id = checkout.session_id
        db.commit()
        return {
            "payment_id": payment.id,
            "checkout_url": checkout.url,
            "amount": float(payment.amount),
            "tier": payment.tier,
        }

    if APP_ENV == "local":
        payments.complete_payment(db, payment, f"dev_{secrets.token_hex(8)}", notifier)
        return {
            "payment_id": payment.id,
            "checkout_url": _success_url(position),
            "amount": float(payment.amount),
            "tier": payment.tier,
        }

    payment.status = PaymentStatus.FAILED
    db.commit()
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Payment provider not configured.")


# ===================== CHECKOUT =====================

@router.get("/positions/{position_id}/payment", response_model=PaymentPageResponse)
def payment_page(
    position_id: uuid.UUID,
    db: Session = Depends(get_db),
    payments: PositionPaymentService = Depends(get_payment_service),
    current_user: User = Depends(hr_only)
):
    position = _managed_position(db, position_id, current_user)
    if position.status != PositionStatus.DRAFT:
        raise HTTPException(status_code=409, detail="Position has already been published.")
    return {"position_id": position.id, "title": position.title, "pricing": payments.pricing}


@router.post("/positions/{position_id}/checkout", response_model=CheckoutResponse)
def checkout(
    position_id: uuid.UUID,
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    payments: PositionPaymentService = Depends(get_payment_service),
    provider: Optional[PaymentProviderBase] = Depends(get_payment_provider),
    notifier: NotificationDispatcher = Depends(get_notifier),
    current_user: User = Depends(hr_only)
):
    """Pay to publish a draft position at the chosen tier"""
    position = _managed_position(db, position_id, current_user)
    if position.status != PositionStatus.DRAFT:
        raise HTTPException(status_code=409, detail="Position has already been published.")

    payment = payments.create_payment_record(
        db,
        position,
        user_id=current_user.id,
        amount=payments.price_for_tier(data.tier),
        tier=data.tier,
        type_=PaymentType.INITIAL,
        provider=configured_provider_name()
    )
    return _start_checkout(db, position, payment, provider, payments, notifier, current_user)


@router.post("/positions/{position_id}/upgrade", response_model=CheckoutResponse)
def upgrade(
    position_id: uuid.UUID,
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    payments: PositionPaymentService = Depends(get_payment_service),
    provider: Optional[PaymentProviderBase] = Depends(get_payment_provider),
    notifier: NotificationDispatcher = Depends(get_notifier),
    current_user: User = Depends(hr_only)
):
    """Upgrade a paid, published position; the price is prorated over the days left"""
    position = _managed_position(db, position_id, current_user)
    if position.status != PositionStatus.PUBLISHED or not position.is_paid():
        raise HTTPException(status_code=409, detail="Only published, paid positions can be upgraded.")
    if not payments.can_upgrade_to(position, data.tier):
        raise HTTPException(status_code=400, detail="Upgrade to this tier is not allowed.")

    payment = payments.create_payment_record(
        db,
        position,
        user_id=current_user.id,
        amount=payments.calculate_upgrade_price(position, data.tier),
        tier=data.tier,
        type_=PaymentType.UPGRADE,
        provider=configured_provider_name()
    )
    return _start_checkout(db, position, payment, provider, payments, notifier, current_user)


@router.get("/positions/{position_id}/payment/success")
def payment_success(
    position_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    """Landing page after the provider redirect; the webhook does the actual work"""
    position = _managed_position(db, position_id, current_user)
    latest = db.query(Payment).filter(Payment.position_id == position.id).order_by(Payment.created_at.desc()).first()

    if latest and latest.is_completed():
        return {"status": "completed", "message": "Payment completed successfully. Your position has been published!"}
    return {"status": "processing", "message": "Payment is being processed. You will be notified when it completes."}


@router.get("/payments")
def payment_history(
    status: Optional[PaymentStatus] = None,
    type: Optional[PaymentType] = None,
    search: Optional[str] = None,
    page: int = 1,
    db: Session = Depends(get_db),
    current_user: User = Depends(hr_only)
):
    per_page = 20
    query = db.query(Payment).join(Position, Position.id == Payment.position_id).filter(
        Payment.user_id == current_user.id
    )
    if not current_user.is_admin:
        query = query.filter(Position.company_id.in_(current_user.company_ids()))
    if status:
        query = query.filter(Payment.status == status)
    if type:
        query = query.filter(Payment.type == type)
    if search:
        query = query.filter(Position.title.ilike(f"%{search}%"))

    total = query.count()
    items = query.order_by(Payment.created_at.desc()).offset((max(page, 1) - 1) * per_page).limit(per_page).all()
    return {"items": [PaymentResponse.model_validate(p) for p in items], "total": total, "page": page}


# ===================== WEBHOOK =====================

@webhook_router.post("/payment", response_class=PlainTextResponse)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    payments: PositionPaymentService = Depends(get_payment_service),
    provider: Optional[PaymentProviderBase] = Depends(get_payment_provider),
    notifier: NotificationDispatcher = Depends(get_notifier)
):
    if provider is None:
        logger.warning("Webhook received but no payment provider configured")
        return PlainTextResponse("No provider configured", status_code=400)

    raw_body = await request.body()
    result = provider.handle_webhook(raw_body, dict(request.headers))
    if not result.success:
        logger.error("Webhook processing failed: %s", result.message)
        return PlainTextResponse("Webhook processing failed", status_code=400)

    payments.apply_webhook_result(db, result, notifier)
    return PlainTextResponse("OK")
