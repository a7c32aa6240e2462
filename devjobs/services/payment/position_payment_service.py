"""
Tier pricing and the position side effects of completed payments.

All tiers share one listing duration. Upgrades are prorated over the days
the listing has left:

    (new tier price - current tier price) * remaining_days / duration
"""
import logging
import math
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional, Any

from sqlalchemy.orm import Session

from devjobs.config import LISTING_PRICING, LISTING_DURATION_DAYS
from devjobs.models.position import Position, PositionStatus, ListingType
from devjobs.models.payment import Payment, PaymentStatus, PaymentType, PaymentProvider
from devjobs.services.payment.base import WebhookResult
from devjobs.utils.dates import utcnow, as_utc

logger = logging.getLogger(__name__)


class PositionPaymentService:
    def __init__(self, pricing: Optional[Dict[str, float]] = None, duration_days: int = LISTING_DURATION_DAYS):
        self.pricing = pricing or LISTING_PRICING
        self.duration_days = duration_days

    # ----------------- Pricing -----------------
    def price_for_tier(self, tier: ListingType) -> float:
        return float(self.pricing[tier.value])

    def remaining_days(self, position: Position, now: Optional[datetime] = None) -> Optional[int]:
        expires_at = as_utc(position.expires_at)
        if expires_at is None:
            return None
        seconds = (expires_at - (now or utcnow())).total_seconds()
        return max(0, math.floor(seconds / 86400))

    def can_upgrade_to(self, position: Position, new_tier: ListingType) -> bool:
        current = position.listing_type
        if new_tier == ListingType.REGULAR:
            return False
        if current == new_tier:
            return False
        if current == ListingType.REGULAR:
            return True
        return current == ListingType.FEATURED and new_tier == ListingType.TOP

    def calculate_upgrade_price(self, position: Position, new_tier: ListingType, now: Optional[datetime] = None) -> float:
        current_price = self.price_for_tier(position.listing_type)
        new_price = self.price_for_tier(new_tier)

        if new_price <= current_price:
            return 0.0

        difference = new_price - current_price
        remaining = self.remaining_days(position, now)
        if not remaining:
            # no expiry, or already expired: full difference
            return round(difference, 2)

        return round(difference * remaining / self.duration_days, 2)

    def upgrade_options(self, position: Position) -> Dict[str, Dict[str, Any]]:
        if position.status != PositionStatus.PUBLISHED or not position.is_paid():
            return {}

        options = {}
        remaining = self.remaining_days(position)
        for tier in (ListingType.FEATURED, ListingType.TOP):
            if self.can_upgrade_to(position, tier):
                options[tier.value] = {
                    "tier": tier.value,
                    "label": tier.label,
                    "price": self.calculate_upgrade_price(position, tier),
                    "remaining_days": remaining,
                }
        return options

    # ----------------- Records -----------------
    def create_payment_record(
        self,
        db: Session,
        position: Position,
        user_id: Optional[uuid.UUID],
        amount: float,
        tier: ListingType,
        type_: PaymentType,
        provider: PaymentProvider,
        provider_payment_id: Optional[str] = None,
        status: PaymentStatus = PaymentStatus.PENDING
    ) -> Payment:
        payment = Payment(
            position_id=position.id,
            user_id=user_id,
            amount=Decimal(str(amount)),
            tier=tier,
            type=type_,
            provider=provider,
            provider_payment_id=provider_payment_id,
            status=status
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    # ----------------- Completion -----------------
    def process_initial_payment(self, position: Position, payment: Payment, now: Optional[datetime] = None):
        now = now or utcnow()
        position.status = PositionStatus.PUBLISHED
        position.listing_type = payment.tier
        position.published_at = now
        position.expires_at = now + timedelta(days=self.duration_days)
        position.paid_at = now
        position.payment_id = payment.provider_payment_id

    def process_upgrade_payment(self, position: Position, payment: Payment, now: Optional[datetime] = None):
        now = now or utcnow()
        remaining = self.remaining_days(position, now)
        if remaining is None:
            remaining = self.duration_days
        position.listing_type = payment.tier
        position.expires_at = now + timedelta(days=remaining)
        position.paid_at = now
        position.payment_id = payment.provider_payment_id

    def complete_payment(self, db: Session, payment: Payment, provider_payment_id: Optional[str], notifier=None) -> Payment:
        """Mark the payment completed and apply it to its position in one commit"""
        position = payment.position
        previous_tier = position.listing_type.value

        payment.status = PaymentStatus.COMPLETED
        if provider_payment_id:
            payment.provider_payment_id = provider_payment_id

        if payment.type == PaymentType.INITIAL:
            self.process_initial_payment(position, payment)
        else:
            self.process_upgrade_payment(position, payment)

        db.commit()
        db.refresh(position)
        logger.info("Payment %s completed; position %s is %s/%s",
                    payment.id, position.id, position.status.value, position.listing_type.value)

        if notifier is not None:
            if payment.type == PaymentType.INITIAL:
                notifier.position_published(position)
            else:
                notifier.position_upgraded(position, previous_tier, position.listing_type.value)
        return payment

    def apply_webhook_result(self, db: Session, result: WebhookResult, notifier=None) -> Optional[Payment]:
        """Match a verified provider event to a payment record and apply it"""
        if result.status == "refunded":
            payment = db.query(Payment).filter(Payment.provider_payment_id == result.payment_id).first()
            if payment:
                payment.status = PaymentStatus.REFUNDED
                db.commit()
                logger.info("Payment %s refunded", payment.id)
            return payment

        if result.status != "completed" or not result.payment_id:
            return None

        raw_position_id = result.data.get("position_id")
        try:
            position_id = uuid.UUID(str(raw_position_id))
        except ValueError:
            logger.error("Webhook carried invalid position_id %r", raw_position_id)
            return None

        position = db.query(Position).filter(Position.id == position_id).first()
        if not position:
            logger.error("Position %s not found for webhook", position_id)
            return None

        payment = db.query(Payment).filter(
            Payment.position_id == position_id,
            Payment.provider_payment_id == result.payment_id
        ).first()
        if payment and payment.is_completed():
            logger.info("Payment %s already completed; ignoring duplicate webhook", payment.id)
            return payment

        if not payment:
            payment = db.query(Payment).filter(
                Payment.position_id == position_id,
                Payment.status == PaymentStatus.PENDING
            ).order_by(Payment.created_at.desc()).first()

        if not payment:
            logger.error("Payment record not found for position %s order %s", position_id, result.payment_id)
            return None

        return self.complete_payment(db, payment, result.payment_id, notifier)
