from pydantic import BaseModel
from typing import Optional, Dict
from uuid import UUID
from decimal import Decimal
from datetime import datetime
from devjobs.models.position import ListingType
from devjobs.models.payment import PaymentStatus, PaymentType, PaymentProvider


class CheckoutRequest(BaseModel):
    tier: ListingType


class CheckoutResponse(BaseModel):
    payment_id: UUID
    checkout_url: str
    amount: float
    tier: ListingType


class PaymentResponse(BaseModel):
    id: UUID
    position_id: UUID
    user_id: Optional[UUID]
    amount: Decimal
    currency: str
    tier: ListingType
    type: PaymentType
    provider: PaymentProvider
    provider_payment_id: Optional[str]
    status: PaymentStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PaymentPageResponse(BaseModel):
    position_id: UUID
    title: str
    pricing: Dict[str, float]
