import uuid
import enum
from typing import Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, ForeignKey, DateTime, Numeric, Uuid, func, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base, enum_values
from devjobs.models.position import ListingType


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentType(str, enum.Enum):
    INITIAL = "initial"
    UPGRADE = "upgrade"


class PaymentProvider(str, enum.Enum):
    LEMON_SQUEEZY = "lemon_squeezy"
    PADDLE = "paddle"
    CREEM = "creem"


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    position_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    tier: Mapped[ListingType] = mapped_column(
        SQLEnum(ListingType, name="listing_type_enum", values_callable=enum_values),
        nullable=False
    )
    type: Mapped[PaymentType] = mapped_column(
        SQLEnum(PaymentType, name="payment_type_enum", values_callable=enum_values),
        default=PaymentType.INITIAL,
        nullable=False
    )
    provider: Mapped[PaymentProvider] = mapped_column(
        SQLEnum(PaymentProvider, name="payment_provider_enum", values_callable=enum_values),
        nullable=False
    )
    provider_payment_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    checkout_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status_enum", values_callable=enum_values),
        default=PaymentStatus.PENDING,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    position = relationship("Position", back_populates="payments")
    user = relationship("User")

    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED
