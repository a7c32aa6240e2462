import uuid
import enum
from typing import Optional
from datetime import datetime

from sqlalchemy import (
    String, Boolean, ForeignKey, DateTime, Integer, Text, Index, Table, Column, Uuid,
    func, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base, enum_values
from devjobs.utils.dates import utcnow, as_utc


class PositionStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class ListingType(str, enum.Enum):
    REGULAR = "regular"
    FEATURED = "featured"
    TOP = "top"

    @property
    def is_featured(self) -> bool:
        return self == ListingType.FEATURED

    @property
    def is_top(self) -> bool:
        return self == ListingType.TOP

    @property
    def is_special(self) -> bool:
        return self in (ListingType.FEATURED, ListingType.TOP)

    @property
    def label(self) -> str:
        return {
            ListingType.REGULAR: "Regular",
            ListingType.FEATURED: "Featured",
            ListingType.TOP: "Top",
        }[self]


class Seniority(str, enum.Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"
    PRINCIPAL = "principal"


class RemoteType(str, enum.Enum):
    GLOBAL = "global"
    TIMEZONE = "timezone"
    COUNTRY = "country"


position_technologies = Table(
    "position_technologies",
    Base.metadata,
    Column("position_id", Uuid, ForeignKey("positions.id", ondelete="CASCADE"), primary_key=True),
    Column("technology_id", Uuid, ForeignKey("technologies.id", ondelete="CASCADE"), primary_key=True),
)


class Position(Base):
    __tablename__ = "positions"

    __table_args__ = (
        Index("idx_position_status", "status"),
        Index("idx_position_status_expires_at", "status", "expires_at"),
        Index("idx_position_listing_type", "listing_type"),
        Index("idx_position_published_at", "published_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    short_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    long_description: Mapped[str] = mapped_column(Text, nullable=False)

    seniority: Mapped[Optional[Seniority]] = mapped_column(
        SQLEnum(Seniority, name="seniority_enum", values_callable=enum_values),
        nullable=True
    )

    # Salary
    salary_min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    salary_max: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Remote
    remote_type: Mapped[RemoteType] = mapped_column(
        SQLEnum(RemoteType, name="remote_type_enum", values_callable=enum_values),
        default=RemoteType.GLOBAL,
        nullable=False
    )
    location_restriction: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Lifecycle
    status: Mapped[PositionStatus] = mapped_column(
        SQLEnum(PositionStatus, name="position_status_enum", values_callable=enum_values),
        default=PositionStatus.DRAFT,
        nullable=False
    )
    listing_type: Mapped[ListingType] = mapped_column(
        SQLEnum(ListingType, name="listing_type_enum", values_callable=enum_values),
        default=ListingType.REGULAR,
        nullable=False
    )

    # Applications
    is_external: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    external_apply_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    allow_platform_applications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="positions")
    creator = relationship("User", back_populates="created_positions")

    technologies = relationship(
        "Technology",
        secondary=position_technologies,
        back_populates="positions",
        order_by="Technology.name"
    )

    custom_questions = relationship(
        "CustomQuestion",
        back_populates="position",
        cascade="all, delete-orphan",
        order_by="CustomQuestion.order"
    )

    applications = relationship(
        "Application",
        back_populates="position",
        cascade="all, delete-orphan"
    )

    payments = relationship(
        "Payment",
        back_populates="position",
        cascade="all, delete-orphan"
    )

    views = relationship(
        "PositionView",
        back_populates="position",
        cascade="all, delete-orphan"
    )

    # ----------------- Lifecycle helpers -----------------
    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expires_at = as_utc(self.expires_at)
        return expires_at is not None and expires_at <= (now or utcnow())

    def is_published(self) -> bool:
        return self.status == PositionStatus.PUBLISHED and self.published_at is not None

    def is_featured(self) -> bool:
        return self.listing_type.is_featured

    def is_top(self) -> bool:
        return self.listing_type.is_top

    def is_paid(self) -> bool:
        return self.paid_at is not None

    def can_receive_applications(self) -> bool:
        return (
            self.is_published()
            and self.status != PositionStatus.EXPIRED
            and not self.is_expired()
            and self.allow_platform_applications
            and not self.is_external
        )
