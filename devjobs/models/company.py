import uuid
import enum
from typing import Optional, Dict
from datetime import datetime

from sqlalchemy import String, Text, ForeignKey, DateTime, Uuid, JSON, UniqueConstraint, func, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base, enum_values


class CompanyMemberRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )

    slug: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    website: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True
    )

    logo_path: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True
    )

    logo_url: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True
    )

    # {"twitter": ..., "linkedin": ..., "github": ...}
    social_links: Mapped[Dict[str, str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        default=dict,
        nullable=False
    )

    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    members = relationship(
        "CompanyMember",
        back_populates="company",
        cascade="all, delete-orphan"
    )

    positions = relationship(
        "Position",
        back_populates="company",
        cascade="all, delete-orphan"
    )

    def is_complete(self) -> bool:
        return bool(self.name) and bool(self.description)


class CompanyMember(Base):
    __tablename__ = "company_members"

    __table_args__ = (
        UniqueConstraint("company_id", "user_id", name="uq_company_members_company_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role: Mapped[CompanyMemberRole] = mapped_column(
        SQLEnum(CompanyMemberRole, name="company_member_role_enum", values_callable=enum_values),
        default=CompanyMemberRole.MEMBER,
        nullable=False
    )

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="members")
    user = relationship("User", back_populates="company_memberships")
