import uuid
import enum
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, DateTime, Uuid, func, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base, enum_values


class UserRole(str, enum.Enum):
    DEVELOPER = "developer"
    HR = "hr"
    ADMIN = "admin"


class AccountState(str, enum.Enum):
    ACTIVE = "active"
    ANONYMIZED = "anonymized"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    # None for accounts created through a social login
    hashed_password: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # None until the user picks an account type
    role: Mapped[Optional[UserRole]] = mapped_column(
        SQLEnum(UserRole, name="user_role_enum", values_callable=enum_values),
        nullable=True
    )

    email_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    remember_token: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    account_state: Mapped[AccountState] = mapped_column(
        SQLEnum(AccountState, name="account_state_enum", values_callable=enum_values),
        default=AccountState.ACTIVE,
        nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    developer_profile = relationship(
        "DeveloperProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )
    social_accounts: Mapped[List["SocialAccount"]] = relationship(
        "SocialAccount",
        back_populates="user",
        cascade="all, delete-orphan"
    )
    company_memberships = relationship(
        "CompanyMember",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="CompanyMember.joined_at"
    )
    created_positions = relationship("Position", back_populates="creator")
    applications = relationship(
        "Application",
        back_populates="user",
        foreign_keys="Application.user_id"
    )

    # ----------------- Role helpers -----------------
    @property
    def is_developer(self) -> bool:
        return self.role == UserRole.DEVELOPER

    @property
    def is_hr(self) -> bool:
        return self.role == UserRole.HR

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_trashed(self) -> bool:
        return self.account_state == AccountState.ANONYMIZED

    @property
    def is_email_verified(self) -> bool:
        return self.email_verified_at is not None

    @property
    def is_social_user(self) -> bool:
        """Social-login accounts have no local password to confirm with"""
        return self.hashed_password is None

    # ----------------- Completeness -----------------
    def has_complete_profile(self) -> bool:
        return self.developer_profile is not None and self.developer_profile.is_complete()

    def primary_company(self):
        if not self.company_memberships:
            return None
        return self.company_memberships[0].company

    def has_complete_company_profile(self) -> bool:
        company = self.primary_company()
        return company is not None and company.is_complete()

    def company_ids(self) -> list[uuid.UUID]:
        return [membership.company_id for membership in self.company_memberships]
