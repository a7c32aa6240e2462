import uuid
from typing import List, Optional
from datetime import datetime

from sqlalchemy import String, Text, ForeignKey, DateTime, Uuid, JSON, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base


class DeveloperProfile(Base):
    __tablename__ = "developer_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    summary: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    # Storage ids: CVs live in the private area, photos in the public one
    cv_path: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True
    )

    profile_photo_path: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True
    )

    profile_photo_url: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True
    )

    github_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    linkedin_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    portfolio_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    other_links: Mapped[List[str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        default=list,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    user = relationship("User", back_populates="developer_profile")

    def is_complete(self) -> bool:
        return bool(self.summary) and bool(self.cv_path)
