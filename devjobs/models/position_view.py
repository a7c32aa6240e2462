import uuid
from typing import Optional
from datetime import datetime

from sqlalchemy import String, ForeignKey, DateTime, Uuid, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base


class PositionView(Base):
    """Anonymised page view; the client IP is only ever stored hashed"""
    __tablename__ = "position_views"

    __table_args__ = (
        Index("idx_position_view_lookup", "position_id", "ip_address_hash", "viewed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    position_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False
    )

    ip_address_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    country_code: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    viewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    position = relationship("Position", back_populates="views")
