import uuid
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base
from devjobs.models.position import position_technologies


class Technology(Base):
    __tablename__ = "technologies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    positions = relationship(
        "Position",
        secondary=position_technologies,
        back_populates="technologies"
    )
