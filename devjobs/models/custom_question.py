import uuid

from sqlalchemy import String, Boolean, ForeignKey, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devjobs.database import Base


class CustomQuestion(Base):
    __tablename__ = "custom_questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    position_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    question_text: Mapped[str] = mapped_column(String(1000), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    position = relationship("Position", back_populates="custom_questions")
