from enum import StrEnum
from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4

from .family import Family
from ..db.base_class import Base
from . import utcnow


class TaskCategory(StrEnum):
    LEARNING = "learning"
    CHORES = "chores"
    DISCIPLINE = "discipline"
    PENALTY = "penalty"
    REWARD = "reward"


class Task(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(64), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    category: Mapped[TaskCategory] = mapped_column(default=TaskCategory.CHORES, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    # informational label only (每日/每周/每次); never throttles completions
    frequency: Mapped[str | None] = mapped_column(String(32))
    image_url: Mapped[str | None] = mapped_column(String(512))
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    family: Mapped["Family"] = relationship(back_populates="tasks")

    @property
    def is_penalty(self) -> bool:
        return self.category == TaskCategory.PENALTY
