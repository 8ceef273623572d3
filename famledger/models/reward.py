from enum import StrEnum
from uuid import uuid4

from sqlalchemy import String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .family import Family
from ..db.base_class import Base
from . import utcnow


class RewardType(StrEnum):
    PHYSICAL = "physical"
    PRIVILEGE = "privilege"


class RewardStatus(StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"


class Reward(Base):
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    family_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("family.id", ondelete="CASCADE"),
        index=True,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[RewardType] = mapped_column(default=RewardType.PHYSICAL)
    image_url: Mapped[str | None] = mapped_column(String(512))
    status: Mapped[RewardStatus] = mapped_column(default=RewardStatus.ACTIVE, index=True)

    # wishlist entries: the member who asked for it
    requested_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("member.id", ondelete="SET NULL")
    )
    requested_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True))

    created_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    family: Mapped["Family"] = relationship(back_populates="rewards")

    @property
    def is_redeemable(self) -> bool:
        return self.status == RewardStatus.ACTIVE
