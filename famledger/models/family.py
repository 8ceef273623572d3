from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .member import Member
    from .task import Task
    from .reward import Reward


class Family(Base):
    # the sync identifier chosen by whoever opened the family first
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    current_member_id: Mapped[str | None] = mapped_column(String(36))
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    members: Mapped[list["Member"]] = relationship(
        back_populates="family", cascade="all,delete-orphan", order_by="Member.created_at"
    )
    tasks: Mapped[list["Task"]] = relationship(back_populates="family", cascade="all,delete-orphan")
    rewards: Mapped[list["Reward"]] = relationship(back_populates="family", cascade="all,delete-orphan")
