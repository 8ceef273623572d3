from enum import StrEnum
from sqlalchemy import String, DateTime, ForeignKey, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4

from .member import Member
from ..db.base_class import Base
from . import utcnow


class TransactionType(StrEnum):
    EARN = "earn"
    PENALTY = "penalty"
    REDEEM = "redeem"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class Transaction(Base):
    """One immutable point movement. Rows are inserted, never updated."""
    __table_args__ = (Index("ix_transaction_member_timestamp", "member_id", "timestamp"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(64), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    member_id: Mapped[str] = mapped_column(String(36), ForeignKey("member.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[TransactionType] = mapped_column()
    timestamp: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # transfer legs share transfer_id and name both endpoints
    transfer_id: Mapped[str | None] = mapped_column(String(36), index=True)
    from_member_id: Mapped[str | None] = mapped_column(String(36))
    to_member_id: Mapped[str | None] = mapped_column(String(36))
    created_by_member_id: Mapped[str | None] = mapped_column(String(36))
    # "<member>:<title>:<YYYY-MM-DD>" for daily grants; unique so two devices can't both grant
    grant_key: Mapped[str | None] = mapped_column(String(160), unique=True)

    member: Mapped["Member"] = relationship(back_populates="transactions")
