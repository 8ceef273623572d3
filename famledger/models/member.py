from __future__ import annotations
from typing import TYPE_CHECKING
from enum import StrEnum
from sqlalchemy import String, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family import Family
    from .points import Transaction


class MemberRole(StrEnum):
    ADMIN = "admin"
    STANDARD = "standard"


class Member(Base):
    __table_args__ = (UniqueConstraint("family_id", "name_key", name="uq_member_family_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(64), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    # lower-cased name, enforces case-insensitive uniqueness per family
    name_key: Mapped[str] = mapped_column(String(64), nullable=False)
    balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # bumped on every balance write; conditional updates compare against it
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    role: Mapped[MemberRole] = mapped_column(default=MemberRole.STANDARD)
    avatar_color: Mapped[str | None] = mapped_column(String(32))
    avatar_url: Mapped[str | None] = mapped_column(String(512))
    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    family: Mapped["Family"] = relationship(back_populates="members")
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="member", cascade="all,delete-orphan", passive_deletes=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN
