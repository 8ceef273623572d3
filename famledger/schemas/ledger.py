from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from ..models import as_utc, utcnow
from ..models.points import TransactionType
from .common import ORMModel, Title
from .member import MemberOut


class TransactionDraft(BaseModel):
    """
    A ledger fact before it is stored. Frozen: once built, nothing about it
    changes on the way to the store.
    """
    model_config = ConfigDict(frozen=True)

    title: str
    points: int
    kind: TransactionType
    timestamp: datetime = Field(default_factory=utcnow)
    from_member_id: str | None = None
    to_member_id: str | None = None
    created_by_member_id: str | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def _points(self):
        if self.points == 0 and self.kind in (
            TransactionType.EARN, TransactionType.PENALTY, TransactionType.REDEEM,
            TransactionType.ADJUSTMENT,
        ):
            raise ValueError(f"{self.kind} transaction needs non-zero points")
        if self.kind == TransactionType.TRANSFER and not (self.from_member_id and self.to_member_id):
            raise ValueError("transfer transaction needs both endpoints")
        return self


class TransactionOut(ORMModel):
    id: str
    member_id: str
    title: str
    points: int
    type: TransactionType
    timestamp: datetime
    transfer_id: str | None = None
    from_member_id: str | None = None
    to_member_id: str | None = None
    created_by_member_id: str | None = None
    grant_key: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)


class TransferIn(BaseModel):
    from_member_id: str | None = None
    to_member_id: str
    points: int = Field(gt=0)
    message: str | None = Field(default=None, max_length=120)
class AdjustmentIn(BaseModel):
    points: int
    memo: Title
class DailyGrantIn(BaseModel):
    member_ids: list[str] | None = None


class LedgerOut(BaseModel):
    member: MemberOut
    transactions: list[TransactionOut]
class TransferOut(BaseModel):
    from_member: MemberOut
    to_member: MemberOut
    transactions: list[TransactionOut]
class DailyGrantOut(BaseModel):
    granted: list[TransactionOut]
    skipped_member_ids: list[str]
class BalanceMismatchOut(BaseModel):
    member_id: str
    balance: int
    history_total: int
class MemberSummaryOut(BaseModel):
    member_id: str
    day: date
    balance: int
    totals: dict[TransactionType, int]
    last_7_days_count: int
    gained_on_day: int


def ledger_out(result) -> LedgerOut:
    """Authoritative post-write state of the (first) member touched by a ledger write."""
    return LedgerOut(
        member=MemberOut.model_validate(result.member),
        transactions=[TransactionOut.model_validate(t) for t in result.transactions],
    )
