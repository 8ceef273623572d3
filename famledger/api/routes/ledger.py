from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.config import settings
from ...models.member import Member
from ...models.points import TransactionType
from ...schemas.ledger import (
    AdjustmentIn,
    DailyGrantIn,
    DailyGrantOut,
    LedgerOut,
    MemberSummaryOut,
    TransactionOut,
    TransferIn,
    TransferOut,
    ledger_out,
)
from ...schemas.member import MemberOut
from ...services import ledger_service
from ...services.action_service import adjust_balance, grant_daily_bonus, transfer_points
from ...services.family_service import get_member_in_family
from ..deps import get_acting_member, get_db, require_family_access

router = APIRouter()


@router.get("/{family_id}/members/{member_id}/ledger", response_model=LedgerOut)
def member_ledger(
    member_id: str,
    limit: int = Query(default=settings.HISTORY_LIMIT, ge=1, le=500),
    kind: Optional[TransactionType] = None,
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    history = ledger_service.get_history(db, member_id=member.id, limit=limit, kind=kind)
    return LedgerOut(
        member=MemberOut.model_validate(member),
        transactions=[TransactionOut.model_validate(t) for t in history],
    )


@router.get("/{family_id}/members/{member_id}/summary", response_model=MemberSummaryOut)
def member_summary(
    member_id: str,
    day: Optional[date] = None,
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    """Per-kind totals, the last 7 days' activity and points gained on ``day`` (default today)."""
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    return ledger_service.member_summary(db, member_id=member.id, day=day)


@router.get("/{family_id}/transactions", response_model=List[TransactionOut])
def family_transactions(
    since: Optional[datetime] = None,
    limit: int = Query(default=settings.HISTORY_LIMIT, ge=1, le=500),
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    """Newest first; pass ``since`` to poll for writes made on other devices."""
    return ledger_service.list_family_transactions(db, family_id=family_id, since=since, limit=limit)


@router.post("/{family_id}/transfers", response_model=TransferOut)
def transfer(
    payload: TransferIn,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    result = transfer_points(
        db,
        family_id=family_id,
        actor_id=actor.id,
        from_member_id=payload.from_member_id,
        to_member_id=payload.to_member_id,
        points=payload.points,
        message=payload.message,
    )
    sender, receiver = result.members
    return TransferOut(
        from_member=MemberOut.model_validate(sender),
        to_member=MemberOut.model_validate(receiver),
        transactions=[TransactionOut.model_validate(t) for t in result.transactions],
    )


@router.post("/{family_id}/members/{member_id}/adjustments", response_model=LedgerOut)
def adjust(
    member_id: str,
    payload: AdjustmentIn,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    result = adjust_balance(
        db, family_id=family_id, actor_id=actor.id, member_id=member_id,
        points=payload.points, memo=payload.memo,
    )
    return ledger_out(result)


@router.post("/{family_id}/daily-grant", response_model=DailyGrantOut)
def daily_grant(
    payload: DailyGrantIn | None = None,
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    granted, skipped = grant_daily_bonus(
        db, family_id=family_id, member_ids=payload.member_ids if payload else None
    )
    return DailyGrantOut(
        granted=[TransactionOut.model_validate(t) for t in granted],
        skipped_member_ids=skipped,
    )
