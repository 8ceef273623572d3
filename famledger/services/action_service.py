"""
Turns what a member asked for (finish a task, take a penalty, redeem a
reward, give points away, an admin correction, the daily bonus) into a
validated ledger write.

Validation happens before anything is written: a refused action leaves
balances and history exactly as they were. The write itself goes through
``ledger_service``, which owns atomicity and conflict retries.
"""
import logging
from datetime import date

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import Forbidden, InsufficientBalance, InvalidRequest, NotFound
from ..models import utcnow
from ..models.member import Member, MemberRole
from ..models.points import Transaction, TransactionType
from ..schemas.ledger import TransactionDraft
from . import ledger_service
from .ledger_service import calendar_day_bounds, today
from .family_service import get_actor, get_family, get_member_in_family, require_admin
from .reward_service import get_reward
from .task_service import get_task

logger = logging.getLogger(__name__)


def _ensure_can_act_on(actor: Member, target: Member) -> None:
    # standard members only touch their own ledger
    if actor.id != target.id and actor.role != MemberRole.ADMIN:
        logger.warning(f"Member {actor.id} tried to act on {target.id}")
        raise Forbidden("Only admins can act on another member's points")


def _draft(**fields) -> TransactionDraft:
    try:
        return TransactionDraft(**fields)
    except ValidationError as e:
        raise InvalidRequest(f"Invalid transaction: {e.errors()[0]['msg']}") from e


def _participants(db: Session, family_id: str, actor_id: str | None, member_id: str | None) -> tuple[Member, Member]:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    target = get_member_in_family(db, family_id=family_id, member_id=member_id) if member_id else actor
    _ensure_can_act_on(actor, target)
    return actor, target


def complete_task(
    db: Session, *, family_id: str, task_id: str, actor_id: str | None = None, member_id: str | None = None
) -> ledger_service.LedgerResult:
    """Credit (or debit) a task's points. Tasks carry no rate limit: every completion counts."""
    actor, target = _participants(db, family_id, actor_id, member_id)
    task = get_task(db, family_id=family_id, task_id=task_id)
    if task.is_penalty:
        raise InvalidRequest(f"'{task.title}' is a penalty; record it as one")
    draft = _draft(
        title=task.title, points=task.points, kind=TransactionType.EARN, created_by_member_id=actor.id
    )
    return ledger_service.apply_transaction(db, member_id=target.id, draft=draft)


def apply_penalty(
    db: Session, *, family_id: str, task_id: str, actor_id: str | None = None, member_id: str | None = None
) -> ledger_service.LedgerResult:
    actor, target = _participants(db, family_id, actor_id, member_id)
    task = get_task(db, family_id=family_id, task_id=task_id)
    if not task.is_penalty:
        raise InvalidRequest(f"'{task.title}' is not a penalty")
    draft = _draft(
        title=task.title, points=task.points, kind=TransactionType.PENALTY, created_by_member_id=actor.id
    )
    return ledger_service.apply_transaction(db, member_id=target.id, draft=draft)


def redeem_reward(
    db: Session, *, family_id: str, reward_id: str, actor_id: str | None = None, member_id: str | None = None
) -> ledger_service.LedgerResult:
    actor, target = _participants(db, family_id, actor_id, member_id)
    reward = get_reward(db, family_id=family_id, reward_id=reward_id)
    if not reward.is_redeemable:
        raise InvalidRequest(f"'{reward.title}' is {reward.status} and cannot be redeemed")
    if target.balance < reward.points:
        logger.warning(f"Redeem refused: member={target.id} balance={target.balance} cost={reward.points}")
        raise InsufficientBalance(
            f"Balance {target.balance} is not enough for '{reward.title}' ({reward.points})",
            balance=target.balance,
            required=reward.points,
        )
    draft = _draft(
        title=reward.title, points=-reward.points, kind=TransactionType.REDEEM, created_by_member_id=actor.id
    )
    # the store re-checks funds against the balance it actually writes over
    return ledger_service.apply_transaction(db, member_id=target.id, draft=draft, require_funds=True)


def transfer_points(
    db: Session,
    *,
    family_id: str,
    to_member_id: str,
    points: int,
    actor_id: str | None = None,
    from_member_id: str | None = None,
    message: str | None = None,
) -> ledger_service.LedgerResult:
    actor, sender = _participants(db, family_id, actor_id, from_member_id)
    receiver = get_member_in_family(db, family_id=family_id, member_id=to_member_id)
    if sender.id == receiver.id:
        raise InvalidRequest("Cannot transfer points to yourself")
    if points <= 0:
        raise InvalidRequest("Transfer amount must be positive")
    if sender.balance < points:
        raise InsufficientBalance(
            f"Balance {sender.balance} is not enough to give {points}",
            balance=sender.balance,
            required=points,
        )
    suffix = f": {message.strip()}" if message and message.strip() else ""
    return ledger_service.apply_transfer(
        db,
        from_member_id=sender.id,
        to_member_id=receiver.id,
        points=points,
        debit_title=f"转赠给 {receiver.name}{suffix}",
        credit_title=f"来自 {sender.name} 的转赠{suffix}",
        created_by_member_id=actor.id,
    )


def adjust_balance(
    db: Session, *, family_id: str, member_id: str, points: int, memo: str, actor_id: str | None = None
) -> ledger_service.LedgerResult:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "adjust balances")
    target = get_member_in_family(db, family_id=family_id, member_id=member_id)
    if points == 0:
        raise InvalidRequest("Adjustment must change the balance")
    draft = _draft(
        title=memo, points=points, kind=TransactionType.ADJUSTMENT, created_by_member_id=actor.id
    )
    return ledger_service.apply_transaction(db, member_id=target.id, draft=draft)


def grant_key(member_id: str, title: str, day: date) -> str:
    return f"{member_id}:{title}:{day.isoformat()}"


def grant_daily_bonus(
    db: Session,
    *,
    family_id: str,
    member_ids: list[str] | None = None,
    title: str | None = None,
    points: int | None = None,
    day: date | None = None,
) -> tuple[list[Transaction], list[str]]:
    """
    Give each eligible member the daily bonus at most once per calendar day.

    Safe to call from every device on every load: a member who already has
    a transaction with this title inside the day is skipped, and two callers
    racing for the same member collide on the transaction's unique grant
    key, so only one of them writes. A grant for a past or future ``day`` is
    stamped at the start of that day.
    Returns (new grant transactions, skipped member ids).
    """
    get_family(db, family_id)
    title = title or settings.DAILY_GRANT_TITLE
    points = points if points is not None else settings.DAILY_GRANT_POINTS
    day = day or today()
    start, end = calendar_day_bounds(day)
    now = utcnow()
    stamp = now if start <= now < end else start

    stmt = select(Member).where(Member.family_id == family_id).order_by(Member.created_at)
    members = list(db.execute(stmt).scalars())
    if member_ids is not None:
        known = {m.id for m in members}
        missing = [mid for mid in member_ids if mid not in known]
        if missing:
            raise NotFound(f"Members not in this family: {', '.join(missing)}")
        wanted = set(member_ids)
        members = [m for m in members if m.id in wanted]

    keys = {m.id: grant_key(m.id, title, day) for m in members}
    already = set(
        db.execute(select(Transaction.grant_key).where(Transaction.grant_key.in_(list(keys.values())))).scalars()
    )
    # rows imported or written without a grant key still count for the day
    same_day = set(
        db.execute(
            select(Transaction.member_id).where(
                Transaction.member_id.in_(list(keys)),
                Transaction.title == title,
                Transaction.timestamp >= start,
                Transaction.timestamp < end,
            )
        ).scalars()
    )

    granted: list[Transaction] = []
    skipped: list[str] = []
    for m in members:
        if keys[m.id] in already or m.id in same_day:
            skipped.append(m.id)
            continue
        draft = _draft(title=title, points=points, kind=TransactionType.EARN, timestamp=stamp)
        txn = ledger_service.apply_grant(db, member_id=m.id, draft=draft, grant_key=keys[m.id])
        if txn is None:
            skipped.append(m.id)
        else:
            granted.append(txn)
    if granted:
        logger.info(f"Daily grant for family {family_id} on {day}: {len(granted)} granted, {len(skipped)} skipped")
    return granted, skipped
