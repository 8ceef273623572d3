"""
Member ledgers: balances and the transaction history behind them.

The only way a balance changes is through the ``apply_*`` functions here.
Each one writes the balance with a conditional UPDATE (``WHERE version =
<version read>``) and inserts the transaction row in the same database
transaction, so ``balance == sum(history.points)`` holds after every commit
even when several devices write to the same member at once. A lost race
shows up as zero rows updated; the attempt is rolled back and retried with
exponential backoff, and ``Conflict`` is raised once the retries run out.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, NamedTuple, TypeVar
from uuid import uuid4
from zoneinfo import ZoneInfo

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import Conflict, InsufficientBalance, NotFound, TransientIO
from ..models import as_utc
from ..models.member import Member
from ..models.points import Transaction, TransactionType
from ..schemas.ledger import TransactionDraft

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StaleBalance(Exception):
    """Another writer moved the member's version between our read and our write."""


class BalanceRead(NamedTuple):
    balance: int
    version: int


@dataclass
class LedgerResult:
    members: list[Member]
    transactions: list[Transaction] = field(default_factory=list)

    @property
    def member(self) -> Member:
        return self.members[0]


# ---------------------------------------------------------------------------
# reads
# ---------------------------------------------------------------------------
def get_member(db: Session, member_id: str, *, family_id: str | None = None) -> Member:
    member = db.get(Member, member_id)
    if not member or (family_id is not None and member.family_id != family_id):
        raise NotFound(f"Member {member_id} not found")
    return member


def get_balance(db: Session, *, member_id: str) -> int:
    balance = db.execute(select(Member.balance).where(Member.id == member_id)).scalar_one_or_none()
    if balance is None:
        raise NotFound(f"Member {member_id} not found")
    return balance


def get_history(
    db: Session, *, member_id: str, limit: int | None = None, kind: TransactionType | None = None
) -> list[Transaction]:
    get_member(db, member_id)
    stmt = select(Transaction).where(Transaction.member_id == member_id)
    if kind is not None:
        stmt = stmt.where(Transaction.type == kind)
    stmt = stmt.order_by(Transaction.timestamp.desc(), Transaction.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars())


def list_family_transactions(
    db: Session, *, family_id: str, since: datetime | None = None, limit: int | None = None
) -> list[Transaction]:
    """Newest first. ``since`` turns this into the polling feed for other clients' writes."""
    stmt = select(Transaction).where(Transaction.family_id == family_id)
    if since is not None:
        stmt = stmt.where(Transaction.timestamp > as_utc(since))
    stmt = stmt.order_by(Transaction.timestamp.desc(), Transaction.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars())


def today() -> date:
    return datetime.now(ZoneInfo(settings.CALENDAR_TIMEZONE)).date()


def calendar_day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of ``day`` in the family calendar, as UTC instants."""
    tz = ZoneInfo(settings.CALENDAR_TIMEZONE)
    start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def member_summary(db: Session, *, member_id: str, day: date | None = None) -> dict:
    """
    Totals behind a member's history and dashboard: points per kind over the
    whole history, how many transactions fall in the 7 days ending with
    ``day``, and the points gained on ``day`` (credits only).
    """
    member = get_member(db, member_id)
    day = day or today()
    start, end = calendar_day_bounds(day)

    totals = {kind: 0 for kind in TransactionType}
    for kind, total in db.execute(
        select(Transaction.type, func.sum(Transaction.points))
        .where(Transaction.member_id == member_id)
        .group_by(Transaction.type)
    ).all():
        totals[TransactionType(kind)] = int(total or 0)

    week_count = db.execute(
        select(func.count(Transaction.id)).where(
            Transaction.member_id == member_id,
            Transaction.timestamp >= end - timedelta(days=7),
            Transaction.timestamp < end,
        )
    ).scalar_one()
    gained = db.execute(
        select(func.coalesce(func.sum(Transaction.points), 0)).where(
            Transaction.member_id == member_id,
            Transaction.points > 0,
            Transaction.timestamp >= start,
            Transaction.timestamp < end,
        )
    ).scalar_one()
    return {
        "member_id": member.id,
        "day": day,
        "balance": member.balance,
        "totals": totals,
        "last_7_days_count": week_count,
        "gained_on_day": int(gained),
    }


def verify_balances(db: Session, *, family_id: str) -> list[dict]:
    """Members whose stored balance differs from the sum of their history."""
    totals = dict(
        db.execute(
            select(Transaction.member_id, func.coalesce(func.sum(Transaction.points), 0))
            .where(Transaction.family_id == family_id)
            .group_by(Transaction.member_id)
        ).all()
    )
    mismatches = []
    for member_id, balance in db.execute(
        select(Member.id, Member.balance).where(Member.family_id == family_id)
    ).all():
        total = int(totals.get(member_id, 0))
        if total != balance:
            mismatches.append({"member_id": member_id, "balance": balance, "history_total": total})
    if mismatches:
        logger.warning(f"Balance mismatch in family {family_id}: {mismatches}")
    return mismatches


# ---------------------------------------------------------------------------
# writes
# ---------------------------------------------------------------------------
def apply_transaction(
    db: Session,
    *,
    member_id: str,
    draft: TransactionDraft,
    require_funds: bool = False,
) -> LedgerResult:
    """
    Add ``draft.points`` to the member's balance and append the transaction.

    With ``require_funds`` the write is refused (``InsufficientBalance``) when
    it would take the balance below zero; the check is repeated on every
    retry against the freshly read balance.
    """
    def attempt() -> LedgerResult:
        get_member(db, member_id)
        read = _read_balance(db, member_id)
        txn = _write_leg(db, member_id, read, draft, require_funds=require_funds)
        db.commit()
        return LedgerResult(members=[_refreshed(db, member_id)], transactions=[txn])

    result = _with_retries(db, attempt, what=f"{draft.kind} on member {member_id}")
    logger.info(
        f"Ledger write: member={member_id} kind={draft.kind} points={draft.points:+d} "
        f"balance={result.member.balance}"
    )
    return result


def apply_transfer(
    db: Session,
    *,
    from_member_id: str,
    to_member_id: str,
    points: int,
    debit_title: str,
    credit_title: str,
    created_by_member_id: str | None = None,
) -> LedgerResult:
    """
    Move ``points`` between two members. Both legs commit together or not at
    all; the debit leg refuses to overdraw the sender.
    """
    def attempt() -> LedgerResult:
        get_member(db, from_member_id)
        get_member(db, to_member_id)
        transfer_id = str(uuid4())
        common = dict(
            kind=TransactionType.TRANSFER,
            from_member_id=from_member_id,
            to_member_id=to_member_id,
            created_by_member_id=created_by_member_id,
        )
        debit = TransactionDraft(title=debit_title, points=-points, **common)
        credit = TransactionDraft(title=credit_title, points=points, **common)

        debit_txn = _write_leg(
            db, from_member_id, _read_balance(db, from_member_id), debit,
            require_funds=True, transfer_id=transfer_id,
        )
        credit_txn = _write_leg(
            db, to_member_id, _read_balance(db, to_member_id), credit,
            transfer_id=transfer_id,
        )
        db.commit()
        return LedgerResult(
            members=[_refreshed(db, from_member_id), _refreshed(db, to_member_id)],
            transactions=[debit_txn, credit_txn],
        )

    result = _with_retries(db, attempt, what=f"transfer {from_member_id}->{to_member_id}")
    logger.info(f"Transfer committed: {from_member_id} -> {to_member_id} points={points}")
    return result


def apply_grant(
    db: Session,
    *,
    member_id: str,
    draft: TransactionDraft,
    grant_key: str,
) -> Transaction | None:
    """
    Insert a once-only transaction keyed by ``grant_key``. Returns ``None``
    when the key is already taken, which is how a grant made concurrently
    by another device surfaces here.
    """
    def attempt() -> Transaction | None:
        read = _read_balance(db, member_id)
        try:
            txn = _write_leg(db, member_id, read, draft, grant_key=grant_key)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(f"Grant {grant_key} already present, skipping")
            return None
        return txn

    return _with_retries(db, attempt, what=f"grant {grant_key}")


# ---------------------------------------------------------------------------
# internals
# ---------------------------------------------------------------------------
def _read_balance(db: Session, member_id: str) -> BalanceRead:
    row = db.execute(
        select(Member.balance, Member.version).where(Member.id == member_id)
    ).one_or_none()
    if row is None:
        raise NotFound(f"Member {member_id} not found")
    return BalanceRead(balance=row.balance, version=row.version)


def _write_leg(
    db: Session,
    member_id: str,
    read: BalanceRead,
    draft: TransactionDraft,
    *,
    require_funds: bool = False,
    transfer_id: str | None = None,
    grant_key: str | None = None,
) -> Transaction:
    new_balance = read.balance + draft.points
    if require_funds and new_balance < 0:
        raise InsufficientBalance(
            f"Balance {read.balance} is not enough for {-draft.points} points",
            balance=read.balance,
            required=-draft.points,
        )

    result = db.execute(
        update(Member)
        .where(Member.id == member_id, Member.version == read.version)
        .values(balance=new_balance, version=Member.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StaleBalance(member_id)

    family_id = db.execute(select(Member.family_id).where(Member.id == member_id)).scalar_one()
    txn = Transaction(
        family_id=family_id,
        member_id=member_id,
        title=draft.title,
        points=draft.points,
        type=draft.kind,
        timestamp=_next_timestamp(db, member_id, draft.timestamp),
        transfer_id=transfer_id,
        from_member_id=draft.from_member_id,
        to_member_id=draft.to_member_id,
        created_by_member_id=draft.created_by_member_id,
        grant_key=grant_key,
    )
    db.add(txn)
    db.flush()
    return txn


def _next_timestamp(db: Session, member_id: str, proposed: datetime) -> datetime:
    # keep each member's history strictly ordered even when clocks collide
    latest = as_utc(
        db.execute(
            select(func.max(Transaction.timestamp)).where(Transaction.member_id == member_id)
        ).scalar_one_or_none()
    )
    proposed = as_utc(proposed)
    if latest is not None and proposed <= latest:
        return latest + timedelta(microseconds=1)
    return proposed


def _refreshed(db: Session, member_id: str) -> Member:
    member = db.get(Member, member_id)
    db.refresh(member)
    return member


def _with_retries(db: Session, attempt: Callable[[], T], *, what: str) -> T:
    retries = max(1, settings.LEDGER_MAX_RETRIES)
    for n in range(retries):
        try:
            return attempt()
        except StaleBalance:
            db.rollback()
            logger.warning(f"Stale balance during {what} (attempt {n + 1}/{retries})")
            if n + 1 < retries:
                time.sleep(settings.LEDGER_RETRY_BACKOFF * (2 ** n))
        except OperationalError as e:
            db.rollback()
            logger.error(f"Store unavailable during {what}: {e}", exc_info=True)
            raise TransientIO("Ledger store unavailable, reload and try again") from e
        except Exception:
            db.rollback()
            raise
    raise Conflict(f"Concurrent update kept winning during {what}; please retry")
