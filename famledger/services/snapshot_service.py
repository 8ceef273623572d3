"""
Whole-family export and import by value.

Export reads the store; import writes a snapshot back as-is (ids,
timestamps and all), after checking that every member's balance equals the
sum of the history it arrives with.
"""
import logging
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import InvalidRequest, InvariantViolation
from ..models.family import Family
from ..models.member import Member, MemberRole
from ..models.points import Transaction
from ..models.reward import Reward
from ..models.task import Task
from ..schemas.family import FamilySnapshot, MemberSnapshot
from ..schemas.ledger import TransactionOut
from ..schemas.reward import RewardOut
from ..schemas.task import TaskOut
from .family_service import ensure_current_member_id, load_family

logger = logging.getLogger(__name__)


def export_snapshot(db: Session, family_id: str) -> FamilySnapshot:
    fam = load_family(db, family_id)
    txns = db.execute(
        select(Transaction)
        .where(Transaction.family_id == family_id)
        .order_by(Transaction.timestamp.desc(), Transaction.id.desc())
    ).scalars()
    history: dict[str, list[TransactionOut]] = {}
    for t in txns:
        history.setdefault(t.member_id, []).append(TransactionOut.model_validate(t))

    members = []
    for m in fam.members:
        snap = MemberSnapshot.model_validate(m)
        snap.history = history.get(m.id, [])
        members.append(snap)
    return FamilySnapshot(
        id=fam.id,
        name=fam.name,
        current_member_id=fam.current_member_id,
        members=members,
        tasks=[TaskOut.model_validate(t) for t in sorted(fam.tasks, key=lambda t: t.id)],
        rewards=[RewardOut.model_validate(r) for r in sorted(fam.rewards, key=lambda r: r.id)],
    )


def _check_snapshot(snapshot: FamilySnapshot) -> None:
    if not snapshot.members:
        raise InvariantViolation("A family must keep at least one member")
    if not any(m.role == MemberRole.ADMIN for m in snapshot.members):
        raise InvariantViolation("A family must keep at least one admin")
    names = [m.name.strip().lower() for m in snapshot.members]
    if len(set(names)) != len(names):
        raise InvalidRequest("Member names must be unique")
    for m in snapshot.members:
        total = sum(t.points for t in m.history)
        if total != m.balance:
            raise InvariantViolation(
                f"Member {m.id} balance {m.balance} does not match history total {total}"
            )
        if any(t.member_id != m.id for t in m.history):
            raise InvalidRequest(f"History of member {m.id} contains foreign transactions")


def import_snapshot(db: Session, snapshot: FamilySnapshot) -> Family:
    _check_snapshot(snapshot)
    if db.get(Family, snapshot.id):
        raise InvalidRequest(f"Family {snapshot.id} already exists")

    db.add(Family(
        id=snapshot.id,
        name=snapshot.name,
        current_member_id=ensure_current_member_id(snapshot.members, snapshot.current_member_id) or None,
    ))
    # members first so the rows that reference them can be inserted
    for m in snapshot.members:
        db.add(Member(
            id=m.id,
            family_id=snapshot.id,
            name=m.name,
            name_key=m.name.strip().lower(),
            balance=m.balance,
            role=m.role,
            avatar_color=m.avatar_color,
            avatar_url=m.avatar_url,
        ))
    try:
        db.flush()
        for m in snapshot.members:
            for t in m.history:
                db.add(Transaction(family_id=snapshot.id, **t.model_dump()))
        for t in snapshot.tasks:
            db.add(Task(**t.model_dump(exclude={"family_id"}), family_id=snapshot.id))
        for r in snapshot.rewards:
            db.add(Reward(**r.model_dump(exclude={"family_id"}), family_id=snapshot.id))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Import of family {snapshot.id} failed: {e}", exc_info=True)
        raise InvalidRequest(f"Snapshot for {snapshot.id} clashes with existing records") from e
    logger.info(f"Imported family {snapshot.id}: {len(snapshot.members)} members")
    return load_family(db, snapshot.id)
