import logging
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import DuplicateName, Forbidden, InvalidRequest, InvariantViolation, NotFound
from ..models.auth import Account, FamilyAccess
from ..models.family import Family
from ..models.member import Member, MemberRole
from ..models.points import Transaction, TransactionType
from ..models.reward import Reward
from ..models.task import Task
from .catalog_defaults import AVATAR_PALETTE, DEFAULT_REWARDS, DEFAULT_TASKS

logger = logging.getLogger(__name__)

INITIAL_BALANCE_TITLE = "初始元气"


def ensure_current_member_id(members: list[Member], preferred_id: str | None) -> str:
    """The preferred member if still present, else the first admin, else the first member."""
    if not members:
        return ""
    if preferred_id and any(m.id == preferred_id for m in members):
        return preferred_id
    admin = next((m for m in members if m.role == MemberRole.ADMIN), None)
    return admin.id if admin else members[0].id


def get_family(db: Session, family_id: str) -> Family:
    fam = db.get(Family, family_id)
    if not fam:
        raise NotFound(f"Family {family_id} not found")
    return fam


def load_family(db: Session, family_id: str) -> Family:
    fam = get_family(db, family_id)
    resolved = ensure_current_member_id(fam.members, fam.current_member_id) or None
    if resolved != fam.current_member_id:
        fam.current_member_id = resolved
        db.commit()
        db.refresh(fam)
    return fam


def has_access(db: Session, *, account_id: str, family_id: str) -> bool:
    return db.execute(
        select(FamilyAccess.id).where(FamilyAccess.account_id == account_id, FamilyAccess.family_id == family_id)
    ).first() is not None


def open_family(db: Session, *, family_id: str, account: Account, name: str | None = None) -> Family:
    """
    Resolve a sync identifier for a signed-in account: create the family on
    first touch, remember that this account may open it, and seed it.
    """
    family_id = family_id.strip()
    if not family_id:
        raise InvalidRequest("Family id must not be empty")
    fam = db.get(Family, family_id)
    if not fam:
        db.add(Family(id=family_id, name=(name or family_id).strip()))
        try:
            db.commit()
            logger.info(f"Family provisioned: {family_id}")
        except IntegrityError:
            # another device created it first
            db.rollback()
    if not has_access(db, account_id=account.id, family_id=family_id):
        db.add(FamilyAccess(account_id=account.id, family_id=family_id))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
    seed_if_empty(db, family_id=family_id, admin_name=_admin_name_for(account))
    return load_family(db, family_id)


def _admin_name_for(account: Account | None) -> str:
    if account is None:
        return settings.DEFAULT_ADMIN_NAME
    name = account.display_name or account.email.split("@")[0] or settings.DEFAULT_ADMIN_NAME
    return name[:20]


def seed_if_empty(db: Session, *, family_id: str, admin_name: str | None = None) -> bool:
    """
    Give a family with no members one admin and the starter catalog.
    A family that already has members is left alone. Returns whether it seeded.
    """
    get_family(db, family_id)
    count = db.execute(select(func.count(Member.id)).where(Member.family_id == family_id)).scalar_one()
    if count:
        return False

    name = (admin_name or settings.DEFAULT_ADMIN_NAME).strip()[:64]
    admin = Member(
        family_id=family_id,
        name=name,
        name_key=name.lower(),
        balance=0,
        role=MemberRole.ADMIN,
        avatar_color=AVATAR_PALETTE[0],
    )
    db.add(admin)
    for t in DEFAULT_TASKS:
        db.add(Task(family_id=family_id, **t))
    for r in DEFAULT_REWARDS:
        db.add(Reward(family_id=family_id, **r))
    try:
        db.flush()
        get_family(db, family_id).current_member_id = admin.id
        db.commit()
    except IntegrityError:
        # a concurrent seed inserted the same admin first
        db.rollback()
        logger.info(f"Family {family_id} was seeded concurrently, skipping")
        return False
    logger.info(f"Seeded family {family_id}: admin={admin.id}, {len(DEFAULT_TASKS)} tasks, {len(DEFAULT_REWARDS)} rewards")
    return True


# --- members ---------------------------------------------------------------
def get_member_in_family(db: Session, *, family_id: str, member_id: str) -> Member:
    member = db.get(Member, member_id)
    if not member or member.family_id != family_id:
        raise NotFound(f"Member {member_id} not found in this family")
    return member


def get_actor(db: Session, *, family_id: str, actor_id: str | None = None) -> Member:
    """The member on whose behalf a request runs: explicit id, else the family's active member."""
    if not actor_id:
        actor_id = get_family(db, family_id).current_member_id
    if not actor_id:
        raise NotFound("Family has no active member")
    return get_member_in_family(db, family_id=family_id, member_id=actor_id)


def require_admin(member: Member, action: str) -> None:
    if member.role != MemberRole.ADMIN:
        logger.warning(f"Member {member.id} tried to {action} without admin role")
        raise Forbidden(f"Only admins can {action}")


def _ensure_name_free(db: Session, *, family_id: str, name: str, exclude_id: str | None = None) -> str:
    name = name.strip()
    if not name:
        raise InvalidRequest("Member name must not be empty")
    stmt = select(Member.id).where(Member.family_id == family_id, Member.name_key == name.lower())
    if exclude_id:
        stmt = stmt.where(Member.id != exclude_id)
    if db.execute(stmt).first():
        raise DuplicateName(f"A member named '{name}' already exists")
    return name


def add_member(
    db: Session,
    *,
    family_id: str,
    actor_id: str | None,
    name: str,
    role: MemberRole = MemberRole.STANDARD,
    initial_balance: int = 0,
    avatar_url: str | None = None,
) -> Member:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "add members")
    name = _ensure_name_free(db, family_id=family_id, name=name)
    count = db.execute(select(func.count(Member.id)).where(Member.family_id == family_id)).scalar_one()

    member = Member(
        family_id=family_id,
        name=name,
        name_key=name.lower(),
        balance=initial_balance,
        role=role,
        avatar_color=AVATAR_PALETTE[count % len(AVATAR_PALETTE)],
        avatar_url=avatar_url,
    )
    db.add(member)
    try:
        db.flush()
        if initial_balance:
            # opening balance goes through history like any other movement
            db.add(Transaction(
                family_id=family_id,
                member_id=member.id,
                title=INITIAL_BALANCE_TITLE,
                points=initial_balance,
                type=TransactionType.ADJUSTMENT,
                created_by_member_id=actor.id,
            ))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateName(f"A member named '{name}' already exists") from e
    db.refresh(member)
    logger.info(f"Member added: family={family_id} id={member.id} role={role} balance={initial_balance}")
    return member


def rename_member(db: Session, *, family_id: str, actor_id: str | None, member_id: str, name: str) -> Member:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "rename members")
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    name = _ensure_name_free(db, family_id=family_id, name=name, exclude_id=member_id)
    member.name = name
    member.name_key = name.lower()
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateName(f"A member named '{name}' already exists") from e
    db.refresh(member)
    return member


def update_member_avatar(
    db: Session, *, family_id: str, actor_id: str | None, member_id: str, avatar_url: str | None
) -> Member:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "change avatars")
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    member.avatar_url = avatar_url
    db.commit()
    db.refresh(member)
    return member


def _admin_count(db: Session, family_id: str) -> int:
    return db.execute(
        select(func.count(Member.id)).where(Member.family_id == family_id, Member.role == MemberRole.ADMIN)
    ).scalar_one()


def change_role(
    db: Session, *, family_id: str, actor_id: str | None, member_id: str, role: MemberRole
) -> Member:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "change roles")
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    if member.role == role:
        return member
    member.role = role
    db.flush()
    # counted after the write so two simultaneous demotions can't both pass
    if _admin_count(db, family_id) == 0:
        db.rollback()
        raise InvariantViolation("A family must keep at least one admin")
    db.commit()
    db.refresh(member)
    logger.info(f"Role changed: member={member_id} role={role} by={actor.id}")
    return member


def delete_member(db: Session, *, family_id: str, actor_id: str | None, member_id: str) -> Family:
    """Remove a member and, with it, every transaction in their history."""
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "delete members")
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    fam = get_family(db, family_id)

    db.delete(member)
    db.flush()
    remaining = db.execute(select(func.count(Member.id)).where(Member.family_id == family_id)).scalar_one()
    if remaining == 0:
        db.rollback()
        raise InvariantViolation("A family must keep at least one member")
    if _admin_count(db, family_id) == 0:
        db.rollback()
        raise InvariantViolation("A family must keep at least one admin")

    db.expire(fam, ["members"])
    fam.current_member_id = ensure_current_member_id(fam.members, fam.current_member_id) or None
    db.commit()
    db.refresh(fam)
    logger.info(f"Member deleted: family={family_id} id={member_id} by={actor.id}")
    return fam


def switch_current_member(db: Session, *, family_id: str, member_id: str) -> Family:
    fam = get_family(db, family_id)
    get_member_in_family(db, family_id=family_id, member_id=member_id)
    fam.current_member_id = member_id
    db.commit()
    db.refresh(fam)
    return fam
