import logging
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import InvalidRequest, NotFound
from ..models import utcnow
from ..models.member import MemberRole
from ..models.reward import Reward, RewardStatus, RewardType
from ..schemas.reward import RewardCreate, RewardUpdate
from .family_service import get_actor, get_family, require_admin

logger = logging.getLogger(__name__)


def get_reward(db: Session, *, family_id: str, reward_id: str) -> Reward:
    reward = db.get(Reward, reward_id)
    if not reward or reward.family_id != family_id:
        raise NotFound(f"Reward {reward_id} not found")
    return reward


def list_rewards(
    db: Session,
    *,
    family_id: str,
    status: RewardStatus | None = None,
    type: RewardType | None = None,
) -> list[Reward]:
    get_family(db, family_id)
    stmt = select(Reward).where(Reward.family_id == family_id)
    if status is not None:
        stmt = stmt.where(Reward.status == status)
    if type is not None:
        stmt = stmt.where(Reward.type == type)
    return list(db.execute(stmt.order_by(Reward.points, Reward.created_at)).scalars())


def create_reward(db: Session, *, family_id: str, actor_id: str | None, payload: RewardCreate) -> Reward:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "create rewards")
    r = Reward(family_id=family_id, status=RewardStatus.ACTIVE, **payload.model_dump())
    db.add(r)
    db.commit()
    db.refresh(r)
    logger.info(f"Reward created: family={family_id} id={r.id} cost={r.points}")
    return r


def update_reward(
    db: Session, *, family_id: str, actor_id: str | None, reward_id: str, payload: RewardUpdate
) -> Reward:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "edit rewards")
    reward = get_reward(db, family_id=family_id, reward_id=reward_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None and key in ("title", "points", "type"):
            continue
        setattr(reward, key, value)
    db.commit()
    db.refresh(reward)
    return reward


def delete_reward(db: Session, *, family_id: str, actor_id: str | None, reward_id: str) -> None:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "delete rewards")
    reward = get_reward(db, family_id=family_id, reward_id=reward_id)
    db.delete(reward)
    db.commit()
    logger.info(f"Reward deleted: family={family_id} id={reward_id}")


# --- wishlist ---------------------------------------------------------------
def submit_wish(db: Session, *, family_id: str, actor_id: str | None, payload: RewardCreate) -> Reward:
    """
    Any member may ask for a reward. A standard member's wish waits for an
    admin; an admin's own wish goes straight into the catalog.
    """
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    status = RewardStatus.ACTIVE if actor.role == MemberRole.ADMIN else RewardStatus.PENDING
    r = Reward(
        family_id=family_id,
        status=status,
        requested_by=actor.id,
        requested_at=utcnow(),
        **payload.model_dump(),
    )
    db.add(r)
    db.commit()
    db.refresh(r)
    logger.info(f"Wish submitted: family={family_id} id={r.id} by={actor.id} status={status}")
    return r


def _review_wish(db: Session, *, family_id: str, actor_id: str | None, reward_id: str, outcome: RewardStatus) -> Reward:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "review wishes")
    reward = get_reward(db, family_id=family_id, reward_id=reward_id)
    if reward.status != RewardStatus.PENDING:
        raise InvalidRequest(f"Reward '{reward.title}' is {reward.status}, not pending")
    reward.status = outcome
    db.commit()
    db.refresh(reward)
    logger.info(f"Wish {reward_id} {outcome} by {actor.id}")
    return reward


def approve_wish(db: Session, *, family_id: str, actor_id: str | None, reward_id: str) -> Reward:
    return _review_wish(db, family_id=family_id, actor_id=actor_id, reward_id=reward_id, outcome=RewardStatus.ACTIVE)


def reject_wish(db: Session, *, family_id: str, actor_id: str | None, reward_id: str) -> Reward:
    # rejected wishes stay on record
    return _review_wish(db, family_id=family_id, actor_id=actor_id, reward_id=reward_id, outcome=RewardStatus.REJECTED)
