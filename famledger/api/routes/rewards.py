from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...models.member import Member
from ...models.reward import RewardStatus, RewardType
from ...schemas.ledger import LedgerOut, ledger_out
from ...schemas.reward import RedeemIn, RewardCreate, RewardOut, RewardUpdate
from ...services.action_service import redeem_reward
from ...services.reward_service import (
    approve_wish,
    create_reward,
    delete_reward,
    list_rewards,
    reject_wish,
    submit_wish,
    update_reward,
)
from ..deps import get_acting_member, get_db, require_family_access

router = APIRouter()


@router.get("/{family_id}/rewards", response_model=List[RewardOut])
def family_rewards(
    status: Optional[RewardStatus] = None,
    type: Optional[RewardType] = None,
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    return list_rewards(db, family_id=family_id, status=status, type=type)


@router.post("/{family_id}/rewards", response_model=RewardOut)
def create_family_reward(
    payload: RewardCreate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return create_reward(db, family_id=family_id, actor_id=actor.id, payload=payload)


@router.patch("/{family_id}/rewards/{reward_id}", response_model=RewardOut)
def edit_reward(
    reward_id: str,
    payload: RewardUpdate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return update_reward(db, family_id=family_id, actor_id=actor.id, reward_id=reward_id, payload=payload)


@router.delete("/{family_id}/rewards/{reward_id}", status_code=204)
def remove_reward(
    reward_id: str,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    delete_reward(db, family_id=family_id, actor_id=actor.id, reward_id=reward_id)


@router.post("/{family_id}/wishes", response_model=RewardOut)
def make_wish(
    payload: RewardCreate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return submit_wish(db, family_id=family_id, actor_id=actor.id, payload=payload)


@router.post("/{family_id}/rewards/{reward_id}/approve", response_model=RewardOut)
def approve(
    reward_id: str,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return approve_wish(db, family_id=family_id, actor_id=actor.id, reward_id=reward_id)


@router.post("/{family_id}/rewards/{reward_id}/reject", response_model=RewardOut)
def reject(
    reward_id: str,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return reject_wish(db, family_id=family_id, actor_id=actor.id, reward_id=reward_id)


@router.post("/{family_id}/rewards/{reward_id}/redeem", response_model=LedgerOut)
def redeem(
    reward_id: str,
    payload: RedeemIn | None = None,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    result = redeem_reward(
        db, family_id=family_id, reward_id=reward_id, actor_id=actor.id,
        member_id=payload.member_id if payload else None,
    )
    return ledger_out(result)
