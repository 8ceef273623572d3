from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...models.member import Member
from ...schemas.family import FamilyOut
from ...schemas.member import MemberCreate, MemberOut, MemberUpdate, RoleChange
from ...services.family_service import (
    add_member,
    change_role,
    delete_member,
    rename_member,
    update_member_avatar,
    get_member_in_family,
)
from ..deps import get_acting_member, get_db, require_family_access

router = APIRouter()


@router.post("/{family_id}/members", response_model=MemberOut)
def create_member(
    payload: MemberCreate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return add_member(
        db,
        family_id=family_id,
        actor_id=actor.id,
        name=payload.name,
        role=payload.role,
        initial_balance=payload.initial_balance,
        avatar_url=payload.avatar_url,
    )


@router.patch("/{family_id}/members/{member_id}", response_model=MemberOut)
def edit_member(
    member_id: str,
    payload: MemberUpdate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    member = get_member_in_family(db, family_id=family_id, member_id=member_id)
    if changes.get("name") is not None:
        member = rename_member(db, family_id=family_id, actor_id=actor.id, member_id=member_id, name=changes["name"])
    if "avatar_url" in changes:
        member = update_member_avatar(
            db, family_id=family_id, actor_id=actor.id, member_id=member_id, avatar_url=changes["avatar_url"]
        )
    return member


@router.put("/{family_id}/members/{member_id}/role", response_model=MemberOut)
def set_role(
    member_id: str,
    payload: RoleChange,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return change_role(db, family_id=family_id, actor_id=actor.id, member_id=member_id, role=payload.role)


@router.delete("/{family_id}/members/{member_id}", response_model=FamilyOut)
def remove_member(
    member_id: str,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return delete_member(db, family_id=family_id, actor_id=actor.id, member_id=member_id)
