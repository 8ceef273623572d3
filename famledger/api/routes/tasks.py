from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...models.member import Member
from ...models.task import TaskCategory
from ...schemas.ledger import LedgerOut, ledger_out
from ...schemas.task import TaskActionIn, TaskCreate, TaskOut, TaskUpdate
from ...services.action_service import apply_penalty, complete_task
from ...services.task_service import create_task, delete_task, list_tasks, update_task
from ..deps import get_acting_member, get_db, require_family_access

router = APIRouter()


@router.get("/{family_id}/tasks", response_model=List[TaskOut])
def family_tasks(
    category: Optional[TaskCategory] = None,
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    return list_tasks(db, family_id=family_id, category=category)


@router.post("/{family_id}/tasks", response_model=TaskOut)
def create_family_task(
    payload: TaskCreate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return create_task(db, family_id=family_id, actor_id=actor.id, payload=payload)


@router.patch("/{family_id}/tasks/{task_id}", response_model=TaskOut)
def edit_task(
    task_id: str,
    payload: TaskUpdate,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    return update_task(db, family_id=family_id, actor_id=actor.id, task_id=task_id, payload=payload)


@router.delete("/{family_id}/tasks/{task_id}", status_code=204)
def remove_task(
    task_id: str,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    delete_task(db, family_id=family_id, actor_id=actor.id, task_id=task_id)


@router.post("/{family_id}/tasks/{task_id}/complete", response_model=LedgerOut)
def complete(
    task_id: str,
    payload: TaskActionIn | None = None,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    result = complete_task(
        db, family_id=family_id, task_id=task_id, actor_id=actor.id,
        member_id=payload.member_id if payload else None,
    )
    return ledger_out(result)


@router.post("/{family_id}/tasks/{task_id}/penalty", response_model=LedgerOut)
def penalize(
    task_id: str,
    payload: TaskActionIn | None = None,
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    result = apply_penalty(
        db, family_id=family_id, task_id=task_id, actor_id=actor.id,
        member_id=payload.member_id if payload else None,
    )
    return ledger_out(result)
