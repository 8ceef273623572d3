import logging
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import NotFound
from ..models.task import Task, TaskCategory
from ..schemas.task import TaskCreate, TaskUpdate
from .family_service import get_actor, get_family, require_admin

logger = logging.getLogger(__name__)


def get_task(db: Session, *, family_id: str, task_id: str) -> Task:
    task = db.get(Task, task_id)
    if not task or task.family_id != family_id:
        raise NotFound(f"Task {task_id} not found")
    return task


def list_tasks(db: Session, *, family_id: str, category: TaskCategory | None = None) -> list[Task]:
    get_family(db, family_id)
    stmt = select(Task).where(Task.family_id == family_id)
    if category is not None:
        stmt = stmt.where(Task.category == category)
    return list(db.execute(stmt.order_by(Task.points, Task.created_at)).scalars())


def create_task(db: Session, *, family_id: str, actor_id: str | None, payload: TaskCreate) -> Task:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "create tasks")
    t = Task(family_id=family_id, **payload.model_dump())
    db.add(t)
    db.commit()
    db.refresh(t)
    logger.info(f"Task created: family={family_id} id={t.id} points={t.points}")
    return t


def update_task(db: Session, *, family_id: str, actor_id: str | None, task_id: str, payload: TaskUpdate) -> Task:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "edit tasks")
    task = get_task(db, family_id=family_id, task_id=task_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None and key in ("category", "title", "points"):
            continue
        setattr(task, key, value)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, *, family_id: str, actor_id: str | None, task_id: str) -> None:
    actor = get_actor(db, family_id=family_id, actor_id=actor_id)
    require_admin(actor, "delete tasks")
    task = get_task(db, family_id=family_id, task_id=task_id)
    db.delete(task)
    db.commit()
    logger.info(f"Task deleted: family={family_id} id={task_id}")
