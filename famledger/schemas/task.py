from typing import Annotated
from pydantic import AfterValidator, BaseModel
from ..models.task import TaskCategory
from .common import ORMModel, Title


def _nonzero(v: int) -> int:
    if v == 0:
        raise ValueError("points must not be zero")
    return v


NonZeroPoints = Annotated[int, AfterValidator(_nonzero)]


class TaskCreate(BaseModel):
    category: TaskCategory = TaskCategory.CHORES
    title: Title
    description: str | None = None
    points: NonZeroPoints
    frequency: str | None = None
    image_url: str | None = None
class TaskUpdate(BaseModel):
    category: TaskCategory | None = None
    title: Title | None = None
    description: str | None = None
    points: NonZeroPoints | None = None
    frequency: str | None = None
    image_url: str | None = None
class TaskOut(ORMModel):
    id: str
    family_id: str
    category: TaskCategory
    title: str
    description: str | None = None
    points: int
    frequency: str | None = None
    image_url: str | None = None
class TaskActionIn(BaseModel):
    # whose ledger the task lands on; defaults to the acting member
    member_id: str | None = None
