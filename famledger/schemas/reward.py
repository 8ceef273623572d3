from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from ..models import as_utc
from ..models.reward import RewardStatus, RewardType
from .common import ORMModel, Title


class RewardCreate(BaseModel):
    title: Title
    points: int = Field(gt=0)
    type: RewardType = RewardType.PHYSICAL
    image_url: str | None = None
class RewardUpdate(BaseModel):
    title: Title | None = None
    points: int | None = Field(default=None, gt=0)
    type: RewardType | None = None
    image_url: str | None = None
class RewardOut(ORMModel):
    id: str
    family_id: str
    title: str
    points: int
    type: RewardType
    image_url: str | None = None
    status: RewardStatus
    requested_by: str | None = None
    requested_at: datetime | None = None

    @field_validator("requested_at")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)
class RedeemIn(BaseModel):
    member_id: str | None = None
