from typing import List
from pydantic import BaseModel, Field
from .common import ORMModel
from .member import MemberOut
from .task import TaskOut
from .reward import RewardOut
from .ledger import TransactionOut


class FamilyOpen(BaseModel):
    name: str | None = Field(default=None, max_length=128)
class SwitchMemberIn(BaseModel):
    member_id: str
class FamilyOut(ORMModel):
    id: str
    name: str
    current_member_id: str | None
    members: List[MemberOut] = []
    tasks: List[TaskOut] = []
    rewards: List[RewardOut] = []


class MemberSnapshot(MemberOut):
    history: List[TransactionOut] = []
class FamilySnapshot(BaseModel):
    """Everything a family owns, by value; what export writes and import reads."""
    id: str = Field(min_length=1, max_length=64)
    name: str
    current_member_id: str | None = None
    members: List[MemberSnapshot] = []
    tasks: List[TaskOut] = []
    rewards: List[RewardOut] = []
