from pydantic import BaseModel, Field
from ..models.member import MemberRole
from .common import ORMModel


class MemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    role: MemberRole = MemberRole.STANDARD
    initial_balance: int = 0
    avatar_url: str | None = None
class MemberUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=64)
    avatar_url: str | None = None
class RoleChange(BaseModel):
    role: MemberRole
class MemberOut(ORMModel):
    id: str
    family_id: str
    name: str
    balance: int
    role: MemberRole
    avatar_color: str | None = None
    avatar_url: str | None = None
