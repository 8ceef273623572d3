from pydantic import BaseModel, EmailStr, Field
from .common import ORMModel


class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    display_name: str | None = None
class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: str | None = None
class AccountOut(ORMModel):
    id: str
    email: EmailStr
    display_name: str | None = None
    is_active: bool
