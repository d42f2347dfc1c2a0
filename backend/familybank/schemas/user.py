# familybank/schemas/user.py

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from .child import ChildRead
from .common import UTCDateTime


class RegisterRequest(BaseModel):
    family_slug: str
    name: str
    email: EmailStr
    password: str


class ParentRead(BaseModel):
    id: int
    family_id: int
    name: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ChildLoginRequest(BaseModel):
    family_slug: str
    first_name: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_type: str
    user_id: int
    family_id: int
    first_name: Optional[str] = None


class FamilyRead(BaseModel):
    id: int
    slug: str
    created_at: UTCDateTime
    children: list[ChildRead] = []
