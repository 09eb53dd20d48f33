# app/schemas/auth.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.db.models import Role


class LoginIn(BaseModel):
    username: EmailStr
    password: str


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    # роль обов'язкова: за замовчуванням нічого не підставляємо
    role: Role
    full_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    department: str | None = Field(default=None, max_length=128)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    email: str
    role: str
    full_name: str | None = None
    phone: str | None = None
    department: str | None = None
    is_active: bool | None = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
