from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TechnicianIn(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=32)
    department: Optional[str] = Field(default=None, max_length=128)
    is_active: bool = True


class TechnicianStatusIn(BaseModel):
    is_active: bool


class TechnicianLinkUserIn(BaseModel):
    user_id: int


class TechnicianOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    department: Optional[str] = None
    is_active: bool
    created_at: datetime
    # None = технік не може отримувати заявки
    user_id: Optional[int] = None
