from __future__ import annotations

from typing import List

from pydantic import BaseModel

from app.schemas.auth import UserOut


class UsersPage(BaseModel):
    items: List[UserOut]
    total: int
    page: int
    limit: int
