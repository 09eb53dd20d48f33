# app/api/routes/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import DBDep, require_admin
from app.db.models import Role
from app.schemas.auth import UserOut
from app.schemas.users import UsersPage
from app.services import users as user_service
from app.services.auth import serialize_user

router = APIRouter(dependencies=[Depends(require_admin())])


@router.get("", response_model=UsersPage)
async def list_users(
    db: DBDep,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    q: Optional[str] = Query(None, description="пошук по email/ПІБ"),
    role: Optional[Role] = Query(None),
    is_active: Optional[bool] = Query(None),
):
    items, total = await user_service.list_users(
        db, search=q, role=role, is_active=is_active, page=page, limit=limit
    )
    return UsersPage(
        items=[UserOut(**serialize_user(u)) for u in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/technicians", response_model=list[UserOut])
async def list_technician_accounts(db: DBDep):
    """Акаунти з роллю technician (з профілем і без)."""
    return [UserOut(**serialize_user(u)) for u in await user_service.list_technician_accounts(db)]
