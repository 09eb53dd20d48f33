# app/api/routes/assignment.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import DBDep, require_admin
from app.schemas.settings import SmartAssignmentRunOut, SmartAssignmentStatus
from app.services import system_settings as settings_service
from app.services.assignment import assign_batch

router = APIRouter(dependencies=[Depends(require_admin())])


@router.get("/smart", response_model=SmartAssignmentStatus)
async def get_smart_assignment(db: DBDep):
    return {"enabled": await settings_service.is_auto_assign_enabled(db)}


@router.put("/smart", response_model=SmartAssignmentStatus)
async def update_smart_assignment(payload: SmartAssignmentStatus, db: DBDep):
    enabled = await settings_service.set_auto_assign_enabled(db, payload.enabled)
    return {"enabled": enabled}


@router.post("/smart/run", response_model=SmartAssignmentRunOut)
async def run_smart_assignment(
    db: DBDep,
    start: datetime | None = None,
    end: datetime | None = None,
):
    """
    Ручний запуск автопризначення для непризначених заявок.
    Прапорець auto_assign_enabled перевіряємо тут, а не в движку.
    """
    if not await settings_service.is_auto_assign_enabled(db):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Smart assignment is disabled. Enable it first.",
        )
    count = await assign_batch(db, start, end)
    return {"assigned_count": count, "message": f"{count} ticket(s) assigned automatically."}
