# app/api/routes/settings.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import DBDep, require_admin
from app.schemas.settings import SystemSettingsIn, SystemSettingsOut
from app.services import system_settings as settings_service

router = APIRouter(dependencies=[Depends(require_admin())])


@router.get("/system", response_model=SystemSettingsOut)
async def get_system_settings(db: DBDep):
    return await settings_service.get_system_settings(db)


@router.put("/system", response_model=SystemSettingsOut)
async def update_system_settings(payload: SystemSettingsIn, db: DBDep):
    values = payload.model_dump()
    # домени зберігаємо нормалізовано
    values["allowed_email_domains"] = sorted(
        {d.strip().lower() for d in payload.allowed_email_domains if d.strip()}
    )
    return await settings_service.update_system_settings(db, values)
