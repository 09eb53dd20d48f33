"""Глобальні налаштування системи (один рядок у system_settings)."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import SystemSettings, utcnow

log = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


async def get_system_settings(db: AsyncSession) -> SystemSettings:
    """Повертає рядок налаштувань; якщо його ще немає, створює з дефолтами."""
    row = await db.get(SystemSettings, SETTINGS_ROW_ID)
    if row is None:
        row = await _insert_defaults(db)
    return row


async def _insert_defaults(db: AsyncSession) -> SystemSettings:
    db.add(SystemSettings(id=SETTINGS_ROW_ID))
    try:
        await db.commit()
    except IntegrityError:
        # паралельний запит уже вставив рядок id=1: беремо його
        await db.rollback()
        log.info("system_settings_insert_race id=%s", SETTINGS_ROW_ID)
    return await db.get(SystemSettings, SETTINGS_ROW_ID, populate_existing=True)


async def update_system_settings(db: AsyncSession, values: Mapping[str, Any]) -> SystemSettings:
    row = await get_system_settings(db)
    for field, value in values.items():
        setattr(row, field, value)
    row.updated_at = utcnow()
    await db.commit()
    return row


async def is_auto_assign_enabled(db: AsyncSession) -> bool:
    return (await get_system_settings(db)).auto_assign_enabled


async def set_auto_assign_enabled(db: AsyncSession, enabled: bool) -> bool:
    row = await update_system_settings(db, {"auto_assign_enabled": enabled})
    return row.auto_assign_enabled
