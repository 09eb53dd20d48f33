# app/services/technicians.py
from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Role, Technician, User
from app.services.errors import Conflict, NotFound, ValidationFailure

log = logging.getLogger(__name__)

# поля профілю, які адмін може оновити
PROFILE_FIELDS = ("full_name", "email", "phone", "department", "is_active")


async def list_technicians(db: AsyncSession) -> list[Technician]:
    rows = await db.execute(select(Technician).order_by(Technician.full_name, Technician.id))
    return list(rows.scalars().all())


async def get_technician(db: AsyncSession, technician_id: int) -> Technician:
    t = await db.get(Technician, technician_id)
    if t is None:
        raise NotFound("Technician not found")
    return t


async def create_technician(db: AsyncSession, values: Mapping[str, Any]) -> Technician:
    t = Technician(**{k: v for k, v in values.items() if k in PROFILE_FIELDS})
    db.add(t)
    await db.commit()
    return t


async def update_technician(db: AsyncSession, technician_id: int, values: Mapping[str, Any]) -> Technician:
    t = await get_technician(db, technician_id)
    for field in PROFILE_FIELDS:
        if field in values:
            setattr(t, field, values[field])
    await db.commit()
    return t


async def set_technician_active(db: AsyncSession, technician_id: int, is_active: bool) -> Technician:
    t = await get_technician(db, technician_id)
    t.is_active = is_active
    await db.commit()
    return t


async def link_user(db: AsyncSession, technician_id: int, user_id: int) -> Technician:
    """
    Прив'язка профілю техніка до акаунта (лише один раз).
    Без прив'язки технік не бере участі в автопризначенні.
    """
    t = await get_technician(db, technician_id)
    if t.user_id is not None:
        log.warning("link_user: technician %s already linked to user %s", t.id, t.user_id)
        raise Conflict("Technician is already linked to a user")

    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.role != Role.technician:
        raise ValidationFailure("User must have the technician role")

    taken = (await db.execute(select(Technician.id).where(Technician.user_id == user_id))).scalar_one_or_none()
    if taken is not None:
        raise Conflict("User is already linked to another technician")

    t.user_id = user.id
    await db.commit()
    log.info("link_user: technician %s linked to user %s (%s)", t.id, user.id, user.email)
    return t


async def find_assignable_by_user(db: AsyncSession, user_id: int) -> Technician | None:
    """Активний профіль техніка, прив'язаний до user_id (або None)."""
    q = select(Technician).where(Technician.user_id == user_id, Technician.is_active.is_(True))
    return (await db.execute(q)).scalar_one_or_none()
