"""
Smart assignment: розподіл непризначених заявок на найменш завантажених техніків.

Кандидати: активні техніки з прив'язаним акаунтом (user_id).
Навантаження: кількість їхніх заявок у статусах new / in_progress.
Мінімальне навантаження виграє, при нічиї менший id (id монотонні, тобто
"раніше створений").

Чи дозволений запуск (system_settings.auto_assign_enabled) перевіряє той,
хто викликає, а не цей модуль.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import (
    OPEN_STATUSES,
    Assignment,
    Status,
    Technician,
    Ticket,
    to_utc,
    utcnow,
)

log = logging.getLogger(__name__)


def pick_least_loaded(loads: Mapping[int, int]) -> Optional[int]:
    """{technician_id: load} → id з мінімальним навантаженням (нічия → менший id)."""
    if not loads:
        return None
    return min(loads, key=lambda tech_id: (loads[tech_id], tech_id))


async def eligible_technicians(db: AsyncSession) -> list[Technician]:
    q = select(Technician).where(
        Technician.is_active.is_(True),
        Technician.user_id.is_not(None),
    )
    return list((await db.execute(q)).scalars().all())


async def technician_loads(db: AsyncSession, technician_ids: list[int]) -> dict[int, int]:
    """Кількість відкритих заявок на кожного техніка (0 для тих, у кого нічого немає)."""
    loads = {tech_id: 0 for tech_id in technician_ids}
    if not technician_ids:
        return loads
    q = (
        select(Ticket.technician_id, func.count(Ticket.id))
        .where(
            Ticket.technician_id.in_(technician_ids),
            Ticket.status.in_(sorted(OPEN_STATUSES)),
        )
        .group_by(Ticket.technician_id)
    )
    for tech_id, count in (await db.execute(q)).all():
        loads[tech_id] = count
    return loads


async def assign_one(db: AsyncSession, ticket_id: int) -> Optional[int]:
    """
    Призначає одну непризначену заявку.

    Повертає id техніка або None, якщо призначення не відбулося
    (заявки немає, вона вже має техніка, немає кандидатів, або
    кандидат втратив прив'язку до акаунта). Помилки БД летять далі.
    """
    ticket = (
        await db.execute(
            select(Ticket)
            .where(Ticket.id == ticket_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if ticket is None or ticket.technician_id is not None:
        return None

    candidates = await eligible_technicians(db)
    if not candidates:
        log.info("smart_assignment: no eligible technician for ticket %s", ticket_id)
        return None

    loads = await technician_loads(db, [t.id for t in candidates])
    chosen_id = pick_least_loaded(loads)

    # перечитуємо обраного техніка безпосередньо перед записом
    tech = (
        await db.execute(
            select(Technician)
            .where(Technician.id == chosen_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if tech is None or tech.user_id is None:
        log.warning(
            "smart_assignment SKIPPED: technician %s has no linked user; ticket %s stays unassigned",
            chosen_id,
            ticket_id,
        )
        return None

    ticket.assignment = Assignment(technician_id=tech.id, user_id=tech.user_id)
    ticket.status = Status.in_progress
    ticket.updated_at = utcnow()
    await db.commit()

    log.info(
        "smart_assignment SUCCESS: ticket %s -> technician %s (user %s, load %s)",
        ticket_id,
        tech.id,
        tech.user_id,
        loads[tech.id],
    )
    return tech.id


async def assign_batch(
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> int:
    """
    Проходить усі непризначені заявки (опційно created_at у [start, end])
    і викликає assign_one для кожної. Кожне призначення має окремий commit,
    тому повторний запуск безпечний: вже призначені пропускаються.
    """
    q = select(Ticket.id).where(Ticket.technician_id.is_(None))
    if start is not None:
        q = q.where(Ticket.created_at >= to_utc(start))
    if end is not None:
        q = q.where(Ticket.created_at <= to_utc(end))
    q = q.order_by(Ticket.created_at, Ticket.id)

    ticket_ids = list((await db.execute(q)).scalars().all())
    assigned = 0
    for ticket_id in ticket_ids:
        if await assign_one(db, ticket_id) is not None:
            assigned += 1

    log.info("smart_assignment batch: %s of %s tickets assigned", assigned, len(ticket_ids))
    return assigned
