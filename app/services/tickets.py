"""
Tickets service (життєвий цикл заявки).

Перевірки прав робить app.services.permissions, тут лише читання і запис:
створення, PATCH, повідомлення зі зміною статусу, ручне призначення.
Кожна мутація робить один commit; updated_at оновлюється завжди.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import (
    Assignment,
    Role,
    Status,
    Priority,
    Technician,
    Ticket,
    TicketMessage,
    User,
    to_utc,
    utcnow,
)
from app.schemas.tickets import TicketCreate, TicketUpdate
from app.services.categories import resolve_category
from app.services.errors import NotFound, ValidationFailure
from app.services.notifications import NotificationSink, default_notifier
from app.services.permissions import (
    Actor,
    allowed_update,
    can_access,
    message_status_change,
)
from app.services.search import LIKE_ESCAPE, contains_pattern
from app.services.system_settings import get_system_settings
from app.services.technicians import find_assignable_by_user

log = logging.getLogger(__name__)

# усе, що потрібно для TicketOut, вантажимо одразу, бо async не підтримує lazy load
TICKET_LOAD_OPTIONS = (
    selectinload(Ticket.category),
    selectinload(Ticket.subcategory),
    selectinload(Ticket.created_by),
    selectinload(Ticket.assigned_user),
    selectinload(Ticket.technician),
)


@dataclass
class TicketFilters:
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    assigned_to: Optional[int] = None
    created_by: Optional[int] = None
    search: Optional[str] = None


def _scoped(q, actor: Actor):
    """Той самий scope, що й can_access, але як SQL-фільтр."""
    if actor.role == Role.client:
        return q.where(Ticket.created_by_id == actor.id)
    if actor.role == Role.technician:
        own_profiles = select(Technician.id).where(Technician.user_id == actor.id)
        return q.where(
            or_(
                Ticket.assigned_user_id == actor.id,
                Ticket.technician_id.in_(own_profiles),
            )
        )
    return q


def _visible(actor: Actor, t: Ticket) -> bool:
    return can_access(
        actor,
        created_by_id=t.created_by_id,
        assigned_user_id=t.assigned_user_id,
        technician_user_id=t.technician.user_id if t.technician else None,
    )


async def _load_ticket(db: AsyncSession, ticket_id: int) -> Optional[Ticket]:
    q = (
        select(Ticket)
        .options(*TICKET_LOAD_OPTIONS)
        .where(Ticket.id == ticket_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).scalar_one_or_none()


async def list_tickets(
    db: AsyncSession, actor: Actor, filters: Optional[TicketFilters] = None
) -> list[Ticket]:
    f = filters or TicketFilters()
    q = _scoped(select(Ticket).options(*TICKET_LOAD_OPTIONS), actor)
    if f.status:
        q = q.where(Ticket.status == f.status)
    if f.priority:
        q = q.where(Ticket.priority == f.priority)
    if f.assigned_to is not None:
        q = q.where(Ticket.assigned_user_id == f.assigned_to)
    if f.created_by is not None:
        q = q.where(Ticket.created_by_id == f.created_by)
    if f.search and f.search.strip():
        pattern = contains_pattern(f.search.strip())
        q = q.where(
            or_(
                Ticket.title.ilike(pattern, escape=LIKE_ESCAPE),
                Ticket.description.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    q = q.order_by(Ticket.created_at.desc(), Ticket.id.desc())
    return list((await db.execute(q)).scalars().all())


async def get_ticket(db: AsyncSession, ticket_id: int, actor: Actor) -> Ticket:
    t = await _load_ticket(db, ticket_id)
    # чужа заявка = "не знайдено", щоб не світити її існування
    if t is None or not _visible(actor, t):
        raise NotFound("Ticket not found")
    return t


async def create_ticket(db: AsyncSession, actor_id: int, payload: TicketCreate) -> Ticket:
    """
    Нова заявка завжди new + без виконавця.
    Автопризначення тут немає, воно запускається окремо адміном.
    """
    await resolve_category(db, payload.category_id, payload.subcategory_id)

    priority = payload.priority
    if priority is None:
        priority = (await get_system_settings(db)).default_priority

    t = Ticket(
        title=payload.title,
        description=payload.description,
        category_id=payload.category_id,
        subcategory_id=payload.subcategory_id,
        priority=priority,
        status=Status.new,
        created_by_id=actor_id,
    )
    db.add(t)
    await db.commit()
    log.info("ticket_created id=%s by=%s", t.id, actor_id)
    return await _load_ticket(db, t.id)


async def _assignment_for_user(db: AsyncSession, user_id: int) -> Assignment:
    tech = await find_assignable_by_user(db, user_id)
    if tech is None:
        raise ValidationFailure(f"User {user_id} is not linked to an active technician")
    return Assignment(technician_id=tech.id, user_id=user_id)


async def update_ticket(
    db: AsyncSession, ticket_id: int, actor: Actor, patch: TicketUpdate
) -> Ticket:
    t = await get_ticket(db, ticket_id, actor)

    changes = allowed_update(actor.role, patch.model_dump(exclude_unset=True))
    if not changes:
        # усе відкинуто: нічого не пишемо і updated_at не чіпаємо
        return t

    # адмін призначає акаунт, але пишемо обидва посилання разом
    if "assigned_user_id" in changes:
        t.assignment = await _assignment_for_user(db, changes.pop("assigned_user_id"))

    for field, value in changes.items():
        setattr(t, field, value)

    t.updated_at = utcnow()
    await db.commit()
    return await _load_ticket(db, t.id)


async def assign_to_technician(db: AsyncSession, ticket_id: int, technician_id: int) -> Ticket:
    """Ручне призначення адміном: технік має бути активний і прив'язаний до акаунта."""
    t = await _load_ticket(db, ticket_id)
    if t is None:
        raise NotFound("Ticket not found")

    tech = await db.get(Technician, technician_id)
    if tech is None or not tech.is_active:
        raise ValidationFailure("Technician not found or inactive")
    if tech.user_id is None:
        raise ValidationFailure("Technician is not linked to a user account")

    t.assignment = Assignment(technician_id=tech.id, user_id=tech.user_id)
    t.status = Status.in_progress
    t.updated_at = utcnow()
    await db.commit()
    log.info("ticket_assigned id=%s technician=%s user=%s", t.id, tech.id, tech.user_id)
    return await _load_ticket(db, t.id)


def _other_party(t: Ticket, author_id: int) -> Optional[int]:
    """Автор = творець → пишемо виконавцю; інакше творцю."""
    target = t.assigned_user_id if author_id == t.created_by_id else t.created_by_id
    if target is None or target == author_id:
        return None
    return target


async def add_message(
    db: AsyncSession,
    ticket_id: int,
    author_id: int,
    body: str,
    status: Optional[Status] = None,
    *,
    notifier: Optional[NotificationSink] = None,
) -> TicketMessage:
    t = await _load_ticket(db, ticket_id)
    if t is None:
        raise NotFound("Ticket not found")
    author = await db.get(User, author_id)
    if author is None:
        raise NotFound("User not found")
    actor = Actor(id=author.id, role=author.role)
    if not _visible(actor, t):
        raise NotFound("Ticket not found")

    if status is not None:
        # може кинути StatusChangeForbidden (клієнт закриває заявку)
        new_status = message_status_change(actor.role, t.status, status)
        if new_status is not None:
            t.status = new_status

    t.updated_at = utcnow()
    msg = TicketMessage(ticket_id=t.id, author=author, body=body, status=t.status)
    db.add(msg)
    await db.commit()

    target = _other_party(t, author.id)
    if target is not None:
        sink = notifier or default_notifier()
        try:
            await sink.notify(target, f"New message on ticket '{t.title}'")
        except Exception:
            # fire-and-forget: повідомлення вже збережене
            log.exception("notify failed ticket=%s user=%s", t.id, target)
    return msg


async def list_messages(db: AsyncSession, ticket_id: int, actor: Actor) -> list[TicketMessage]:
    await get_ticket(db, ticket_id, actor)
    q = (
        select(TicketMessage)
        .options(selectinload(TicketMessage.author))
        .where(TicketMessage.ticket_id == ticket_id)
        .order_by(TicketMessage.created_at, TicketMessage.id)
    )
    return list((await db.execute(q)).scalars().all())


async def calendar_tickets(db: AsyncSession, start: datetime, end: datetime) -> list[Ticket]:
    """Календар адміна: усі заявки, створені в [start, end]."""
    q = (
        select(Ticket)
        .options(*TICKET_LOAD_OPTIONS)
        .where(Ticket.created_at >= to_utc(start), Ticket.created_at <= to_utc(end))
        .order_by(Ticket.created_at, Ticket.id)
    )
    return list((await db.execute(q)).scalars().all())
