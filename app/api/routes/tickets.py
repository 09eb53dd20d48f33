# app/api/routes/tickets.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from ..deps import ActorDep, DBDep, UserDep, require_role
from app.db.models import Priority, Role, Status
from app.schemas.messages import MessageCreate, MessageOut
from app.schemas.tickets import (
    TicketAssignIn,
    TicketCalendarOut,
    TicketCreate,
    TicketOut,
    TicketUpdate,
)
from app.services import tickets as ticket_service
from app.services.tickets import TicketFilters

router = APIRouter()


@router.post(
    "",
    response_model=TicketOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(Role.client))],
)
async def create_ticket(payload: TicketCreate, db: DBDep, actor: ActorDep):
    # клієнт створює заявку лише для себе
    t = await ticket_service.create_ticket(db, actor.id, payload)
    return TicketOut.from_ticket(t)


@router.get("", response_model=list[TicketOut])
async def list_tickets(
    db: DBDep,
    actor: ActorDep,
    status_: Status | None = Query(default=None, alias="status"),
    priority: Priority | None = None,
    assigned_to: int | None = None,
    created_by: int | None = None,
    search: str | None = None,
):
    filters = TicketFilters(
        status=status_,
        priority=priority,
        assigned_to=assigned_to,
        created_by=created_by,
        search=search,
    )
    rows = await ticket_service.list_tickets(db, actor, filters)
    return [TicketOut.from_ticket(t) for t in rows]


@router.get(
    "/calendar",
    response_model=list[TicketCalendarOut],
    dependencies=[Depends(require_role(Role.admin))],
)
async def calendar(db: DBDep, start: datetime, end: datetime):
    rows = await ticket_service.calendar_tickets(db, start, end)
    return [TicketCalendarOut.from_ticket(t) for t in rows]


@router.get("/{ticket_id}", response_model=TicketOut)
async def get_ticket(ticket_id: int, db: DBDep, actor: ActorDep):
    t = await ticket_service.get_ticket(db, ticket_id, actor)
    return TicketOut.from_ticket(t)


@router.patch("/{ticket_id}", response_model=TicketOut)
async def patch_ticket(ticket_id: int, payload: TicketUpdate, db: DBDep, actor: ActorDep):
    t = await ticket_service.update_ticket(db, ticket_id, actor, payload)
    return TicketOut.from_ticket(t)


@router.post(
    "/{ticket_id}/assign",
    response_model=TicketOut,
    dependencies=[Depends(require_role(Role.admin))],
)
async def assign_ticket(ticket_id: int, payload: TicketAssignIn, db: DBDep):
    t = await ticket_service.assign_to_technician(db, ticket_id, payload.technician_id)
    return TicketOut.from_ticket(t)


# ===== повідомлення =====

@router.get("/{ticket_id}/messages", response_model=list[MessageOut])
async def list_messages(ticket_id: int, db: DBDep, actor: ActorDep):
    rows = await ticket_service.list_messages(db, ticket_id, actor)
    return [MessageOut.from_message(m) for m in rows]


@router.post(
    "/{ticket_id}/messages",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_message(ticket_id: int, payload: MessageCreate, db: DBDep, current: UserDep):
    m = await ticket_service.add_message(
        db, ticket_id, current.id, payload.message, payload.status
    )
    return MessageOut.from_message(m)
