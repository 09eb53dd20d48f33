# app/api/routes/technicians.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..deps import ActorDep, DBDep, require_admin, require_role
from app.db.models import Role
from app.schemas.technicians import (
    TechnicianIn,
    TechnicianLinkUserIn,
    TechnicianOut,
    TechnicianStatusIn,
)
from app.schemas.tickets import TicketOut
from app.services import technicians as technician_service
from app.services.tickets import list_tickets

router = APIRouter()
admin_only = [Depends(require_admin())]


@router.get("/technicians", response_model=list[TechnicianOut], dependencies=admin_only)
async def list_technicians(db: DBDep):
    return await technician_service.list_technicians(db)


@router.post(
    "/technicians",
    response_model=TechnicianOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=admin_only,
)
async def create_technician(payload: TechnicianIn, db: DBDep):
    return await technician_service.create_technician(db, payload.model_dump())


@router.get("/technicians/{technician_id}", response_model=TechnicianOut, dependencies=admin_only)
async def get_technician(technician_id: int, db: DBDep):
    return await technician_service.get_technician(db, technician_id)


@router.put("/technicians/{technician_id}", response_model=TechnicianOut, dependencies=admin_only)
async def update_technician(technician_id: int, payload: TechnicianIn, db: DBDep):
    return await technician_service.update_technician(db, technician_id, payload.model_dump())


@router.patch(
    "/technicians/{technician_id}/status",
    response_model=TechnicianOut,
    dependencies=admin_only,
)
async def set_status(technician_id: int, payload: TechnicianStatusIn, db: DBDep):
    return await technician_service.set_technician_active(db, technician_id, payload.is_active)


@router.post(
    "/technicians/{technician_id}/link-user",
    response_model=TechnicianOut,
    dependencies=admin_only,
)
async def link_user(technician_id: int, payload: TechnicianLinkUserIn, db: DBDep):
    return await technician_service.link_user(db, technician_id, payload.user_id)


# ===== черга поточного техніка =====

@router.get(
    "/technician/tickets",
    response_model=list[TicketOut],
    dependencies=[Depends(require_role(Role.technician))],
)
async def my_tickets(db: DBDep, actor: ActorDep):
    rows = await list_tickets(db, actor)
    return [TicketOut.from_ticket(t) for t in rows]
