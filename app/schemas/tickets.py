# app/schemas/tickets.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from app.db.models import Priority, Status, Ticket


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category_id: int
    subcategory_id: Optional[int] = None
    # None → default_priority із системних налаштувань
    priority: Optional[Priority] = None


class TicketUpdate(BaseModel):
    # усі поля опційні; що саме застосується, вирішує permissions.allowed_update
    description: Optional[str] = Field(default=None, min_length=1)
    priority: Optional[Priority] = None
    status: Optional[Status] = None
    assigned_user_id: Optional[int] = None
    due_date: Optional[datetime] = None


class TicketAssignIn(BaseModel):
    technician_id: int


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    category_id: int
    category_name: str = ""
    subcategory_id: Optional[int] = None
    subcategory_name: Optional[str] = None
    priority: Priority
    status: Status
    created_by_id: int
    created_by_name: Optional[str] = None
    created_by_email: Optional[str] = None
    created_by_phone: Optional[str] = None
    created_by_department: Optional[str] = None
    technician_id: Optional[int] = None
    assigned_user_id: Optional[int] = None
    # заповнюються лише коли заявка справді призначена (assigned_user_id != None)
    assigned_to_name: Optional[str] = None
    assigned_to_email: Optional[str] = None
    assigned_to_phone: Optional[str] = None
    assigned_technician_name: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_ticket(cls, t: Ticket) -> "TicketOut":
        author = t.created_by
        tech = t.technician
        assignee = t.assigned_user

        name = email = phone = None
        if t.is_assigned:
            name = (tech.full_name if tech else None) or (assignee.full_name if assignee else None)
            email = (tech.email if tech else None) or (assignee.email if assignee else None)
            phone = (tech.phone if tech else None) or (assignee.phone if assignee else None)

        return cls(
            id=t.id,
            title=t.title,
            description=t.description,
            category_id=t.category_id,
            category_name=t.category.name if t.category else "",
            subcategory_id=t.subcategory_id,
            subcategory_name=t.subcategory.name if t.subcategory else None,
            priority=t.priority,
            status=t.status,
            created_by_id=t.created_by_id,
            created_by_name=author.full_name if author else None,
            created_by_email=author.email if author else None,
            created_by_phone=author.phone if author else None,
            created_by_department=author.department if author else None,
            technician_id=t.technician_id,
            assigned_user_id=t.assigned_user_id,
            assigned_to_name=name,
            assigned_to_email=email,
            assigned_to_phone=phone,
            assigned_technician_name=name,
            due_date=t.due_date,
            created_at=t.created_at,
            updated_at=t.updated_at,
        )


class TicketCalendarOut(BaseModel):
    id: int
    ticket_number: str
    title: str
    status: Status
    priority: Priority
    category_name: str = ""
    assigned_technician_name: Optional[str] = None
    created_at: datetime
    due_date: Optional[datetime] = None

    @classmethod
    def from_ticket(cls, t: Ticket) -> "TicketCalendarOut":
        out = TicketOut.from_ticket(t)
        return cls(
            id=t.id,
            ticket_number=f"T-{t.id:08d}",
            title=t.title,
            status=t.status,
            priority=t.priority,
            category_name=out.category_name,
            assigned_technician_name=out.assigned_technician_name,
            created_at=t.created_at,
            due_date=t.due_date,
        )
