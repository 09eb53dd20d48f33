# app/db/models.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    inspect,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Naive вважаємо UTC; aware переводимо в UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ==== Енуми (python + sqlalchemy) ====


class RoleEnum(str, enum.Enum):
    client = "client"
    technician = "technician"
    admin = "admin"


class PriorityEnum(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class TicketStatusEnum(str, enum.Enum):
    new = "new"
    in_progress = "in_progress"
    waiting_for_client = "waiting_for_client"
    resolved = "resolved"
    closed = "closed"


# короткі імена, як і раніше
Role = RoleEnum
Status = TicketStatusEnum
Priority = PriorityEnum

# статуси, що рахуються як навантаження техніка
OPEN_STATUSES = frozenset({Status.new, Status.in_progress})
# "закриваючі" статуси
CLOSING_STATUSES = frozenset({Status.resolved, Status.closed})


# ==== Міксини ====


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


# ==== Value object призначення ====


@dataclass(frozen=True)
class Assignment:
    """Пара (профіль техніка, його акаунт). Пишеться і стирається лише разом."""

    technician_id: int
    user_id: int


# ==== Моделі ====


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    # без default: роль завжди передається явно
    role: Mapped[RoleEnum] = mapped_column(Enum(RoleEnum, name="role_enum"), nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # relationships
    tickets_created: Mapped[List["Ticket"]] = relationship(
        back_populates="created_by",
        foreign_keys="Ticket.created_by_id",
    )
    technician_profile: Mapped[Optional["Technician"]] = relationship(back_populates="user")

    @validates("email")
    def _normalize_email(self, key, value: str) -> str:
        return value.strip().lower()

    @validates("role")
    def _freeze_role(self, key, value):
        if value is None:
            raise ValueError("role is required")
        state = inspect(self)
        if state.persistent and self.role is not None and self.role != value:
            raise ValueError("role cannot be changed once the user is persisted")
        return value

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"


class Technician(Base):
    __tablename__ = "technicians"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    # NULL = техніка не можна призначати
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    user: Mapped[Optional["User"]] = relationship(back_populates="technician_profile")
    tickets: Mapped[List["Ticket"]] = relationship(back_populates="technician", passive_deletes="all")

    @validates("user_id")
    def _link_once(self, key, value):
        if self.user_id is not None and value != self.user_id:
            raise ValueError("technician is already linked to a user")
        return value

    def __repr__(self) -> str:
        return f"<Technician id={self.id} user_id={self.user_id} active={self.is_active}>"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    subcategories: Mapped[List["Subcategory"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="Subcategory.id",
    )


class Subcategory(Base):
    __tablename__ = "subcategories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    category: Mapped["Category"] = relationship(back_populates="subcategories")


class Ticket(TimestampMixin, Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), index=True)
    subcategory_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("subcategories.id"),
        nullable=True,
    )
    priority: Mapped[PriorityEnum] = mapped_column(
        Enum(PriorityEnum, name="priority_enum"),
        default=PriorityEnum.medium,
        nullable=False,
    )
    status: Mapped[TicketStatusEnum] = mapped_column(
        Enum(TicketStatusEnum, name="ticket_status_enum"),
        default=TicketStatusEnum.new,
        nullable=False,
    )
    created_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    # призначення: змінювати лише через Ticket.assignment
    # RESTRICT на обох FK: пара не обнуляється частково
    technician_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("technicians.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    assigned_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # relationships
    category: Mapped["Category"] = relationship()
    subcategory: Mapped[Optional["Subcategory"]] = relationship()
    created_by: Mapped["User"] = relationship(
        back_populates="tickets_created",
        foreign_keys=[created_by_id],
    )
    assigned_user: Mapped[Optional["User"]] = relationship(foreign_keys=[assigned_user_id])
    technician: Mapped[Optional["Technician"]] = relationship(back_populates="tickets")
    messages: Mapped[List["TicketMessage"]] = relationship(
        back_populates="ticket",
        order_by="TicketMessage.id",
    )

    __table_args__ = (
        CheckConstraint(
            "(technician_id IS NULL) = (assigned_user_id IS NULL)",
            name="assignment_pair",
        ),
        Index("ix_tickets_status_priority", "status", "priority"),
        Index("ix_tickets_created_at", "created_at"),
    )

    @validates("created_by_id")
    def _freeze_creator(self, key, value):
        if self.created_by_id is not None and value != self.created_by_id:
            raise ValueError("ticket creator cannot be changed")
        return value

    @property
    def assignment(self) -> Optional[Assignment]:
        if self.technician_id is None or self.assigned_user_id is None:
            return None
        return Assignment(technician_id=self.technician_id, user_id=self.assigned_user_id)

    @assignment.setter
    def assignment(self, value: Optional[Assignment]) -> None:
        if value is None:
            self.technician_id = None
            self.assigned_user_id = None
            return
        if value.technician_id is None or value.user_id is None:
            raise ValueError("assignment needs both technician and user")
        self.technician_id = value.technician_id
        self.assigned_user_id = value.user_id

    @property
    def is_assigned(self) -> bool:
        # "truly assigned" визначається лише акаунтом
        return self.assigned_user_id is not None

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} status={self.status} priority={self.priority}>"


class TicketMessage(Base):
    """Повідомлення в заявці. Тільки додаються, не редагуються і не видаляються."""

    __tablename__ = "ticket_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"),
        index=True,
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[Optional[TicketStatusEnum]] = mapped_column(
        Enum(TicketStatusEnum, name="ticket_status_enum"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    ticket: Mapped["Ticket"] = relationship(back_populates="messages")
    author: Mapped["User"] = relationship()


class Notification(Base):
    """In-app прапорець для користувача (без реальної доставки)."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class SystemSettings(TimestampMixin, Base):
    __tablename__ = "system_settings"

    # завжди один рядок з id = 1
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)

    # General
    app_name: Mapped[str] = mapped_column(String(255), default="Helpdesk", nullable=False)
    support_email: Mapped[str] = mapped_column(String(255), default="support@example.com", nullable=False)
    support_phone: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    default_language: Mapped[str] = mapped_column(String(8), default="en", nullable=False)
    default_theme: Mapped[str] = mapped_column(String(16), default="system", nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)

    # Ticketing
    default_priority: Mapped[PriorityEnum] = mapped_column(
        Enum(PriorityEnum, name="priority_enum"),
        default=PriorityEnum.medium,
        nullable=False,
    )
    default_status: Mapped[TicketStatusEnum] = mapped_column(
        Enum(TicketStatusEnum, name="ticket_status_enum"),
        default=TicketStatusEnum.new,
        nullable=False,
    )
    response_sla_hours: Mapped[int] = mapped_column(Integer, default=24, nullable=False)
    auto_assign_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_client_attachments: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    max_attachment_size_mb: Mapped[int] = mapped_column(Integer, default=10, nullable=False)

    # Notifications
    email_notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sms_notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notify_on_ticket_created: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_on_ticket_assigned: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_on_ticket_replied: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_on_ticket_closed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Security
    password_min_length: Mapped[int] = mapped_column(Integer, default=6, nullable=False)
    require_2fa: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    session_timeout_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    allowed_email_domains: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        default=list,
        nullable=False,
    )
