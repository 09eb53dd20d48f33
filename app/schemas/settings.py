from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.db.models import Priority, Status


class SystemSettingsBase(BaseModel):
    app_name: str = Field(min_length=1, max_length=255)
    support_email: EmailStr
    support_phone: str = ""
    default_language: Literal["en", "fa", "uk"] = "en"
    default_theme: Literal["light", "dark", "system"] = "system"
    timezone: str = "UTC"

    default_priority: Priority = Priority.medium
    default_status: Status = Status.new
    response_sla_hours: int = Field(default=24, ge=1)
    auto_assign_enabled: bool = False
    allow_client_attachments: bool = True
    max_attachment_size_mb: int = Field(default=10, ge=1)

    email_notifications_enabled: bool = True
    sms_notifications_enabled: bool = False
    notify_on_ticket_created: bool = True
    notify_on_ticket_assigned: bool = True
    notify_on_ticket_replied: bool = True
    notify_on_ticket_closed: bool = True

    password_min_length: int = Field(default=6, ge=4, le=128)
    require_2fa: bool = False
    session_timeout_minutes: int = Field(default=60, ge=1)
    allowed_email_domains: List[str] = Field(default_factory=list)


class SystemSettingsIn(SystemSettingsBase):
    pass


class SystemSettingsOut(SystemSettingsBase):
    model_config = ConfigDict(from_attributes=True)

    # у БД може лежати будь-що, тому на виході не валідуємо email
    support_email: str


class SmartAssignmentStatus(BaseModel):
    enabled: bool


class SmartAssignmentRunOut(BaseModel):
    assigned_count: int
    message: str
