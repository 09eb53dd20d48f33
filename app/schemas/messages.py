from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.models import Status, TicketMessage


class MessageCreate(BaseModel):
    message: str = Field(min_length=1, max_length=10_000)
    status: Optional[Status] = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    author_id: int
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    message: str
    status: Optional[Status] = None
    created_at: datetime

    @classmethod
    def from_message(cls, m: TicketMessage) -> "MessageOut":
        return cls(
            id=m.id,
            ticket_id=m.ticket_id,
            author_id=m.author_id,
            author_name=m.author.full_name if m.author else None,
            author_email=m.author.email if m.author else None,
            message=m.body,
            status=m.status,
            created_at=m.created_at,
        )
