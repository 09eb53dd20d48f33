# app/api/routes/notifications.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException
from sqlalchemy import select

from ..deps import DBDep, UserDep
from app.db.models import Notification
from app.schemas.notifications import NotificationOut

router = APIRouter()


@router.get("", response_model=list[NotificationOut])
async def list_my_notifications(db: DBDep, current: UserDep, unread_only: bool = False):
    q = select(Notification).where(Notification.user_id == current.id)
    if unread_only:
        q = q.where(Notification.is_read.is_(False))
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
    return (await db.execute(q)).scalars().all()


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(notification_id: int, db: DBDep, current: UserDep):
    n = await db.get(Notification, notification_id)
    if not n or n.user_id != current.id:
        raise HTTPException(status_code=404, detail="Notification not found")
    n.is_read = True
    await db.commit()
    return n
