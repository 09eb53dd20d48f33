# app/services/notifications.py
import logging
from typing import Any, Callable, Mapping, Protocol

import redis
from rq import Queue
from rq import Retry
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.models import Notification
from app.db.session import AsyncSessionLocal

log = logging.getLogger(__name__)

_queue: Queue | None = None


def _get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.notifications_queue, connection=redis.from_url(settings.redis_url))
    return _queue


def enqueue(event_type: str, payload: Mapping[str, Any]) -> str | None:
    """
    Кладемо подію в чергу: у воркері викликається handle_event.
    Повертає job.id або None (вимкнено або помилка), HTTP-запит не валимо.
    """
    if not settings.notifications_enabled:
        return None
    try:
        job = _get_queue().enqueue(
            "app.workers.rq_worker.handle_event",
            event_type,
            dict(payload),
            job_timeout=60,
            retry=Retry(max=3, interval=[5, 15, 30]),
        )
        return getattr(job, "id", None)
    except Exception as e:
        # Логуємо й не піднімаємо виняток
        log.exception("Failed to enqueue event '%s': %s", event_type, e)
        return None


class NotificationSink(Protocol):
    """notify(user_id, text): fire-and-forget, результат ядро не читає."""

    async def notify(self, user_id: int, message: str) -> None: ...


class InAppNotifier:
    """
    Пише Notification у власній сесії (окрема транзакція від заявки)
    і ставить подію в RQ. Будь-яка помилка лише логується.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def notify(self, user_id: int, message: str) -> None:
        try:
            async with self._session_factory() as db:
                n = Notification(user_id=user_id, message=message)
                db.add(n)
                await db.commit()
                notification_id = n.id
        except SQLAlchemyError:
            log.exception("Failed to store notification for user %s", user_id)
            return
        enqueue("notification.created", {
            "notification_id": notification_id,
            "user_id": user_id,
            "message": message,
        })


def default_notifier() -> InAppNotifier:
    return InAppNotifier(AsyncSessionLocal)
