# app/workers/rq_worker.py
import logging
import json
import hmac, hashlib
from typing import Any, Callable, Mapping

import redis
import requests
from rq import Queue, Worker

from app.core.config import settings
from app.core.logging import setup_logging

logger = logging.getLogger("worker.notifications")


def _sign(payload: Mapping[str, Any]) -> str | None:
    if not settings.webhook_secret:
        return None
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hmac.new(settings.webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _post(url: str, event_type: str, payload: Mapping[str, Any]) -> None:
    if not url:
        logger.debug("webhook_url_missing event=%s", event_type)
        return
    headers = {"Content-Type": "application/json", "X-Helpdesk-Event": event_type}
    sig = _sign(payload)
    if sig:
        headers["X-Helpdesk-Signature"] = f"sha256={sig}"
    r = requests.post(url, json=payload, headers=headers, timeout=10)
    logger.info("webhook_sent event=%s status=%s", event_type, r.status_code)


def send_mail_mock(user_id: Any, subject: str, body: str) -> None:
    # реальної доставки немає, лише слід у логах
    logger.info("SEND_MAIL user=%s subject=%r body_len=%s", user_id, subject, len(body))


def on_notification_created(payload: Mapping[str, Any]) -> None:
    user_id = payload.get("user_id")
    message = payload.get("message") or ""
    logger.info("notification_created id=%s user=%s", payload.get("notification_id"), user_id)
    if user_id is not None:
        send_mail_mock(user_id, "Helpdesk notification", message)
    _post(settings.webhook_url or "", "notification.created", payload)


EVENT_HANDLERS: dict[str, Callable[[Mapping[str, Any]], None]] = {
    "notification.created": on_notification_created,
}


def handle_event(event_type: str, payload: Mapping[str, Any] | None = None) -> None:
    handler = EVENT_HANDLERS.get(event_type)
    if not handler:
        logger.warning("unknown_event event=%s", event_type)
        return
    handler(payload or {})


def main() -> None:
    setup_logging(settings.log_level)
    logger.info("worker_starting queue=%s redis=%s", settings.notifications_queue, settings.redis_url)
    conn = redis.from_url(settings.redis_url)
    queue = Queue(settings.notifications_queue, connection=conn)
    worker = Worker([queue], connection=conn, name="notifications-worker")
    worker.work(logging_level=logging.INFO)


if __name__ == "__main__":
    main()
