# app/core/logging.py
import logging
import logging.config
import uuid
from typing import Any, Mapping
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


def setup_logging(level: str = "INFO") -> None:
    """Єдина конфігурація логів для апки, воркера та Uvicorn."""
    LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": LOG_FORMAT},
        },
        "handlers": {
            "default": {"class": "logging.StreamHandler", "formatter": "plain"},
        },
        "loggers": {
            "": {"handlers": ["default"], "level": level},
            "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    X-Request-ID для трейсингу запитів:
    - бере з вхідного заголовка (якщо є),
    - інакше генерує,
    - повертає у відповіді.
    """

    header_name = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id

        response: Response = await call_next(request)
        response.headers[self.header_name] = request_id
        return response


def log_extra(request: Request) -> Mapping[str, Any]:
    """
    Хелпер для роутерів:
    log.info("ticket_created", extra=log_extra(request))
    """
    rid = getattr(request.state, "request_id", None)
    return {"request_id": rid} if rid else {}
