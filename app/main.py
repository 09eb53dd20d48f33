# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import (
    health,
    auth,
    tickets,
    technicians,
    categories,
    settings as settings_routes,
    assignment,
    notifications,
    users,
)

from app.core.config import settings
from app.core.logging import setup_logging, RequestIdMiddleware, log_extra
from app.services.errors import HelpdeskError

setup_logging(settings.log_level)
log = logging.getLogger("app.errors")

app = FastAPI(
    title="Helpdesk",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
)

# ==== Middlewares ====
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


# ==== Доменні помилки → HTTP ====
@app.exception_handler(HelpdeskError)
async def helpdesk_error_handler(request: Request, exc: HelpdeskError):
    log.info(
        "domain_error %s %s -> %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.detail,
        extra=log_extra(request),
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ==== API під /api ====
app.include_router(health.router,          prefix="/api",                  tags=["health"])
app.include_router(auth.router,            prefix="/api/auth",             tags=["auth"])
app.include_router(tickets.router,         prefix="/api/tickets",          tags=["tickets"])
app.include_router(technicians.router,     prefix="/api",                  tags=["technicians"])
app.include_router(categories.router,      prefix="/api/categories",       tags=["categories"])
app.include_router(settings_routes.router, prefix="/api/settings",         tags=["settings"])
app.include_router(assignment.router,      prefix="/api/admin/assignment", tags=["assignment"])
app.include_router(notifications.router,   prefix="/api/notifications",    tags=["notifications"])
app.include_router(users.router,           prefix="/api/users",            tags=["users"])
