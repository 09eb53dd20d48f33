# app/db/session.py
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import settings

_is_sqlite = settings.database_url.startswith("sqlite")

# SQLite: без пулу, щоб з'єднання не переживали event loop (TestClient, скрипти)
_engine_kwargs = {"poolclass": NullPool} if _is_sqlite else {"pool_pre_ping": True}

engine = create_async_engine(settings.database_url, echo=False, **_engine_kwargs)

if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: одна сесія на запит."""
    async with AsyncSessionLocal() as session:
        yield session
