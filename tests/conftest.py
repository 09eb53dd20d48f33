# tests/conftest.py
import os
import tempfile

# налаштування мають бути в env ДО імпорту app.*
_DB_DIR = tempfile.mkdtemp(prefix="helpdesk-tests-")
_DB_FILE = os.path.join(_DB_DIR, "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_FILE}"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["ALLOW_SELF_SIGNUP"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

from app.core.security import hash_password  # noqa: E402
from app.db import models  # noqa: E402,F401
from app.db.base import Base  # noqa: E402
from app.db.models import (  # noqa: E402
    Category,
    Priority,
    Role,
    Status,
    Subcategory,
    Technician,
    Ticket,
    User,
)
from app.db.session import AsyncSessionLocal  # noqa: E402
from app.main import app  # noqa: E402

PASSWORD = "secret123"
# bcrypt повільний: хешуємо один раз на сесію
PASSWORD_HASH = hash_password(PASSWORD)

_sync_engine = create_engine(f"sqlite:///{_DB_FILE}")


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(_sync_engine)
    Base.metadata.create_all(_sync_engine)
    yield


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
async def session(anyio_backend):
    async with AsyncSessionLocal() as s:
        yield s


class Factory:
    """Прямий запис сутностей у БД для сервісних тестів."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def user(self, role: Role, *, email: Optional[str] = None, full_name: Optional[str] = None) -> User:
        n = self._next()
        return await self._save(
            User(
                email=email or f"{role.value}{n}@example.com",
                password_hash=PASSWORD_HASH,
                role=role,
                full_name=full_name or f"{role.value.title()} {n}",
            )
        )

    async def technician(
        self,
        *,
        user: Optional[User] = None,
        is_active: bool = True,
        full_name: Optional[str] = None,
    ) -> Technician:
        n = self._next()
        return await self._save(
            Technician(
                full_name=full_name or f"Tech {n}",
                email=f"tech{n}@example.com",
                is_active=is_active,
                user_id=user.id if user else None,
            )
        )

    async def linked_technician(self, **kw) -> tuple[User, Technician]:
        u = await self.user(Role.technician)
        return u, await self.technician(user=u, **kw)

    async def category(self, name: Optional[str] = None, *, subcategories: tuple[str, ...] = ()) -> Category:
        n = self._next()
        return await self._save(
            Category(
                name=name or f"Category {n}",
                subcategories=[Subcategory(name=s) for s in subcategories],
            )
        )

    async def ticket(
        self,
        creator: User,
        category: Category,
        *,
        title: str = "Printer is broken",
        description: str = "Paper jam on floor 2",
        status: Status = Status.new,
        priority: Priority = Priority.medium,
        technician: Optional[Technician] = None,
        created_at: Optional[datetime] = None,
    ) -> Ticket:
        t = Ticket(
            title=title,
            description=description,
            category_id=category.id,
            status=status,
            priority=priority,
            created_by_id=creator.id,
        )
        if technician is not None:
            t.technician_id = technician.id
            t.assigned_user_id = technician.user_id
        if created_at is not None:
            t.created_at = created_at
        return await self._save(t)


@pytest.fixture
def factory(session):
    return Factory(session)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple[int, str]] = []
        self.fail = fail

    async def notify(self, user_id: int, message: str) -> None:
        if self.fail:
            raise RuntimeError("sink is down")
        self.sent.append((user_id, message))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)
