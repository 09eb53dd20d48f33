# app/services/users.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Role, User
from app.services.search import LIKE_ESCAPE, contains_pattern


async def list_users(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    role: Optional[Role] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[User], int]:
    """Сторінка акаунтів (за ПІБ, потім email) і загальна кількість під фільтром."""
    stmt = select(User)
    if search and search.strip():
        pattern = contains_pattern(search.strip())
        stmt = stmt.where(
            or_(
                User.email.ilike(pattern, escape=LIKE_ESCAPE),
                User.full_name.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    if role is not None:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active.is_(is_active))

    total = (await db.execute(stmt.with_only_columns(func.count(User.id)))).scalar_one()
    rows = await db.execute(
        stmt.order_by(User.full_name, User.email).limit(limit).offset((page - 1) * limit)
    )
    return list(rows.scalars().all()), int(total or 0)


async def list_technician_accounts(db: AsyncSession) -> list[User]:
    q = select(User).where(User.role == Role.technician).order_by(User.full_name, User.email)
    return list((await db.execute(q)).scalars().all())
