# app/services/categories.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import Category, Subcategory, Ticket
from app.services.errors import Conflict, NotFound, ValidationFailure
from app.services.search import LIKE_ESCAPE, contains_pattern

log = logging.getLogger(__name__)


async def list_categories(db: AsyncSession, *, include_inactive: bool = False) -> list[Category]:
    q = select(Category).options(selectinload(Category.subcategories)).order_by(Category.name)
    if not include_inactive:
        q = q.where(Category.is_active.is_(True))
    return list((await db.execute(q)).scalars().all())


async def list_admin_categories(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Category], int]:
    """Сторінка категорій для адміна (включно з неактивними) і загальна кількість."""
    q = select(Category)
    if search and search.strip():
        pattern = contains_pattern(search.strip())
        q = q.where(
            or_(
                Category.name.ilike(pattern, escape=LIKE_ESCAPE),
                Category.description.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )

    total = (await db.execute(q.with_only_columns(func.count(Category.id)))).scalar_one()
    rows = await db.execute(
        q.options(selectinload(Category.subcategories))
        .order_by(Category.name)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return list(rows.scalars().all()), int(total or 0)


async def _get_category(db: AsyncSession, category_id: int) -> Category:
    q = (
        select(Category)
        .options(selectinload(Category.subcategories))
        .where(Category.id == category_id)
        .execution_options(populate_existing=True)
    )
    c = (await db.execute(q)).scalar_one_or_none()
    if c is None:
        raise NotFound("Category not found")
    return c


async def _ensure_unique_name(db: AsyncSession, name: str, *, exclude_id: Optional[int] = None) -> None:
    q = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        q = q.where(Category.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise Conflict(f"Category with name '{name}' already exists")


async def _ensure_unique_subcategory_name(
    db: AsyncSession, category_id: int, name: str, *, exclude_id: Optional[int] = None
) -> None:
    q = select(Subcategory.id).where(Subcategory.category_id == category_id, Subcategory.name == name)
    if exclude_id is not None:
        q = q.where(Subcategory.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise Conflict(f"Subcategory with name '{name}' already exists in this category")


async def create_category(
    db: AsyncSession,
    *,
    name: str,
    description: Optional[str] = None,
    is_active: bool = True,
    subcategories: Optional[list[dict]] = None,
) -> Category:
    await _ensure_unique_name(db, name)

    c = Category(
        name=name,
        description=description,
        is_active=is_active,
        subcategories=[Subcategory(**sc) for sc in (subcategories or [])],
    )
    db.add(c)
    await db.commit()
    return c


async def update_category(
    db: AsyncSession,
    category_id: int,
    *,
    name: str,
    description: Optional[str] = None,
    is_active: bool = True,
) -> Category:
    """Підкатегорії тут не змінюються, для них окремі операції."""
    c = await _get_category(db, category_id)
    await _ensure_unique_name(db, name, exclude_id=c.id)

    c.name = name
    c.description = description
    c.is_active = is_active
    await db.commit()
    return c


async def _used_by_tickets(db: AsyncSession, column, value: int) -> bool:
    return (await db.execute(select(Ticket.id).where(column == value).limit(1))).first() is not None


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """
    Видаляється лише порожня категорія: без заявок і без підкатегорій.
    Категорію із заявками можна тільки деактивувати.
    """
    c = await _get_category(db, category_id)
    if await _used_by_tickets(db, Ticket.category_id, c.id):
        raise ValidationFailure(
            "Cannot delete category that is used by tickets. Consider deactivating it instead."
        )
    if c.subcategories:
        raise ValidationFailure(
            "Cannot delete category that has subcategories. Please delete subcategories first."
        )
    await db.delete(c)
    await db.commit()
    log.info("category_deleted id=%s name=%s", category_id, c.name)


async def list_subcategories(db: AsyncSession, category_id: int) -> list[Subcategory]:
    c = await _get_category(db, category_id)
    return list(c.subcategories)


async def create_subcategory(
    db: AsyncSession,
    category_id: int,
    *,
    name: str,
    description: Optional[str] = None,
    is_active: bool = True,
) -> Subcategory:
    if await db.get(Category, category_id) is None:
        raise NotFound("Category not found")
    await _ensure_unique_subcategory_name(db, category_id, name)

    sc = Subcategory(category_id=category_id, name=name, description=description, is_active=is_active)
    db.add(sc)
    await db.commit()
    return sc


async def _get_subcategory(db: AsyncSession, subcategory_id: int) -> Subcategory:
    sc = await db.get(Subcategory, subcategory_id)
    if sc is None:
        raise NotFound("Subcategory not found")
    return sc


async def update_subcategory(
    db: AsyncSession,
    subcategory_id: int,
    *,
    name: str,
    description: Optional[str] = None,
    is_active: bool = True,
) -> Subcategory:
    sc = await _get_subcategory(db, subcategory_id)
    await _ensure_unique_subcategory_name(db, sc.category_id, name, exclude_id=sc.id)

    sc.name = name
    sc.description = description
    sc.is_active = is_active
    await db.commit()
    return sc


async def delete_subcategory(db: AsyncSession, subcategory_id: int) -> None:
    sc = await _get_subcategory(db, subcategory_id)
    if await _used_by_tickets(db, Ticket.subcategory_id, sc.id):
        raise ValidationFailure(
            "Cannot delete subcategory that is used by tickets. Consider deactivating it instead."
        )
    await db.delete(sc)
    await db.commit()


async def resolve_category(
    db: AsyncSession, category_id: int, subcategory_id: Optional[int]
) -> tuple[Category, Optional[Subcategory]]:
    """
    Перевірка посилань заявки: категорія має існувати,
    підкатегорія (якщо задана) має існувати й належати цій категорії.
    """
    category = await db.get(Category, category_id)
    if category is None:
        raise ValidationFailure(f"Category {category_id} does not exist")
    if subcategory_id is None:
        return category, None
    sub = await db.get(Subcategory, subcategory_id)
    if sub is None or sub.category_id != category.id:
        raise ValidationFailure(
            f"Subcategory {subcategory_id} does not exist in category {category_id}"
        )
    return category, sub
