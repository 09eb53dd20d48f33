# app/api/routes/categories.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..deps import DBDep, UserDep, require_admin
from app.db.models import Role
from app.schemas.categories import (
    CategoryIn,
    CategoryOut,
    CategoryPage,
    CategoryUpdate,
    SubcategoryIn,
    SubcategoryOut,
)
from app.services import categories as category_service

router = APIRouter()
admin_only = [Depends(require_admin())]


@router.get("", response_model=list[CategoryOut])
async def list_categories(db: DBDep, current: UserDep):
    # неактивні бачить лише адмін
    rows = await category_service.list_categories(
        db, include_inactive=current.role == Role.admin
    )
    if current.role != Role.admin:
        return [
            CategoryOut.model_validate(c).model_copy(
                update={"subcategories": [
                    SubcategoryOut.model_validate(s) for s in c.subcategories if s.is_active
                ]}
            )
            for c in rows
        ]
    return rows


# ДО /{category_id}, інакше "admin" піде як id
@router.get("/admin", response_model=CategoryPage, dependencies=admin_only)
async def list_admin_categories(
    db: DBDep,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    q: Optional[str] = Query(None, description="пошук по назві/опису"),
):
    items, total = await category_service.list_admin_categories(db, search=q, page=page, limit=limit)
    return CategoryPage(
        items=[CategoryOut.model_validate(c) for c in items],
        total=total,
        page=page,
        limit=limit,
    )


@router.post(
    "",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=admin_only,
)
async def create_category(payload: CategoryIn, db: DBDep):
    return await category_service.create_category(
        db,
        name=payload.name,
        description=payload.description,
        is_active=payload.is_active,
        subcategories=[sc.model_dump() for sc in payload.subcategories],
    )


@router.put("/{category_id}", response_model=CategoryOut, dependencies=admin_only)
async def update_category(category_id: int, payload: CategoryUpdate, db: DBDep):
    return await category_service.update_category(db, category_id, **payload.model_dump())


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=admin_only,
)
async def delete_category(category_id: int, db: DBDep):
    await category_service.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{category_id}/subcategories",
    response_model=list[SubcategoryOut],
    dependencies=admin_only,
)
async def list_subcategories(category_id: int, db: DBDep):
    return await category_service.list_subcategories(db, category_id)


@router.post(
    "/{category_id}/subcategories",
    response_model=SubcategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=admin_only,
)
async def create_subcategory(category_id: int, payload: SubcategoryIn, db: DBDep):
    return await category_service.create_subcategory(db, category_id, **payload.model_dump())


@router.put(
    "/subcategories/{subcategory_id}",
    response_model=SubcategoryOut,
    dependencies=admin_only,
)
async def update_subcategory(subcategory_id: int, payload: SubcategoryIn, db: DBDep):
    return await category_service.update_subcategory(db, subcategory_id, **payload.model_dump())


@router.delete(
    "/subcategories/{subcategory_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=admin_only,
)
async def delete_subcategory(subcategory_id: int, db: DBDep):
    await category_service.delete_subcategory(db, subcategory_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
