# app/api/routes/auth.py
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import DBDep, UserDep, get_optional_user
from app.core.config import settings
from app.db.models import Role, User
from app.schemas.auth import LoginIn, RegisterIn, TokenOut, UserOut
from app.services.auth import authenticate, make_token_for_user, register_user, serialize_user

router = APIRouter()


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, db: DBDep):
    user = await authenticate(db, email=payload.username, password=payload.password or "")
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return {
        "access_token": make_token_for_user(user),
        "token_type": "bearer",
        "user": UserOut(**serialize_user(user)),
    }


@router.get("/me", response_model=UserOut)
async def me(current: UserDep):
    return UserOut(**serialize_user(current))


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterIn,
    db: DBDep,
    creator: Annotated[User | None, Depends(get_optional_user)],
):
    creator_role = creator.role if creator else None
    if creator_role != Role.admin and not settings.allow_self_signup:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Self sign-up is disabled")

    user = await register_user(
        db,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        full_name=payload.full_name,
        phone=payload.phone,
        department=payload.department,
        creator_role=creator_role,
    )
    return UserOut(**serialize_user(user))
