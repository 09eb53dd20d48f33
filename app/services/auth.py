# app/services/auth.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import verify_password, hash_password, create_access_token
from app.db.models import Role, User
from app.services.errors import Conflict, Forbidden, ValidationFailure
from app.services.system_settings import get_system_settings

log = logging.getLogger(__name__)


class RoleForbidden(Forbidden):
    default_detail = "Only an admin can create admin accounts"


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def authenticate(db: AsyncSession, *, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def register_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    role: Role,
    full_name: str | None = None,
    phone: str | None = None,
    department: str | None = None,
    creator_role: Role | None = None,
) -> User:
    """
    Реєстрація з явною роллю (роль ніколи не підставляється за замовчуванням).
    Адміна може створити лише адмін, або це найперший користувач системи.
    """
    if role == Role.admin and creator_role != Role.admin:
        users_total = (await db.execute(select(func.count()).select_from(User))).scalar_one()
        if users_total > 0:
            raise RoleForbidden()

    sys_settings = await get_system_settings(db)
    if len(password) < sys_settings.password_min_length:
        raise ValidationFailure(
            f"Password must be at least {sys_settings.password_min_length} characters"
        )
    domains = [d.lower() for d in (sys_settings.allowed_email_domains or [])]
    if domains and email.rsplit("@", 1)[-1].lower() not in domains:
        raise ValidationFailure("Email domain is not allowed")

    if await get_user_by_email(db, email):
        raise Conflict("User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role,
        full_name=full_name,
        phone=phone,
        department=department,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    log.info("user_registered id=%s role=%s", user.id, user.role.value)
    return user


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role.value,
        "full_name": user.full_name,
        "phone": user.phone,
        "department": user.department,
        "is_active": user.is_active,
    }


def make_token_for_user(user: User) -> str:
    return create_access_token(
        subject=user.email,
        user_id=user.id,
        role=user.role.value,
        secret=settings.jwt_secret,
        expires_minutes=settings.jwt_expires_min,
    )
