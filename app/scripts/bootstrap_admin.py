from __future__ import annotations

import argparse
import asyncio
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import hash_password
from app.db.models import Category, Role, Subcategory, Technician, User
from app.db.session import AsyncSessionLocal, engine

DEMO_TECHNICIAN_EMAIL = "technician@example.com"
DEMO_CLIENT_EMAIL = "client@example.com"
DEFAULT_CATEGORY = "General"


# ---------- helpers ----------
async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    res = await db.execute(select(User).where(User.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def _ensure_user(
    db: AsyncSession,
    *,
    email: str,
    role: Role,
    password_plain: str,
    full_name: Optional[str],
) -> User:
    """
    Якщо користувача немає, створює його.
    Якщо є, лише активує (пароль і роль не чіпає, роль незмінна).
    """
    user = await _get_user_by_email(db, email)

    if user is None:
        user = User(
            email=email,
            password_hash=hash_password(password_plain),
            role=role,
            full_name=full_name,
            is_active=True,
        )
        db.add(user)
        await db.commit()
        print(f"[bootstrap] створено користувача: {email} ({role.value})")
        return user

    if user.role != role:
        print(f"[bootstrap] УВАГА: {email} вже існує з роллю {user.role.value}, очікувалась {role.value}")
    if not user.is_active:
        await db.execute(update(User).where(User.id == user.id).values(is_active=True))
        await db.commit()
        print(f"[bootstrap] активовано користувача: {email}")
    else:
        print(f"[bootstrap] існує без змін: {email} ({user.role.value})")
    return user


async def _ensure_technician_profile(db: AsyncSession, user: User) -> Technician:
    """Профіль техніка, прив'язаний до акаунта (інакше автопризначення його не бачить)."""
    res = await db.execute(select(Technician).where(Technician.user_id == user.id))
    tech = res.scalar_one_or_none()
    if tech is not None:
        print(f"[bootstrap] профіль техніка вже є: id={tech.id}")
        return tech

    tech = Technician(
        full_name=user.full_name or user.email,
        email=user.email,
        is_active=True,
        user_id=user.id,
    )
    db.add(tech)
    await db.commit()
    print(f"[bootstrap] створено профіль техніка id={tech.id} для {user.email}")
    return tech


async def _ensure_default_category(db: AsyncSession) -> None:
    res = await db.execute(select(Category).where(Category.name == DEFAULT_CATEGORY))
    if res.scalar_one_or_none() is not None:
        return
    db.add(
        Category(
            name=DEFAULT_CATEGORY,
            description="Загальні питання",
            subcategories=[Subcategory(name="Other")],
        )
    )
    await db.commit()
    print(f"[bootstrap] створено категорію: {DEFAULT_CATEGORY}")


async def _seed(
    db: AsyncSession,
    admin_email: str,
    admin_password: str,
    admin_name: Optional[str],
    make_demo_technician: bool,
    make_demo_client: bool,
) -> None:
    # 1) admin
    await _ensure_user(
        db,
        email=admin_email,
        role=Role.admin,
        password_plain=admin_password,
        full_name=admin_name,
    )

    # 2) demo technician (акаунт + профіль)
    if make_demo_technician:
        tech_user = await _ensure_user(
            db,
            email=DEMO_TECHNICIAN_EMAIL,
            role=Role.technician,
            password_plain="Technician123!",
            full_name="Technician",
        )
        await _ensure_technician_profile(db, tech_user)

    # 3) demo client
    if make_demo_client:
        await _ensure_user(
            db,
            email=DEMO_CLIENT_EMAIL,
            role=Role.client,
            password_plain="Client123!",
            full_name="Client",
        )

    # 4) без категорії клієнт не створить заявку
    await _ensure_default_category(db)

    print("[bootstrap] завершено ✅")


async def _run(**kwargs) -> None:
    async with AsyncSessionLocal() as db:
        await _seed(db, **kwargs)
    await engine.dispose()


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed admin, демо-техніка, демо-клієнта та категорію")
    p.add_argument("email", nargs="?", default=settings.admin_email, help="Email адміністратора")
    p.add_argument("password", nargs="?", default=settings.admin_password, help="Пароль адміністратора")
    p.add_argument("-n", "--name", default=settings.admin_name, help="Ім'я адміністратора")

    p.add_argument("--demo-technician", dest="demo_technician", action="store_true", help="Створити demo-техніка")
    p.add_argument("--no-demo-technician", dest="demo_technician", action="store_false", help="Не створювати demo-техніка")
    p.set_defaults(demo_technician=settings.create_demo_technician)

    p.add_argument("--demo-client", dest="demo_client", action="store_true", help="Створити demo-клієнта")
    p.add_argument("--no-demo-client", dest="demo_client", action="store_false", help="Не створювати demo-клієнта")
    p.set_defaults(demo_client=settings.create_demo_client)

    return p.parse_args()


def main() -> None:
    args = _parse_args()

    if not args.email:
        raise SystemExit("Помилка: не задано email адміністратора (аргумент або ADMIN_EMAIL у .env)")
    if not args.password:
        raise SystemExit("Помилка: не задано пароль адміністратора (аргумент або ADMIN_PASSWORD у .env)")

    asyncio.run(
        _run(
            admin_email=args.email,
            admin_password=args.password,
            admin_name=args.name,
            make_demo_technician=args.demo_technician,
            make_demo_client=args.demo_client,
        )
    )


if __name__ == "__main__":
    main()
