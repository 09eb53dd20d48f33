from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.core.config import settings
from app.core.security import decode_token
from app.db.models import Role, User
from app.services.permissions import Actor

# OAuth2 bearer (для інтеграції з /api/docs)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
# для ендпойнтів, де токен не обов'язковий (реєстрація)
oauth2_optional = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

# Тип для DI сесії БД
DBDep = Annotated[AsyncSession, Depends(get_session)]


async def get_current_user(
    db: DBDep,
    token: Annotated[str, Depends(oauth2_scheme)]
) -> User:
    """
    Декодує Bearer JWT, дістає користувача з БД і перевіряє активність.
    """
    try:
        payload = decode_token(token, settings.jwt_secret)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    res = await db.execute(select(User).where(User.email == payload["sub"]))
    user = res.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")
    return user


UserDep = Annotated[User, Depends(get_current_user)]


async def get_optional_user(
    db: DBDep,
    token: Annotated[str | None, Depends(oauth2_optional)],
) -> User | None:
    if not token:
        return None
    return await get_current_user(db, token)


async def get_actor(current: UserDep) -> Actor:
    """Ідентичність для сервісного шару: (id, role)."""
    return Actor(id=current.id, role=current.role)


ActorDep = Annotated[Actor, Depends(get_actor)]


def require_role(*allowed: Role):
    """
    Пускає лише користувачів, чия роль входить у перелік allowed.
    Приклад: @router.get(..., dependencies=[Depends(require_role(Role.admin))])
    """
    allowed_set = set(allowed)

    async def _guard(current: UserDep) -> User:
        if current.role not in allowed_set:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current

    return _guard


def require_admin():
    return require_role(Role.admin)
