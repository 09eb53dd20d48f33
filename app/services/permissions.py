"""
Permission evaluator для заявок.

Тут лише чисті функції без БД: хто що бачить і які зміни може внести.
Сервіс заявок (app.services.tickets) викликає їх перед записом.

Політика навмисно асиметрична:
  - заборонені поля у PATCH тихо відкидаються (без помилки);
  - закриття заявки клієнтом через повідомлення: StatusChangeForbidden.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from app.db.models import CLOSING_STATUSES, Role, Status
from app.services.errors import StatusChangeForbidden


@dataclass(frozen=True)
class Actor:
    """Хто робить запит. Автентифікацію вже зроблено на рівні HTTP."""

    id: int
    role: Role


# які ролі можуть змінювати поле через PATCH
UPDATE_FIELD_ROLES: dict[str, frozenset[Role]] = {
    "description": frozenset({Role.client, Role.admin}),
    "priority": frozenset({Role.client, Role.admin}),
    "status": frozenset({Role.client, Role.technician, Role.admin}),
    "assigned_user_id": frozenset({Role.admin}),
    "due_date": frozenset({Role.admin}),
}

# поля, які можна явно скинути в null
NULLABLE_UPDATE_FIELDS = frozenset({"due_date"})

# що клієнт може виставити прямим PATCH
CLIENT_UPDATE_STATUSES = frozenset({Status.waiting_for_client, Status.closed})


def can_access(
    actor: Actor,
    *,
    created_by_id: int,
    assigned_user_id: Optional[int],
    technician_user_id: Optional[int] = None,
) -> bool:
    """
    Зона доступу:
      - client бачить лише свої заявки;
      - technician: ті, де він призначений (через профіль або акаунт);
      - admin: усе.
    """
    if actor.role == Role.admin:
        return True
    if actor.role == Role.client:
        return created_by_id == actor.id
    if actor.role == Role.technician:
        return actor.id in {assigned_user_id, technician_user_id}
    return False


def allowed_update(role: Role, patch: Mapping[str, Any]) -> dict[str, Any]:
    """
    Повертає лише ті поля з patch, які роль має право застосувати.
    Решта відкидається мовчки.
    """
    allowed: dict[str, Any] = {}
    for field, value in patch.items():
        if role not in UPDATE_FIELD_ROLES.get(field, frozenset()):
            continue
        if value is None and field not in NULLABLE_UPDATE_FIELDS:
            continue
        if field == "status" and role == Role.client and value not in CLIENT_UPDATE_STATUSES:
            continue
        allowed[field] = value
    return allowed


def is_reopening(current: Status, requested: Status) -> bool:
    return requested == Status.in_progress and current in CLOSING_STATUSES


def message_status_change(role: Role, current: Status, requested: Status) -> Optional[Status]:
    """
    Статус, який треба записати разом із повідомленням (None = нічого не міняти).

      - закриття (resolved/closed) клієнтом → StatusChangeForbidden;
      - reopen (in_progress з resolved/closed): будь-яка роль;
      - клієнт ще може поставити waiting_for_client, інше ігнорується;
      - technician/admin: будь-який статус.
    """
    if role != Role.client:
        return requested
    if requested in CLOSING_STATUSES:
        raise StatusChangeForbidden(
            "Clients cannot close tickets. Only technicians and admins can set "
            "status to resolved or closed."
        )
    if is_reopening(current, requested) or requested == Status.waiting_for_client:
        return requested
    return None
