"""
Доменні помилки сервісного шару.

Роутери їх не ловлять: app.main реєструє один handler, який перетворює
HelpdeskError на JSON {"detail": ...} з відповідним HTTP-кодом.
Помилки БД (SQLAlchemyError) сюди не загортаються і летять далі як є.
"""


class HelpdeskError(Exception):
    status_code = 400
    default_detail = "Bad request"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(HelpdeskError):
    """Сутності немає АБО вона поза зоною доступу (свідомо не розрізняємо)."""

    status_code = 404
    default_detail = "Not found"


class Forbidden(HelpdeskError):
    status_code = 403
    default_detail = "Forbidden"


class StatusChangeForbidden(Forbidden):
    default_detail = "Status change is not allowed"


class ValidationFailure(HelpdeskError):
    status_code = 400
    default_detail = "Validation failed"


class Conflict(HelpdeskError):
    status_code = 409
    default_detail = "Conflict"
