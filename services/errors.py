"""
Модуль: `services/errors.py`.
Назначение: Таксономия ошибок сервисного слоя и их HTTP-статусы.

Каждая ошибка несёт вид (`kind`), сообщение и, при необходимости, детали.
Маршруты превращают её в структурированный JSON-ответ (см. utils/api.py).
"""


class ServiceError(Exception):
    """Базовая ошибка сервисного слоя."""

    kind = "ServiceError"
    status_code = 500

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"success": False, "kind": self.kind, "error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(ServiceError):
    """Некорректные или отсутствующие входные данные."""

    kind = "ValidationError"
    status_code = 400

    def __init__(self, message: str = "Ошибка валидации", issues: list[dict] | None = None):
        super().__init__(message)
        self.issues = issues or []

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.issues:
            payload["issues"] = self.issues
        return payload


class Unauthorized(ServiceError):
    kind = "Unauthorized"
    status_code = 401

    def __init__(self, message: str = "Требуется авторизация", details=None):
        super().__init__(message, details)


class Forbidden(ServiceError):
    kind = "Forbidden"
    status_code = 403

    def __init__(self, message: str = "Недостаточно прав", details=None):
        super().__init__(message, details)


class NotFoundError(ServiceError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, message: str = "Не найдено", details=None):
        super().__init__(message, details)


class ForeignMembershipError(NotFoundError):
    """Участие существует, но относится к другой галерее."""

    status_code = 400


class ConflictError(ServiceError):
    kind = "ConflictError"
    status_code = 409


class RateLimited(ServiceError):
    kind = "RateLimited"
    status_code = 429

    def __init__(self, message: str = "Слишком много запросов. Попробуйте позже.", details=None):
        super().__init__(message, details)


class InternalError(ServiceError):
    kind = "InternalError"
    status_code = 500

    def __init__(self, message: str = "Внутренняя ошибка сервера", details=None):
        super().__init__(message, details)
