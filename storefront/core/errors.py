# storefront/core/errors.py
# Доменные ошибки магазина. Сервисы бросают их вызывающему коду,
# API-слой превращает их в ответ с полем kind (см. storefront/main.py).


class StorefrontError(Exception):
    """Базовая ошибка. kind: дискриминатор для клиента, message: текст для пользователя."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    default_message = "Request failed"

    def to_dict(self) -> dict:
        return {"status": "error", "kind": self.kind, "message": self.message}


class Unauthorized(StorefrontError):
    kind = "unauthorized"
    status_code = 401
    default_message = "You are not authorized to perform this action."


class Forbidden(StorefrontError):
    kind = "forbidden"
    status_code = 403
    default_message = "Insufficient privileges"


class NotFound(StorefrontError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidInput(StorefrontError):
    kind = "invalid_input"
    status_code = 422
    default_message = "Invalid input"


class InvalidTransition(StorefrontError):
    kind = "invalid_transition"
    status_code = 409
    default_message = "Status change is not allowed"


class PersistenceFailure(StorefrontError):
    kind = "persistence_failure"
    status_code = 500
    default_message = "Could not save changes, please try again."


class Conflict(StorefrontError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict with existing data"
