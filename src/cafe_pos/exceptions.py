class CafePOSError(Exception):
    """Базовое исключение кассовой системы."""

    status_code = 500
    default_message = "An error occurred in the cafe POS"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        error_dict = {
            "error": self.__class__.__name__,
            "message": self.message,
        }

        if self.code:
            error_dict["code"] = self.code

        if self.details:
            error_dict["details"] = self.details

        return error_dict


class ValidationError(CafePOSError):
    """Некорректный или неполный запрос."""

    status_code = 400
    default_message = "Validation error"


class NotFoundError(CafePOSError):
    """Запрошенная сущность не существует."""

    status_code = 404
    default_message = "Not found"


class UnavailableError(CafePOSError):
    """Позиция меню или её вариант сняты с продажи."""

    status_code = 400
    default_message = "Item is not available"


class InsufficientStockError(CafePOSError):
    """На складе меньше, чем требуется."""

    status_code = 400
    default_message = "Insufficient stock"


class UnauthorizedError(CafePOSError):
    """Неверные учётные данные администратора."""

    status_code = 401
    default_message = "Invalid admin credentials"


class InvalidStateError(CafePOSError):
    """Операция недопустима в текущем состоянии заказа."""

    status_code = 400
    default_message = "Invalid order state"


class AlreadyVoidedError(InvalidStateError):
    default_message = "Order is already voided"


class PersistenceError(CafePOSError):
    """Неожиданная ошибка базы данных; транзакция откатывается."""

    status_code = 500
    default_message = "Database error"
