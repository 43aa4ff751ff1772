"""
Errors — Таксономия ошибок биржи

Все операции синхронны и атомарны: любая ошибка прерывает транзакцию
целиком, частичное состояние не наблюдаемо.

Категории:
- PermissionDenied: неверная identity вызывающего (не администратор, не продавец)
- NotFound: отсутствует листинг, запись владения или ресурс
- AlreadyExists: дубликат листинга / записи владения / набора capabilities
- InsufficientFunds: баланс ниже требуемого порога
- InvalidState: нарушено административное или доменное предусловие

Каждая ошибка несёт непрозрачный код `reason` (snake_case), по которому
внешний tooling принимает решение о повторной отправке транзакции.
"""


class ExchangeError(Exception):
    """
    Базовая ошибка биржи.

    Attributes:
        reason: Непрозрачный код причины (например, 'not_admin')
        details: Человекочитаемое описание
    """

    category = "exchange_error"

    def __init__(self, reason: str, details: str = ""):
        self.reason = reason
        self.details = details
        message = f"{self.category}:{reason}"
        if details:
            message = f"{message} ({details})"
        super().__init__(message)

    @property
    def code(self) -> str:
        """Полный код ошибки в формате 'category:reason'."""
        return f"{self.category}:{self.reason}"


class PermissionDenied(ExchangeError):
    category = "permission_denied"


class NotFound(ExchangeError):
    category = "not_found"


class AlreadyExists(ExchangeError):
    category = "already_exists"


class InsufficientFunds(ExchangeError):
    category = "insufficient_funds"


class InvalidState(ExchangeError):
    category = "invalid_state"
