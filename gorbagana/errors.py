from typing import Optional


class SlotsError(Exception):
    """Базовая ошибка слот-машины"""


class PreconditionError(SlotsError):
    """Спин отклонён до изменения состояния (нет кошелька, уже крутим, мало баланса)"""


class AuthorityError(SlotsError):
    """Внешний источник результата (программа) вернул ошибку или недоступен"""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class UnknownSymbolError(SlotsError, LookupError):
    """Идентификатор символа вне таблицы"""

    def __init__(self, identity):
        super().__init__(f"Unknown symbol identity: {identity!r}")
        self.identity = identity
