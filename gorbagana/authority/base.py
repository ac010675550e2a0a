from abc import ABC, abstractmethod
from decimal import Decimal

from gorbagana.games.reconciler import SpinOutcome


class Authority(ABC):
    """Внешний источник настоящего результата спина"""

    @abstractmethod
    async def spin(self, bet_amount: Decimal) -> SpinOutcome:
        """Сделать ставку и вернуть результат. Любая ошибка = спин не состоялся"""
