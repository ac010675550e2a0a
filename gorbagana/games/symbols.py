import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Tuple

from gorbagana.errors import UnknownSymbolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Symbol:
    """Символ барабана"""
    identity: int
    name: str
    emoji: str
    display_weight: int
    payout_multiplier: Decimal


class SymbolTable:
    """
    Неизменяемая таблица символов.

    Идентификаторы плотные: 0..N-1, поэтому поиск - это просто индекс
    в кортеже. Веса и множители задаются один раз при создании.
    """

    def __init__(self, symbols: Iterable[Symbol], default_identity: int):
        ordered = tuple(sorted(symbols, key=lambda s: s.identity))

        if not ordered:
            raise ValueError("Symbol table is empty")

        for index, symbol in enumerate(ordered):
            if symbol.identity != index:
                raise ValueError(f"Symbol identities must be dense 0..N-1, got {symbol.identity} at {index}")
            if symbol.display_weight <= 0:
                raise ValueError(f"Display weight of {symbol.name} must be positive")
            if symbol.payout_multiplier < 0:
                raise ValueError(f"Payout multiplier of {symbol.name} must be non-negative")

        if not 0 <= default_identity < len(ordered):
            raise ValueError(f"Default symbol {default_identity} is not in the table")

        self._symbols: Tuple[Symbol, ...] = ordered
        self._default = ordered[default_identity]
        self._total_weight = sum(s.display_weight for s in ordered)

    def __len__(self) -> int:
        return len(self._symbols)

    @property
    def default(self) -> Symbol:
        return self._default

    @property
    def total_weight(self) -> int:
        return self._total_weight

    def all(self) -> Tuple[Symbol, ...]:
        """Все символы в порядке идентификаторов"""
        return self._symbols

    def by_identity(self, identity: int) -> Symbol:
        """Символ по идентификатору, UnknownSymbolError если его нет"""
        # bool - подкласс int, но идентификатором не является
        if not isinstance(identity, int) or isinstance(identity, bool):
            raise UnknownSymbolError(identity)
        if not 0 <= identity < len(self._symbols):
            raise UnknownSymbolError(identity)
        return self._symbols[identity]

    def lookup(self, identity: int) -> Symbol:
        """Символ по идентификатору с откатом на символ по умолчанию"""
        try:
            return self.by_identity(identity)
        except UnknownSymbolError:
            logger.warning(f"⚠️ Unknown symbol {identity!r}, falling back to {self._default.name}")
            return self._default

    def by_payout(self) -> Tuple[Symbol, ...]:
        """Символы для таблицы выплат: от самого дорогого к дешёвому"""
        return tuple(sorted(self._symbols, key=lambda s: s.payout_multiplier, reverse=True))


# Значения совпадают с программой gorbagana_slots
SYMBOL_TABLE = SymbolTable(
    [
        Symbol(0, 'gorbagana', '👑', 1, Decimal('100')),
        Symbol(1, 'wild', '🃏', 2, Decimal('50')),
        Symbol(2, 'bonusChest', '🧰', 3, Decimal('25')),
        Symbol(3, 'trash', '🗑️', 4, Decimal('20')),
        Symbol(4, 'takeout', '🥡', 5, Decimal('15')),
        Symbol(5, 'fish', '🐟', 6, Decimal('10')),
        Symbol(6, 'rat', '🐀', 7, Decimal('5')),
        Symbol(7, 'banana', '🍌', 8, Decimal('2')),
    ],
    default_identity=7,
)
