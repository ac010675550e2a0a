"""
Сборка финального поля по результату программы
"""
import logging
import random
from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet, Optional, Sequence, Tuple

from gorbagana.errors import AuthorityError, UnknownSymbolError
from gorbagana.games.sampler import WeightedSampler
from gorbagana.games.symbols import Symbol, SymbolTable

logger = logging.getLogger(__name__)

GRID_ROWS = 3
GRID_COLS = 3

# Средний ряд - единственная линия выплат
PAYLINE_ROW = 1


@dataclass(frozen=True)
class Grid:
    """Поле 3x3 из идентификаторов символов"""
    rows: Tuple[Tuple[int, ...], ...]

    def __post_init__(self):
        if len(self.rows) != GRID_ROWS or any(len(row) != GRID_COLS for row in self.rows):
            raise ValueError(f"Grid must be {GRID_ROWS}x{GRID_COLS}")

    @classmethod
    def random(cls, sampler: WeightedSampler) -> 'Grid':
        return cls(sampler.sample_grid(GRID_ROWS, GRID_COLS))

    @property
    def payline(self) -> Tuple[int, ...]:
        return self.rows[PAYLINE_ROW]

    def row(self, index: int) -> Tuple[int, ...]:
        return self.rows[index]

    def symbols(self, table: SymbolTable) -> Tuple[Tuple[Symbol, ...], ...]:
        return tuple(tuple(table.lookup(identity) for identity in row) for row in self.rows)


@dataclass(frozen=True)
class SpinOutcome:
    """Результат спина: три символа линии и выплата"""
    payline_symbols: Tuple[int, ...]
    payout_amount: Decimal = Decimal('0')
    authoritative: bool = True
    signature: Optional[str] = None

    def validate(self) -> 'SpinOutcome':
        """Проверить форму ответа (не диапазон символов - для этого есть откат)"""
        if len(self.payline_symbols) != GRID_COLS:
            raise AuthorityError(f"Outcome must carry {GRID_COLS} symbols, got {len(self.payline_symbols)}")
        for identity in self.payline_symbols:
            if not isinstance(identity, int) or isinstance(identity, bool):
                raise AuthorityError(f"Outcome symbol must be an integer, got {identity!r}")
        if self.payout_amount < 0:
            raise AuthorityError(f"Outcome payout must be non-negative, got {self.payout_amount}")
        return self


@dataclass(frozen=True)
class Reconciliation:
    grid: Grid
    payout_amount: Decimal
    highlighted_rows: FrozenSet[int] = field(default_factory=frozenset)
    authoritative: bool = True


def draw_local_outcome(table: SymbolTable, rng: Optional[random.Random] = None) -> SpinOutcome:
    """
    Локальный результат для демо-режима (без программы).

    Символы линии берутся равновероятно, без весов. Выплату считает
    OutcomeReconciler.local_payout.
    """
    rng = rng or random.Random()
    symbols = tuple(rng.randrange(len(table)) for _ in range(GRID_COLS))
    return SpinOutcome(payline_symbols=symbols, payout_amount=Decimal('0'), authoritative=False)


class OutcomeReconciler:
    """Превращает SpinOutcome + ставку в поле, выплату и подсветку"""

    def __init__(self, table: SymbolTable, sampler: WeightedSampler):
        self.table = table
        self.sampler = sampler

    def local_payout(self, payline: Sequence[int], bet_amount: Decimal) -> Decimal:
        """Выплата только за три одинаковых символа"""
        first = payline[0]
        if any(identity != first for identity in payline[1:]):
            return Decimal('0')
        try:
            symbol = self.table.by_identity(first)
        except UnknownSymbolError:
            return Decimal('0')
        return symbol.payout_multiplier * Decimal(bet_amount)

    def reconcile(self, outcome: SpinOutcome, bet_amount: Decimal) -> Reconciliation:
        payline = tuple(self.table.lookup(identity).identity for identity in outcome.payline_symbols)

        # Верхний и нижний ряды - только для красоты
        grid = Grid((
            self.sampler.sample_row(GRID_COLS),
            payline,
            self.sampler.sample_row(GRID_COLS),
        ))

        if outcome.authoritative:
            payout = Decimal(outcome.payout_amount)
        else:
            payout = self.local_payout(outcome.payline_symbols, bet_amount)

        highlighted = frozenset({PAYLINE_ROW}) if payout > 0 else frozenset()

        return Reconciliation(
            grid=grid,
            payout_amount=payout,
            highlighted_rows=highlighted,
            authoritative=outcome.authoritative,
        )
