import random
from typing import List, Optional, Tuple

from gorbagana.games.symbols import Symbol, SymbolTable


class WeightedSampler:
    """Случайные символы для анимации барабанов (только визуал, на выплату не влияет)"""

    def __init__(self, table: SymbolTable, rng: Optional[random.Random] = None):
        self.table = table
        self.rng = rng or random.Random()

        # Каждый символ повторяется display_weight раз
        pool: List[Symbol] = []
        for symbol in table.all():
            pool.extend([symbol] * symbol.display_weight)
        self._pool: Tuple[Symbol, ...] = tuple(pool)

    @property
    def pool_size(self) -> int:
        return len(self._pool)

    def sample(self) -> Symbol:
        return self._pool[self.rng.randrange(len(self._pool))]

    def sample_row(self, cols: int = 3) -> Tuple[int, ...]:
        return tuple(self.sample().identity for _ in range(cols))

    def sample_grid(self, rows: int = 3, cols: int = 3) -> Tuple[Tuple[int, ...], ...]:
        return tuple(self.sample_row(cols) for _ in range(rows))
