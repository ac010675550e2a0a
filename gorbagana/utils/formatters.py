from decimal import Decimal, ROUND_DOWN
from typing import FrozenSet, Iterable

from gorbagana.games.reconciler import Grid
from gorbagana.games.symbols import SymbolTable


def format_sol(amount, places: int = 4) -> str:
    """Форматирование суммы в SOL"""
    quant = Decimal(1).scaleb(-places)
    value = Decimal(str(amount)).quantize(quant, rounding=ROUND_DOWN)
    return f"{value} SOL"


def format_bet(amount) -> str:
    """Ставка без лишних нулей: 0.01 SOL, 1 SOL"""
    value = Decimal(str(amount)).normalize()
    return f"{value:f} SOL"


def render_grid(grid: Grid, table: SymbolTable, highlighted_rows: FrozenSet[int] = frozenset()) -> str:
    """Поле 3x3 эмодзи, выигрышный ряд отмечен стрелками"""
    lines = []
    for index, row in enumerate(grid.symbols(table)):
        cells = ' '.join(symbol.emoji for symbol in row)
        if index in highlighted_rows:
            lines.append(f"👉 {cells} 👈")
        else:
            lines.append(f"▫️ {cells} ▫️")
    return '\n'.join(lines)


def render_payline(payline: Iterable[int], table: SymbolTable) -> str:
    return ''.join(table.lookup(identity).emoji for identity in payline)


def render_paytable(table: SymbolTable, bet_amount) -> str:
    """Выплата за три символа при текущей ставке"""
    bet = Decimal(str(bet_amount))
    lines = []
    for symbol in table.by_payout():
        lines.append(
            f"{symbol.emoji * 3}  ×{symbol.payout_multiplier:f} = {format_sol(symbol.payout_multiplier * bet, 3)}"
        )
    return '\n'.join(lines)
