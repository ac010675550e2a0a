"""
Машина состояний спина.

Idle -> Animating -> Resolving -> Idle, при ошибке -> Error -> Idle
(через error_clear_delay секунд). Пока идёт спин, анимация раз в
animation_interval перерисовывает всё поле, параллельно ждём программу.
Финальное поле применяется, когда и программа ответила, и прошло
min_duration секунд с начала спина.
"""
import asyncio
import logging
import random
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Callable, Iterable, List, Optional, FrozenSet

from gorbagana.authority.base import Authority
from gorbagana.errors import AuthorityError, PreconditionError
from gorbagana.games.reconciler import Grid, OutcomeReconciler, SpinOutcome, draw_local_outcome
from gorbagana.games.sampler import WeightedSampler
from gorbagana.games.symbols import SymbolTable

logger = logging.getLogger(__name__)


class SpinState(str, Enum):
    IDLE = 'idle'
    ANIMATING = 'animating'
    RESOLVING = 'resolving'
    ERROR = 'error'


@dataclass
class SpinSession:
    """Наблюдаемое состояние для интерфейса"""
    grid: Grid
    is_spinning: bool = False
    last_payout: Decimal = Decimal('0')
    highlighted_rows: FrozenSet[int] = field(default_factory=frozenset)
    pending_error: Optional[str] = None
    # None - ещё не крутили, False - результат посчитан локально (демо)
    authoritative: Optional[bool] = None
    bet_amount: Optional[Decimal] = None
    signature: Optional[str] = None


Listener = Callable[[SpinSession], None]


class SpinStateMachine:
    """Один игрок - одна машина"""

    def __init__(
        self,
        table: SymbolTable,
        sampler: WeightedSampler,
        reconciler: OutcomeReconciler,
        authority: Optional[Authority] = None,
        *,
        allowed_bets: Optional[Iterable[Decimal]] = None,
        animation_interval: float = 0.1,
        min_duration: float = 1.5,
        error_clear_delay: float = 5.0,
        rng: Optional[random.Random] = None,
    ):
        self.table = table
        self.sampler = sampler
        self.reconciler = reconciler
        self.authority = authority
        self.allowed_bets = frozenset(Decimal(str(b)) for b in allowed_bets) if allowed_bets else None
        self.animation_interval = animation_interval
        self.min_duration = min_duration
        self.error_clear_delay = error_clear_delay
        self.rng = rng or random.Random()

        self.connected = False
        self.balance = Decimal('0')

        self.session = SpinSession(grid=Grid.random(sampler))
        self._state = SpinState.IDLE
        self._listeners: List[Listener] = []
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> SpinState:
        return self._state

    @property
    def local_mode(self) -> bool:
        return self.authority is None

    def set_wallet(self, connected: bool, balance: Decimal):
        """Интерфейс сообщает, подключён ли кошелёк и сколько на нём"""
        self.connected = connected
        self.balance = Decimal(str(balance))

    def add_listener(self, callback: Listener):
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def close(self):
        self._cancel_clear()

    async def start_spin(self, bet_amount) -> SpinSession:
        """
        Запустить спин и дождаться его завершения.

        PreconditionError - спин не начался. Ошибки программы наружу не
        выходят: они попадают в session.pending_error.
        """
        try:
            bet = Decimal(str(bet_amount))
        except InvalidOperation:
            # мусор вместо суммы отклоняется обычной проверкой ставки
            bet = Decimal('NaN')

        if self.session.is_spinning:
            raise PreconditionError('Spin already in progress')

        self._check_preconditions(bet)

        pre_spin_grid = self.session.grid
        self._cancel_clear()

        self.session.is_spinning = True
        self.session.last_payout = Decimal('0')
        self.session.highlighted_rows = frozenset()
        self.session.pending_error = None
        self.session.bet_amount = bet
        self.session.signature = None
        self._state = SpinState.ANIMATING
        self._publish()

        logger.info(f"🎰 Spin started: bet={bet}, mode={'local' if self.local_mode else 'program'}")

        loop = asyncio.get_running_loop()
        started_at = loop.time()

        try:
            async with self._animation():
                outcome = await self._resolve(bet)
                self._state = SpinState.RESOLVING

                remaining = self.min_duration - (loop.time() - started_at)
                if remaining > 0:
                    await asyncio.sleep(remaining)
        except asyncio.CancelledError:
            self.session.grid = pre_spin_grid
            self.session.is_spinning = False
            self._state = SpinState.IDLE
            self._publish()
            raise
        except Exception as e:
            self._fail(pre_spin_grid, e)
            return self.session

        result = self.reconciler.reconcile(outcome, bet)

        self.session.grid = result.grid
        self.session.last_payout = result.payout_amount
        self.session.highlighted_rows = result.highlighted_rows
        self.session.authoritative = result.authoritative
        self.session.signature = outcome.signature
        self.session.is_spinning = False
        self._state = SpinState.IDLE
        self._publish()

        logger.info(
            f"✅ Spin resolved: payline={list(result.grid.payline)}, payout={result.payout_amount}, "
            f"authoritative={result.authoritative}"
        )

        return self.session

    def _check_preconditions(self, bet: Decimal):
        if not self.connected:
            self._reject('Please connect your wallet first')
        if not bet.is_finite() or bet <= 0 or (self.allowed_bets is not None and bet not in self.allowed_bets):
            self._reject('Invalid bet amount')
        if self.balance < bet:
            self._reject('Insufficient balance')

    def _reject(self, message: str):
        self._set_error(message)
        self._publish()
        raise PreconditionError(message)

    async def _resolve(self, bet: Decimal) -> SpinOutcome:
        if self.authority is None:
            outcome = draw_local_outcome(self.table, self.rng)
        else:
            outcome = await self.authority.spin(bet)
        if not isinstance(outcome, SpinOutcome):
            raise AuthorityError(f"Unexpected outcome type: {type(outcome).__name__}")
        return outcome.validate()

    @asynccontextmanager
    async def _animation(self):
        """Анимация живёт ровно столько, сколько блок with"""
        task = asyncio.create_task(self._animate())
        try:
            yield task
        finally:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _animate(self):
        while True:
            await asyncio.sleep(self.animation_interval)
            self.session.grid = Grid.random(self.sampler)
            self._publish()

    def report_error(self, error: Exception) -> SpinSession:
        """
        Ошибка до начала спина (например, не загрузился баланс кошелька).

        Идёт тем же путём, что и отказ программы: pending_error,
        состояние ERROR, автосброс. Поле не меняется.
        """
        if self.session.is_spinning:
            raise PreconditionError('Spin already in progress')
        self._fail(self.session.grid, error)
        return self.session

    def _fail(self, pre_spin_grid: Grid, error: Exception):
        logger.error(f"❌ Spin failed: {error}")

        self.session.grid = pre_spin_grid
        self.session.is_spinning = False
        self.session.last_payout = Decimal('0')
        self.session.highlighted_rows = frozenset()
        self._state = SpinState.ERROR
        self._set_error(str(error) or 'Spin failed')
        self._publish()

    def _set_error(self, message: str):
        self._cancel_clear()
        self.session.pending_error = message
        loop = asyncio.get_running_loop()
        self._clear_handle = loop.call_later(self.error_clear_delay, self._clear_error)

    def _clear_error(self):
        self._clear_handle = None
        self.session.pending_error = None
        if self._state == SpinState.ERROR:
            self._state = SpinState.IDLE
        self._publish()

    def _cancel_clear(self):
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    def _publish(self):
        for callback in list(self._listeners):
            try:
                callback(self.session)
            except Exception:
                logger.exception("Spin listener failed")
