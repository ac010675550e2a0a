import logging
import random
from decimal import Decimal
from typing import Dict, List, Optional

import aiohttp

from gorbagana.authority.program import ProgramAuthority
from gorbagana.config import settings
from gorbagana.errors import AuthorityError
from gorbagana.games.reconciler import OutcomeReconciler
from gorbagana.games.sampler import WeightedSampler
from gorbagana.games.spin_machine import SpinSession, SpinState, SpinStateMachine
from gorbagana.games.symbols import SYMBOL_TABLE, SymbolTable
from gorbagana.models_redis import Player, SpinRecord
from gorbagana.redis_db import db
from gorbagana.services.wallet_service import wallet_service

logger = logging.getLogger(__name__)


class SpinService:
    """Машины спинов игроков и всё, что вокруг них: баланс, расчёт, история"""

    def __init__(self, table: SymbolTable = SYMBOL_TABLE, rng: Optional[random.Random] = None):
        self.table = table
        self.rng = rng or random.Random()
        self.sampler = WeightedSampler(table, self.rng)
        self.reconciler = OutcomeReconciler(table, self.sampler)
        self.machines: Dict[int, SpinStateMachine] = {}
        self.http_session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        if self.http_session is None:
            self.http_session = aiohttp.ClientSession()

    async def close(self):
        for machine in self.machines.values():
            machine.close()
        self.machines.clear()

        if self.http_session is not None:
            await self.http_session.close()
            self.http_session = None

    def authority_for(self, player: Player) -> Optional[ProgramAuthority]:
        """Без релея или без кошелька программы нет"""
        if settings.DEMO_MODE or not player.wallet_address:
            return None
        if self.http_session is None:
            raise RuntimeError("SpinService not started. Call start() first.")

        return ProgramAuthority(
            self.http_session,
            player.wallet_address,
            relay_url=settings.SLOTS_RELAY_URL,
            rpc_url=settings.SOLANA_RPC_URL,
            program_id=settings.PROGRAM_ID,
        )

    def get_machine(self, player: Player) -> SpinStateMachine:
        machine = self.machines.get(player.telegram_id)

        if machine is None:
            machine = SpinStateMachine(
                self.table,
                self.sampler,
                self.reconciler,
                self.authority_for(player),
                allowed_bets=settings.ALLOWED_BETS,
                animation_interval=settings.SPIN_ANIMATION_INTERVAL,
                min_duration=settings.SPIN_ANIMATION_DURATION,
                error_clear_delay=settings.ERROR_CLEAR_DELAY,
                rng=self.rng,
            )
            self.machines[player.telegram_id] = machine
        elif not machine.session.is_spinning:
            # Кошелёк мог смениться между спинами
            machine.authority = self.authority_for(player)

        return machine

    async def refresh_wallet(self, player: Player, machine: SpinStateMachine) -> Decimal:
        connected = wallet_service.is_connected(player)
        balance = Decimal('0')
        if connected:
            balance = await wallet_service.get_balance(player, machine.authority)
        machine.set_wallet(connected, balance)
        return balance

    async def spin(self, player: Player, bet_amount: Decimal) -> SpinSession:
        """
        Полный спин игрока.

        PreconditionError пробрасывается наружу (показать сообщение),
        ошибки программы и RPC остаются в session.pending_error.
        """
        machine = self.get_machine(player)

        try:
            await self.refresh_wallet(player, machine)
        except AuthorityError as e:
            logger.error(f"❌ Wallet refresh failed: user={player.telegram_id}, error={e}")
            session = machine.report_error(e)
            await self._record(player, machine, bet_amount, session, failed=True)
            return session

        session = await machine.start_spin(bet_amount)
        failed = machine.state == SpinState.ERROR

        if not failed and machine.local_mode:
            await wallet_service.settle_demo(player, session.bet_amount, session.last_payout)

        await self._record(player, machine, bet_amount, session, failed)
        return session

    async def _record(self, player: Player, machine: SpinStateMachine, bet_amount, session: SpinSession, failed: bool):
        record = SpinRecord(
            user_id=player.telegram_id,
            bet_amount=Decimal(str(bet_amount)),
            payout_amount=Decimal('0') if failed else session.last_payout,
            payline=[] if failed else list(session.grid.payline),
            authoritative=not machine.local_mode,
            signature=None if failed else session.signature,
            error=session.pending_error if failed else None,
        )
        await db.add_spin(player.telegram_id, record.to_dict(), settings.HISTORY_LIMIT)

    async def get_history(self, player: Player) -> List[SpinRecord]:
        items = await db.get_spins(player.telegram_id, settings.HISTORY_LIMIT)
        return [SpinRecord.from_dict(item) for item in items]


spin_service = SpinService()
