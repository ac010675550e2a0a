"""
Адаптер программы gorbagana_slots.

Транзакции подписывает и отправляет релей (SLOTS_RELAY_URL), он же
разбирает событие SpinResult. Баланс читаем напрямую из Solana JSON-RPC.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, Optional

import aiohttp

from gorbagana.authority.base import Authority
from gorbagana.errors import AuthorityError
from gorbagana.games.reconciler import SpinOutcome

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

# Коды ошибок из IDL программы
PROGRAM_ERRORS = {
    6000: 'Invalid bet amount',
    6001: 'Bet amount too high',
    6002: 'Invalid amount',
}


def sol_to_lamports(amount) -> int:
    return int((Decimal(str(amount)) * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_FLOOR))


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(int(lamports)) / LAMPORTS_PER_SOL


@dataclass
class SlotsState:
    """Аккаунт SlotsState программы"""
    authority: str
    initialized: bool
    treasury: str
    total_spins: int
    total_payout: Decimal
    house_edge: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SlotsState':
        return cls(
            authority=str(data['authority']),
            initialized=bool(data['initialized']),
            treasury=str(data['treasury']),
            total_spins=int(data['totalSpins']),
            total_payout=lamports_to_sol(data['totalPayout']),
            house_edge=int(data['houseEdge']),
        )


class ProgramAuthority(Authority):
    """Спин через программу от имени подключённого кошелька"""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        wallet_address: str,
        *,
        relay_url: str,
        rpc_url: str,
        program_id: str,
    ):
        self.session = session
        self.wallet_address = wallet_address
        self.relay_url = relay_url.rstrip('/')
        self.rpc_url = rpc_url
        self.program_id = program_id

    async def spin(self, bet_amount: Decimal) -> SpinOutcome:
        bet_lamports = sol_to_lamports(bet_amount)
        if bet_lamports <= 0:
            raise AuthorityError(PROGRAM_ERRORS[6000], code=6000)

        body = await self._request('POST', f"{self.relay_url}/spin", {
            'programId': self.program_id,
            'user': self.wallet_address,
            'betAmount': bet_lamports,
        })
        outcome = self._parse_outcome(body)

        logger.info(f"🔗 Spin transaction: {outcome.signature} user={self.wallet_address}")
        return outcome

    async def initialize(self) -> str:
        """Создать SlotsState для кошелька (authority и treasury - сам кошелёк)"""
        body = await self._request('POST', f"{self.relay_url}/initialize", {
            'programId': self.program_id,
            'user': self.wallet_address,
            'authority': self.wallet_address,
            'treasury': self.wallet_address,
        })
        signature = body.get('signature')
        if not signature:
            raise AuthorityError('Relay did not return a transaction signature')

        logger.info(f"🔗 Initialize transaction: {signature}")
        return str(signature)

    async def get_slots_state(self) -> Optional[SlotsState]:
        """None, если SlotsState ещё не инициализирован"""
        try:
            body = await self._request('GET', f"{self.relay_url}/state/{self.wallet_address}")
        except AuthorityError as e:
            if e.code == 404:
                logger.info(f"No slots state for {self.wallet_address}, needs initialization")
                return None
            raise

        try:
            return SlotsState.from_dict(body)
        except (KeyError, TypeError, ValueError) as e:
            raise AuthorityError(f"Malformed slots state: {e}") from e

    async def get_balance(self) -> Decimal:
        body = await self._request('POST', self.rpc_url, {
            'jsonrpc': '2.0',
            'id': 1,
            'method': 'getBalance',
            'params': [self.wallet_address],
        })

        if body.get('error'):
            error = body['error']
            raise AuthorityError(f"RPC error: {error.get('message', error)}", code=error.get('code'))

        try:
            return lamports_to_sol(body['result']['value'])
        except (KeyError, TypeError, ValueError) as e:
            raise AuthorityError(f"Malformed balance response: {e}") from e

    @staticmethod
    def _parse_outcome(body: Dict[str, Any]) -> SpinOutcome:
        """Разбор события SpinResult: symbols u8[3], payout u64 в лампортах"""
        symbols = body.get('symbols')
        payout = body.get('payout')

        # u8[3] приходит JSON-массивом; строку или число не угадываем
        if not isinstance(symbols, list):
            raise AuthorityError(f"Malformed spin result: symbols must be a list, got {symbols!r}")
        if not isinstance(payout, int) or isinstance(payout, bool):
            raise AuthorityError(f"Malformed spin result: payout must be integer lamports, got {payout!r}")

        # Типы символов проверяет SpinOutcome.validate
        return SpinOutcome(
            payline_symbols=tuple(symbols),
            payout_amount=lamports_to_sol(payout),
            authoritative=True,
            signature=body.get('signature'),
        ).validate()

    async def _request(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            async with self.session.request(method, url, json=payload) as resp:
                body = await resp.json(content_type=None)
                status = resp.status
        except aiohttp.ClientError as e:
            raise AuthorityError(f"Transport error: {e}") from e
        except ValueError as e:
            raise AuthorityError(f"Invalid JSON from {url}") from e

        if status >= 400:
            raise self._error_from(body, status)
        if not isinstance(body, dict):
            raise AuthorityError(f"Unexpected response from {url}")
        return body

    @staticmethod
    def _error_from(body: Any, status: int) -> AuthorityError:
        error = body.get('error') if isinstance(body, dict) else None

        if isinstance(error, dict):
            code = error.get('code')
            message = PROGRAM_ERRORS.get(code) or error.get('message') or f"HTTP {status}"
            return AuthorityError(message, code=code if code is not None else status)
        if isinstance(error, str):
            return AuthorityError(error, code=status)
        return AuthorityError(f"HTTP {status}", code=status)
