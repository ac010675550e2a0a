import logging
import re
from decimal import Decimal
from typing import Optional

from gorbagana.authority.program import ProgramAuthority, lamports_to_sol, sol_to_lamports
from gorbagana.config import settings
from gorbagana.errors import PreconditionError
from gorbagana.models_redis import Player
from gorbagana.redis_db import db

logger = logging.getLogger(__name__)

# base58, 32 байта публичного ключа
WALLET_ADDRESS_RE = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')


class WalletService:
    """Сервис для работы с кошельками игроков"""

    @staticmethod
    async def get_player(user_id: int, username: Optional[str] = None) -> Player:
        """Получить или создать игрока"""
        data = await db.get_player(user_id)

        if not data:
            player = Player(telegram_id=user_id, username=username, bet_amount=str(settings.DEFAULT_BET))
            await db.set_player(user_id, player.to_dict())
            logger.info(f"👤 New player: user={user_id}")
            return player

        return Player.from_dict(data)

    @staticmethod
    async def save_player(player: Player):
        await db.set_player(player.telegram_id, player.to_dict())

    @staticmethod
    async def connect(player: Player, address: str) -> Player:
        """Привязать кошелёк Solana"""
        address = address.strip()
        if not WALLET_ADDRESS_RE.match(address):
            raise PreconditionError('Invalid wallet address')

        player.wallet_address = address
        await WalletService.save_player(player)
        logger.info(f"🔗 Wallet connected: user={player.telegram_id}, address={address}")
        return player

    @staticmethod
    async def disconnect(player: Player) -> Player:
        player.wallet_address = None
        await WalletService.save_player(player)
        logger.info(f"🔌 Wallet disconnected: user={player.telegram_id}")
        return player

    @staticmethod
    def is_connected(player: Player) -> bool:
        """В демо-режиме кошелёк - это сам аккаунт Telegram"""
        return settings.DEMO_MODE or player.is_connected

    @staticmethod
    async def get_balance(player: Player, authority: Optional[ProgramAuthority] = None) -> Decimal:
        """Баланс в SOL: демо из Redis или реальный из RPC"""
        if settings.DEMO_MODE:
            await db.init_demo_balance(player.telegram_id, sol_to_lamports(settings.DEMO_STARTING_BALANCE))
            return lamports_to_sol(await db.get_demo_balance(player.telegram_id))

        if authority is None:
            return Decimal('0')
        return await authority.get_balance()

    @staticmethod
    async def settle_demo(player: Player, bet_amount: Decimal, payout_amount: Decimal) -> Decimal:
        """Списать ставку и начислить выигрыш на демо-баланс"""
        delta = sol_to_lamports(payout_amount) - sol_to_lamports(bet_amount)
        new_balance = await db.increment_demo_balance(player.telegram_id, delta)

        logger.info(
            f"💰 Demo settle: user={player.telegram_id}, bet={bet_amount}, payout={payout_amount}, "
            f"new_balance={new_balance}"
        )

        return lamports_to_sol(new_balance)


wallet_service = WalletService()
