import json
import logging
from typing import Optional, Dict, Any, List
import redis.asyncio as redis
from gorbagana.config import settings

logger = logging.getLogger(__name__)


class RedisDatabase:
    """Класс для работы с Redis базой данных"""

    def __init__(self):
        self.client = None

    async def connect(self):
        """Подключение к Redis"""
        try:
            self.client = redis.from_url(
                settings.REDIS_CONNECTION_URL,
                encoding="utf-8",
                decode_responses=True
            )
            # Тестируем подключение
            await self.client.ping()
            logger.info("✅ Redis подключение установлено")
        except Exception as e:
            logger.error(f"❌ Ошибка подключения к Redis: {e}")
            raise

    async def disconnect(self):
        """Отключение от Redis"""
        if self.client:
            await self.client.aclose()
            logger.info("✅ Redis соединение закрыто")

    async def set_player(self, user_id: int, player_data: Dict[str, Any]):
        """Сохранить данные игрока"""
        key = f"player:{user_id}"
        await self.client.set(key, json.dumps(player_data, default=str))

    async def get_player(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Получить данные игрока"""
        data = await self.client.get(f"player:{user_id}")
        if data:
            return json.loads(data)
        return None

    async def init_demo_balance(self, user_id: int, lamports: int) -> bool:
        """Выдать стартовый демо-баланс, если его ещё нет"""
        key = f"demo_wallet:{user_id}"
        return bool(await self.client.hsetnx(key, "balance_lamports", lamports))

    async def get_demo_balance(self, user_id: int) -> int:
        """Демо-баланс в лампортах"""
        balance = await self.client.hget(f"demo_wallet:{user_id}", "balance_lamports")
        return int(balance) if balance else 0

    async def increment_demo_balance(self, user_id: int, lamports: int) -> int:
        """Изменить демо-баланс (отрицательное значение - списание)"""
        return await self.client.hincrby(f"demo_wallet:{user_id}", "balance_lamports", lamports)

    async def add_spin(self, user_id: int, spin_data: Dict[str, Any], limit: int = 20):
        """Добавить спин в историю (храним последние limit)"""
        key = f"spins:{user_id}"
        await self.client.lpush(key, json.dumps(spin_data, default=str))
        await self.client.ltrim(key, 0, limit - 1)

    async def get_spins(self, user_id: int, limit: int = 20) -> List[Dict[str, Any]]:
        """Получить историю спинов (новые сначала)"""
        items = await self.client.lrange(f"spins:{user_id}", 0, limit - 1)
        return [json.loads(item) for item in items]


# Глобальный экземпляр базы данных
db = RedisDatabase()


async def init_redis():
    """Инициализация Redis"""
    await db.connect()


async def close_redis():
    """Закрытие Redis соединения"""
    await db.disconnect()
