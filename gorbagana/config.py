import os
from decimal import Decimal
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _decimal_list(raw: str) -> List[Decimal]:
    return [Decimal(part.strip()) for part in raw.split(',') if part.strip()]


class Settings:
    """Настройки приложения"""

    # Telegram
    BOT_TOKEN: str = os.getenv('BOT_TOKEN', '')

    # Redis Database
    REDIS_URL: str = os.getenv('REDIS_URL', '')
    REDIS_HOST: str = os.getenv('REDIS_HOST', 'localhost')
    REDIS_PORT: int = int(os.getenv('REDIS_PORT', 6379))
    REDIS_PASSWORD: str = os.getenv('REDIS_PASSWORD', '')
    REDIS_DB: int = int(os.getenv('REDIS_DB', 0))

    # Solana / программа gorbagana_slots
    SOLANA_RPC_URL: str = os.getenv('SOLANA_RPC_URL', 'https://api.devnet.solana.com')
    SLOTS_RELAY_URL: str = os.getenv('SLOTS_RELAY_URL', '')
    PROGRAM_ID: str = os.getenv('PROGRAM_ID', '')

    # Game Settings (в SOL)
    DEFAULT_BET: Decimal = Decimal(os.getenv('DEFAULT_BET', '0.01'))
    ALLOWED_BETS: List[Decimal] = _decimal_list(os.getenv('ALLOWED_BETS', '0.001,0.01,0.1,0.5,1'))
    DEMO_STARTING_BALANCE: Decimal = Decimal(os.getenv('DEMO_STARTING_BALANCE', '1'))
    HISTORY_LIMIT: int = int(os.getenv('HISTORY_LIMIT', 20))

    # Тайминги (секунды)
    SPIN_ANIMATION_INTERVAL: float = float(os.getenv('SPIN_ANIMATION_INTERVAL', 0.1))
    SPIN_ANIMATION_DURATION: float = float(os.getenv('SPIN_ANIMATION_DURATION', 1.5))
    ERROR_CLEAR_DELAY: float = float(os.getenv('ERROR_CLEAR_DELAY', 5))
    # Telegram не любит частые edit_text
    RENDER_INTERVAL: float = float(os.getenv('RENDER_INTERVAL', 0.7))

    # Render Settings
    PORT: int = int(os.getenv('PORT', 8000))
    WEBHOOK_URL: str = os.getenv('WEBHOOK_URL', '')
    WEBHOOK_PATH: str = os.getenv('WEBHOOK_PATH', '/webhook')

    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    @property
    def REDIS_CONNECTION_URL(self) -> str:
        """Получить URL подключения к Redis"""
        if self.REDIS_URL:
            return self.REDIS_URL

        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        else:
            return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def DEMO_MODE(self) -> bool:
        """Без релея программы выплаты считаются локально"""
        return not self.SLOTS_RELAY_URL

    def validate(self):
        """Валидация настроек"""
        if not self.BOT_TOKEN:
            raise ValueError("❌ BOT_TOKEN не установлен в .env")
        if not self.ALLOWED_BETS:
            raise ValueError("❌ ALLOWED_BETS пуст")
        if self.DEFAULT_BET not in self.ALLOWED_BETS:
            raise ValueError(f"❌ DEFAULT_BET {self.DEFAULT_BET} не входит в ALLOWED_BETS")
        if not self.DEMO_MODE and not self.PROGRAM_ID:
            raise ValueError("❌ PROGRAM_ID не установлен в .env")


settings = Settings()
