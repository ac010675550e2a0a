from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, asdict, field


@dataclass
class Player:
    """Игрок (пользователь Telegram) для Redis"""
    telegram_id: int
    username: Optional[str] = None
    language_code: str = 'en'

    # Подключённый кошелёк Solana
    wallet_address: Optional[str] = None

    # Ставка в SOL (строкой, чтобы не терять точность в JSON)
    bet_amount: Optional[str] = None

    created_at: datetime = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.utcnow()

    @property
    def is_connected(self) -> bool:
        return bool(self.wallet_address)

    def to_dict(self) -> Dict[str, Any]:
        """Преобразовать в словарь"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        """Создать из словаря"""
        if data.get('created_at') and isinstance(data['created_at'], str):
            try:
                data['created_at'] = datetime.fromisoformat(data['created_at'])
            except ValueError:
                data['created_at'] = None

        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class SpinRecord:
    """Запись истории спинов"""
    user_id: int
    bet_amount: Decimal
    payout_amount: Decimal
    payline: List[int] = field(default_factory=list)
    # False - результат посчитан локально (демо), на цепочке его нет
    authoritative: bool = True
    signature: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.utcnow()

    @property
    def is_win(self) -> bool:
        return self.payout_amount > 0

    def to_dict(self) -> Dict[str, Any]:
        """Преобразовать в словарь"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpinRecord':
        """Создать из словаря"""
        data = dict(data)
        data['bet_amount'] = Decimal(str(data['bet_amount']))
        data['payout_amount'] = Decimal(str(data['payout_amount']))
        if data.get('created_at') and isinstance(data['created_at'], str):
            try:
                data['created_at'] = datetime.fromisoformat(data['created_at'])
            except ValueError:
                data['created_at'] = None
        return cls(**data)
