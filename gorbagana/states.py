from aiogram.fsm.state import State, StatesGroup


class ConnectStates(StatesGroup):
    """Состояния подключения кошелька"""
    waiting_address = State()
