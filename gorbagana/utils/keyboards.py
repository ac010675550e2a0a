from decimal import Decimal
from typing import Iterable

from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from gorbagana.i18n.translator import translator
from gorbagana.utils.formatters import format_bet


def get_language_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура выбора языка"""
    builder = InlineKeyboardBuilder()
    builder.button(text="🇬🇧 English", callback_data="lang:en")
    builder.button(text="🇷🇺 Русский", callback_data="lang:ru")
    builder.adjust(2)
    return builder.as_markup()


def get_slots_keyboard(
    allowed_bets: Iterable[Decimal],
    selected_bet: Decimal,
    is_spinning: bool = False,
    lang: str = 'en',
) -> InlineKeyboardMarkup:
    """Выбор ставки + кнопка спина. Во время спина ставку менять нельзя"""
    builder = InlineKeyboardBuilder()
    bets = list(allowed_bets)

    for bet in bets:
        text = format_bet(bet)
        if bet == selected_bet:
            text = f"✅ {text}"
        # Во время спина кнопки ставок никуда не ведут
        builder.button(text=text, callback_data="noop" if is_spinning else f"bet:{bet}")

    if is_spinning:
        builder.button(text=translator.get('slots.button_spinning', lang), callback_data="noop")
    else:
        builder.button(text=translator.get('slots.button_spin', lang), callback_data="spin")
    builder.button(text=translator.get('slots.button_paytable', lang), callback_data="paytable")

    builder.adjust(len(bets), 2)
    return builder.as_markup()
