import asyncio
import logging
from contextlib import suppress
from decimal import Decimal, InvalidOperation
from typing import Optional, Set

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from gorbagana.config import settings
from gorbagana.errors import AuthorityError, PreconditionError
from gorbagana.games.spin_machine import SpinSession, SpinStateMachine
from gorbagana.i18n.translator import translator
from gorbagana.models_redis import Player
from gorbagana.services.spin_service import spin_service
from gorbagana.services.wallet_service import wallet_service
from gorbagana.states import ConnectStates
from gorbagana.utils.formatters import format_bet, format_sol, render_grid, render_payline, render_paytable
from gorbagana.utils.keyboards import get_language_keyboard, get_slots_keyboard

logger = logging.getLogger(__name__)

router = Router()

# Ссылки на фоновые задачи, чтобы их не собрал GC
_background_tasks: Set[asyncio.Task] = set()


def _t(player: Player, key: str, **kwargs) -> str:
    return translator.get(key, player.language_code, **kwargs)


def _selected_bet(player: Player) -> Decimal:
    try:
        bet = Decimal(player.bet_amount) if player.bet_amount else settings.DEFAULT_BET
    except InvalidOperation:
        return settings.DEFAULT_BET
    return bet if bet in settings.ALLOWED_BETS else settings.DEFAULT_BET


def render_machine(player: Player, session: SpinSession, balance: Optional[Decimal]) -> str:
    """Текст сообщения с автоматом"""
    parts = [_t(player, 'slots.title'), '']

    if settings.DEMO_MODE:
        parts.append(_t(player, 'slots.demo', balance=format_sol(balance or 0)))
    elif player.is_connected:
        parts.append(_t(player, 'slots.connected', balance=format_sol(balance or 0)))
    else:
        parts.append(_t(player, 'slots.not_connected'))

    if session.pending_error:
        parts.append(_t(player, 'slots.error', error=session.pending_error))

    parts.append('')
    parts.append(render_grid(session.grid, spin_service.table, session.highlighted_rows))
    parts.append('')

    if session.is_spinning:
        parts.append(_t(player, 'slots.spinning'))
    elif session.last_payout > 0:
        parts.append(_t(player, 'slots.win', amount=format_sol(session.last_payout)))
    else:
        parts.append(_t(player, 'slots.no_win'))

    if session.authoritative is False and not session.is_spinning and not settings.DEMO_MODE:
        parts.append(_t(player, 'slots.local_result'))

    parts.append(_t(player, 'slots.bet', bet=format_bet(_selected_bet(player))))
    return '\n'.join(parts)


def _keyboard(player: Player, session: SpinSession):
    return get_slots_keyboard(
        settings.ALLOWED_BETS,
        _selected_bet(player),
        is_spinning=session.is_spinning,
        lang=player.language_code,
    )


async def _safe_edit(message: Message, text: str, reply_markup=None):
    """edit_text, игнорируя 'message is not modified'"""
    try:
        await message.edit_text(text, reply_markup=reply_markup)
    except TelegramBadRequest as e:
        if 'not modified' not in str(e):
            raise


async def _load_balance(player: Player, machine: SpinStateMachine) -> Optional[Decimal]:
    if not wallet_service.is_connected(player):
        return None
    try:
        return await wallet_service.get_balance(player, machine.authority)
    except AuthorityError as e:
        logger.warning(f"⚠️ Balance unavailable for user={player.telegram_id}: {e}")
        return machine.balance


async def _player(user) -> Player:
    return await wallet_service.get_player(user.id, user.username)


async def send_machine(message: Message, player: Player):
    machine = spin_service.get_machine(player)
    balance = await _load_balance(player, machine)
    await message.answer(render_machine(player, machine.session, balance), reply_markup=_keyboard(player, machine.session))


async def _animate_message(message: Message, player: Player, machine: SpinStateMachine):
    """Перерисовка сообщения во время спина (реже, чем тикает анимация)"""
    while True:
        await asyncio.sleep(settings.RENDER_INTERVAL)
        session = machine.session
        if not session.is_spinning:
            return
        try:
            await _safe_edit(message, render_machine(player, session, machine.balance), _keyboard(player, session))
        except TelegramBadRequest as e:
            logger.warning(f"⚠️ Animation frame skipped: {e}")


async def _clear_error_later(message: Message, player: Player, machine: SpinStateMachine):
    """Убрать ошибку из сообщения после того, как машина её сбросила"""
    await asyncio.sleep(settings.ERROR_CLEAR_DELAY + 0.1)
    session = machine.session
    if session.pending_error or session.is_spinning:
        return
    try:
        await _safe_edit(message, render_machine(player, session, machine.balance), _keyboard(player, session))
    except TelegramBadRequest as e:
        logger.warning(f"⚠️ Could not clear error: {e}")


def _schedule(coro):
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


# --- Команды ---

@router.message(CommandStart())
async def cmd_start(message: Message):
    player = await _player(message.from_user)
    await message.answer(_t(player, 'start.welcome'))
    await send_machine(message, player)


@router.message(Command('slots'))
async def cmd_slots(message: Message):
    player = await _player(message.from_user)
    await send_machine(message, player)


@router.message(Command('paytable'))
async def cmd_paytable(message: Message):
    player = await _player(message.from_user)
    bet = _selected_bet(player)
    text = (
        f"{_t(player, 'paytable.title', bet=format_bet(bet))}\n\n"
        f"{render_paytable(spin_service.table, bet)}\n\n"
        f"{_t(player, 'paytable.hint')}"
    )
    await message.answer(text)


@router.message(Command('connect'))
async def cmd_connect(message: Message, command: CommandObject, state: FSMContext):
    player = await _player(message.from_user)

    if settings.DEMO_MODE:
        await message.answer(_t(player, 'connect.demo'))
        return

    if not command.args:
        await message.answer(_t(player, 'connect.ask'))
        await state.set_state(ConnectStates.waiting_address)
        return

    await _connect_wallet(message, player, command.args)


@router.message(ConnectStates.waiting_address)
async def process_wallet_address(message: Message, state: FSMContext):
    player = await _player(message.from_user)
    await state.clear()
    await _connect_wallet(message, player, message.text or '')


async def _connect_wallet(message: Message, player: Player, address: str):
    try:
        await wallet_service.connect(player, address)
    except PreconditionError:
        await message.answer(_t(player, 'connect.invalid'))
        return
    await message.answer(_t(player, 'connect.ok', address=player.wallet_address))
    await send_machine(message, player)


@router.message(Command('disconnect'))
async def cmd_disconnect(message: Message):
    player = await _player(message.from_user)
    await wallet_service.disconnect(player)
    await message.answer(_t(player, 'connect.disconnected'))


@router.message(Command('balance'))
async def cmd_balance(message: Message):
    player = await _player(message.from_user)

    if not wallet_service.is_connected(player):
        await message.answer(_t(player, 'balance.not_connected'))
        return

    machine = spin_service.get_machine(player)
    try:
        balance = await wallet_service.get_balance(player, machine.authority)
    except AuthorityError as e:
        await message.answer(_t(player, 'balance.failed', error=e))
        return

    key = 'balance.demo' if settings.DEMO_MODE else 'balance.text'
    await message.answer(_t(player, key, balance=format_sol(balance)))


@router.message(Command('history'))
async def cmd_history(message: Message):
    player = await _player(message.from_user)
    records = await spin_service.get_history(player)

    if not records:
        await message.answer(_t(player, 'history.empty'))
        return

    lines = [_t(player, 'history.title'), '']
    for record in records:
        if record.error:
            lines.append(_t(player, 'history.failed', bet=format_bet(record.bet_amount), error=record.error))
            continue
        lines.append(_t(
            player,
            'history.row',
            payline=render_payline(record.payline, spin_service.table),
            bet=format_bet(record.bet_amount),
            payout=format_sol(record.payout_amount),
            mark='' if record.authoritative else _t(player, 'history.local_mark'),
        ))
    await message.answer('\n'.join(lines))


@router.message(Command('stats'))
async def cmd_stats(message: Message):
    player = await _player(message.from_user)
    authority = spin_service.authority_for(player)

    if settings.DEMO_MODE:
        await message.answer(_t(player, 'stats.demo'))
        return
    if authority is None:
        await message.answer(_t(player, 'balance.not_connected'))
        return

    try:
        state = await authority.get_slots_state()
    except AuthorityError as e:
        await message.answer(_t(player, 'stats.failed', error=e))
        return

    if state is None:
        await message.answer(_t(player, 'stats.not_initialized'))
        return

    await message.answer(_t(
        player,
        'stats.text',
        total_spins=state.total_spins,
        total_payout=format_sol(state.total_payout),
        house_edge=state.house_edge,
    ))


@router.message(Command('init'))
async def cmd_init(message: Message):
    player = await _player(message.from_user)
    authority = spin_service.authority_for(player)

    if settings.DEMO_MODE:
        await message.answer(_t(player, 'stats.demo'))
        return
    if authority is None:
        await message.answer(_t(player, 'balance.not_connected'))
        return

    try:
        signature = await authority.initialize()
    except AuthorityError as e:
        logger.error(f"❌ Initialize error: {e}")
        await message.answer(_t(player, 'init.failed', error=e))
        return

    await message.answer(_t(player, 'init.ok', signature=signature))


@router.message(Command('lang'))
async def cmd_lang(message: Message):
    player = await _player(message.from_user)
    await message.answer(_t(player, 'lang.choose'), reply_markup=get_language_keyboard())


# --- Кнопки ---

@router.callback_query(F.data.startswith('lang:'))
async def cb_lang(callback: CallbackQuery):
    player = await _player(callback.from_user)
    lang = callback.data.split(':', 1)[1]
    if lang in translator.languages:
        player.language_code = lang
        await wallet_service.save_player(player)
    await callback.answer(_t(player, 'lang.set'))


@router.callback_query(F.data.startswith('bet:'))
async def cb_bet(callback: CallbackQuery):
    player = await _player(callback.from_user)
    machine = spin_service.get_machine(player)

    if machine.session.is_spinning:
        await callback.answer(_t(player, 'slots.already_spinning'))
        return

    try:
        bet = Decimal(callback.data.split(':', 1)[1])
    except InvalidOperation:
        bet = None
    if bet not in settings.ALLOWED_BETS:
        await callback.answer(_t(player, 'slots.bet_invalid'))
        return

    player.bet_amount = str(bet)
    await wallet_service.save_player(player)
    await callback.answer(_t(player, 'slots.bet_changed', bet=format_bet(bet)))
    await _safe_edit(
        callback.message,
        render_machine(player, machine.session, machine.balance),
        _keyboard(player, machine.session),
    )


@router.callback_query(F.data == 'paytable')
async def cb_paytable(callback: CallbackQuery):
    await callback.answer()
    player = await _player(callback.from_user)
    bet = _selected_bet(player)
    await callback.message.answer(
        f"{_t(player, 'paytable.title', bet=format_bet(bet))}\n\n"
        f"{render_paytable(spin_service.table, bet)}\n\n"
        f"{_t(player, 'paytable.hint')}"
    )


@router.callback_query(F.data == 'noop')
async def cb_noop(callback: CallbackQuery):
    await callback.answer()


@router.callback_query(F.data == 'spin')
async def cb_spin(callback: CallbackQuery):
    player = await _player(callback.from_user)
    machine = spin_service.get_machine(player)

    if machine.session.is_spinning:
        await callback.answer(_t(player, 'slots.already_spinning'))
        return

    await callback.answer()
    message = callback.message
    bet = _selected_bet(player)

    animation = asyncio.create_task(_animate_message(message, player, machine))
    try:
        session = await spin_service.spin(player, bet)
    except PreconditionError:
        session = machine.session
    finally:
        animation.cancel()
        with suppress(asyncio.CancelledError):
            await animation

    balance = await _load_balance(player, machine)
    await _safe_edit(message, render_machine(player, session, balance), _keyboard(player, session))

    if session.pending_error:
        _schedule(_clear_error_later(message, player, machine))
