"""Duel handlers - /challenge, /duels, accept/decline, actions, surrender, history."""

import html
from typing import Any

from aiogram import F, Router, types
from aiogram.filters import Command
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...db.engine import async_session_factory
from ...db.models.duels import Duel
from ...db.models.enums import ActionCategory, DuelStatus, FinishReason
from ...db.models.players import Player
from ...engine.logging import CombatLog
from ...engine.types import FOUL_THRESHOLD
from ...services.duels import DuelService, Lobby
from ...services.gateway import DuelGateway
from ...services.players import PlayerService
from ..utils import (
    MESSAGE_LIMIT,
    edit_or_ignore,
    get_display_name,
    log_callback,
    log_command,
    parse_callback_args,
    safe_handler,
    truncate,
    validate_callback_message,
    validate_message_user,
    validate_reply_message,
)

router = Router(name="duels")


# Callback data prefixes
ACCEPT_DUEL = "duel_accept:"
DECLINE_DUEL = "duel_decline:"
VIEW_DUEL = "duel_view:"
CATEGORY_PREFIX = "duel_cat:"
ACTION_PREFIX = "duel_action:"
SURRENDER_DUEL = "duel_surrender:"
HISTORY_DUEL = "duel_history:"

CATEGORY_LABELS = {
    ActionCategory.PICE: "🍺 Piće",
    ActionCategory.HRANA: "🍖 Hrana",
    ActionCategory.SPECIJAL: "✨ Specijal",
}

FINISH_REASON_TEXT = {
    FinishReason.RESPECT.value: "respekt je pao na nulu",
    FinishReason.FOULS.value: "previše pijanih faulova",
    FinishReason.TURN_CAP.value: "odlučeno na poene posle poslednje ture",
    FinishReason.SURRENDER.value: "predaja",
}


def get_challenge_keyboard(duel_id: int) -> InlineKeyboardMarkup:
    """Create accept/decline keyboard for a duel challenge."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="🍻 Prihvati", callback_data=f"{ACCEPT_DUEL}{duel_id}"),
                InlineKeyboardButton(text="❌ Odbij", callback_data=f"{DECLINE_DUEL}{duel_id}"),
            ]
        ]
    )


def get_duel_keyboard(duel_id: int) -> InlineKeyboardMarkup:
    """Category picker plus refresh and surrender."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text=label, callback_data=f"{CATEGORY_PREFIX}{duel_id}:{category.value}")
                for category, label in CATEGORY_LABELS.items()
            ],
            [
                InlineKeyboardButton(text="🔄 Osveži", callback_data=f"{VIEW_DUEL}{duel_id}"),
                InlineKeyboardButton(text="🏳️ Predaja", callback_data=f"{SURRENDER_DUEL}{duel_id}"),
            ],
        ]
    )


def format_action_button(action: dict[str, Any]) -> str:
    """Button label with price, affordability and remaining uses."""
    label = f"{action['name']} ({action['cost']} din)"
    if action["uses_left"] is not None:
        label += f" ×{action['uses_left']}"
    if not action["available"]:
        return f"🚫 {label}"
    if not action["affordable"]:
        return f"💸 {label}"
    return label


def get_category_keyboard(
    duel_id: int,
    category: ActionCategory,
    available_actions: list[dict[str, Any]],
) -> InlineKeyboardMarkup:
    """One button per action of a category, then a back button.

    Unaffordable or used-up actions are still listed; the server rejects them.
    """
    rows = [
        [
            InlineKeyboardButton(
                text=format_action_button(action),
                callback_data=f"{ACTION_PREFIX}{duel_id}:{action['key']}",
            )
        ]
        for action in available_actions
        if action["category"] == category.value
    ]
    rows.append([InlineKeyboardButton(text="⬅️ Nazad", callback_data=f"{VIEW_DUEL}{duel_id}")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def get_lobby_keyboard(lobby: Lobby) -> InlineKeyboardMarkup | None:
    """Buttons for incoming challenges, active duels and finished duel logs."""
    rows = []
    for duel in lobby.incoming:
        rows.append(
            [
                InlineKeyboardButton(
                    text=f"🍻 #{duel.id} {duel.player1.display_name}",
                    callback_data=f"{ACCEPT_DUEL}{duel.id}",
                ),
                InlineKeyboardButton(text="❌", callback_data=f"{DECLINE_DUEL}{duel.id}"),
            ]
        )
    for duel in lobby.active:
        rows.append(
            [
                InlineKeyboardButton(
                    text=f"⚔️ #{duel.id} {duel.player1.display_name} vs {duel.player2.display_name}",
                    callback_data=f"{VIEW_DUEL}{duel.id}",
                )
            ]
        )
    for duel in lobby.finished:
        rows.append(
            [
                InlineKeyboardButton(
                    text=f"📜 #{duel.id} {duel.player1.display_name} vs {duel.player2.display_name}",
                    callback_data=f"{HISTORY_DUEL}{duel.id}",
                )
            ]
        )
    if not rows:
        return None
    return InlineKeyboardMarkup(inline_keyboard=rows)


def _player_name(state: dict[str, Any], player_id: int | None) -> str:
    for p in state["players"]:
        if p["player_id"] == player_id:
            return p["display_name"] or f"Igrač {player_id}"
    return "Nepoznat"


def format_combat_state(combat: dict[str, Any]) -> str:
    """One line of stats for a player."""
    return (
        f"   🥃 {combat['alcometer']} | 🎩 {combat['respect']} | 🍖 {combat['stomak']} | "
        f"💰 {combat['novcanik']} | ⚠️ {combat['pijani_foulovi']}/{FOUL_THRESHOLD}"
    )


def format_duel_state(state: dict[str, Any], poll_hint_seconds: int | None = None) -> str:
    """Format duel state for display."""
    status = state["status"]
    lines = [f"<b>🍻 Kafanski duel #{state['duel_id']}</b>"]

    if status == DuelStatus.WAITING.value:
        lines.append("<i>Čeka se odgovor na izazov.</i>")
    elif status == DuelStatus.ACTIVE.value:
        on_turn = html.escape(_player_name(state, state["current_turn_user"]))
        lines.append(f"Tura {state['turn_number']}/{state['turn_cap']} | na potezu: <b>{on_turn}</b>")
    elif status == DuelStatus.DECLINED.value:
        lines.append("<i>Izazov je odbijen.</i>")

    lines.append("")
    for p in state["players"]:
        marker = "👉 " if status == DuelStatus.ACTIVE.value and p["player_id"] == state["current_turn_user"] else ""
        lines.append(f"{marker}<b>{html.escape(p['display_name'] or 'Igrač')}</b>")
        if p["combat_state"]:
            lines.append(format_combat_state(p["combat_state"]))

    if status == DuelStatus.FINISHED.value:
        winner = html.escape(_player_name(state, state["winner_id"]))
        reason = FINISH_REASON_TEXT.get(state["finish_reason"], "")
        lines.append("")
        lines.append(f"🏆 <b>Pobeda: {winner}</b>")
        if reason:
            lines.append(f"<i>({reason})</i>")

    if state["log"]:
        lines.append("")
        lines.append("<b>📜 Poslednji potezi:</b>")
        for entry in state["log"]:
            lines.append(f"[{entry['turn_number']}] {html.escape(entry['flavor_text'])}")

    if status == DuelStatus.ACTIVE.value and poll_hint_seconds:
        lines.append("")
        lines.append(f"<i>Osveži za ~{poll_hint_seconds}s da vidiš potez protivnika.</i>")

    return "\n".join(lines)


def _duel_line(duel: Duel, player_id: int) -> str:
    opponent = duel.player2 if duel.player1_id == player_id else duel.player1
    return f"#{duel.id} protiv <b>{html.escape(opponent.display_name)}</b>"


def format_lobby(lobby: Lobby, player_id: int) -> str:
    """Format the lobby screen."""
    lines = ["<b>🍻 Tvoji dueli</b>"]

    if lobby.incoming:
        lines.append("")
        lines.append("<b>Izazovi za tebe:</b>")
        lines.extend(f"• {_duel_line(d, player_id)}" for d in lobby.incoming)

    if lobby.outgoing:
        lines.append("")
        lines.append("<b>Tvoji izazovi (čekaju odgovor):</b>")
        lines.extend(f"• {_duel_line(d, player_id)}" for d in lobby.outgoing)

    if lobby.active:
        lines.append("")
        lines.append("<b>U toku:</b>")
        for duel in lobby.active:
            turn = "tvoj potez" if duel.current_turn_user_id == player_id else "čeka se protivnik"
            lines.append(f"• {_duel_line(duel, player_id)}, tura {duel.turn_number} ({turn})")

    if lobby.finished:
        lines.append("")
        lines.append("<b>Završeni:</b>")
        for duel in lobby.finished:
            outcome = "✅ pobeda" if duel.winner_id == player_id else "❌ poraz"
            lines.append(f"• {_duel_line(duel, player_id)}: {outcome}")

    if not (lobby.incoming or lobby.outgoing or lobby.active or lobby.finished):
        lines.append("")
        lines.append("Nemaš nijedan duel. Odgovori na nečiju poruku sa /challenge!")

    if lobby.opponents:
        names = ", ".join(html.escape(p.display_name) for p in lobby.opponents[:10])
        lines.append("")
        lines.append(f"<i>Mogući protivnici: {names}</i>")

    return "\n".join(lines)


def format_history(log: CombatLog) -> str:
    """Full log of a duel, cut to fit one message."""
    if not log.entries:
        return f"<i>Duel #{log.duel_id} nema zabeleženih poteza.</i>"
    return f"<pre>{html.escape(truncate(log.format_readable(), MESSAGE_LIMIT))}</pre>"


async def _resolve_player(session: AsyncSession, user: types.User) -> Player:
    """Map the verified Telegram identity to a player."""
    return await PlayerService(session).get_or_create_player(
        telegram_user_id=user.id,
        display_name=get_display_name(user),
        username=user.username,
    )


def _gateway(session: AsyncSession) -> DuelGateway:
    settings = get_settings()
    return DuelGateway(
        session,
        log_limit=settings.state_log_limit,
        history_limit=settings.lobby_history_limit,
    )


def _keyboard_for(state: dict[str, Any]) -> InlineKeyboardMarkup | None:
    if state["status"] == DuelStatus.ACTIVE.value:
        return get_duel_keyboard(state["duel_id"])
    if state["status"] == DuelStatus.WAITING.value:
        return get_challenge_keyboard(state["duel_id"])
    return None


@router.message(Command("challenge"))
@safe_handler
@log_command("/challenge")
async def cmd_challenge(message: Message) -> None:
    """Handle /challenge command - challenge the author of the replied message."""
    if not validate_message_user(message):
        await message.answer("Ne mogu da te prepoznam. Pokušaj ponovo.")
        return

    if not validate_reply_message(message):
        await message.answer("Odgovori na nečiju poruku sa /challenge da tu osobu izazoveš na duel!")
        return

    challenger = message.from_user
    challenged = message.reply_to_message.from_user

    if challenged.is_bot:
        await message.answer("Botovi ne piju. Izazovi nekog živog!")
        return

    async with async_session_factory() as session:
        challenger_player = await _resolve_player(session, challenger)
        challenged_player = await _resolve_player(session, challenged)

        result = await DuelService(session).create_challenge(challenger_player.id, challenged_player.id)
        # Both players stay registered even when the challenge is refused
        await session.commit()

        if not result.success:
            await message.answer(f"❌ {html.escape(result.message)}")
            return

        await message.answer(
            f"🍻 <b>{html.escape(challenger_player.display_name)}</b> izaziva "
            f"<b>{html.escape(challenged_player.display_name)}</b> na kafanski duel!\n\n"
            f"{html.escape(challenged_player.display_name)}, prihvataš li?",
            reply_markup=get_challenge_keyboard(result.duel_id),
        )


@router.message(Command("duels"))
@safe_handler
@log_command("/duels")
async def cmd_duels(message: Message) -> None:
    """Handle /duels command - show the lobby."""
    if not validate_message_user(message):
        await message.answer("Ne mogu da te prepoznam. Pokušaj ponovo.")
        return

    async with async_session_factory() as session:
        player = await _resolve_player(session, message.from_user)
        await session.commit()

        lobby = await _gateway(session).list_active(player.id)
        await message.answer(format_lobby(lobby, player.id), reply_markup=get_lobby_keyboard(lobby))


@router.callback_query(F.data.startswith(ACCEPT_DUEL))
@safe_handler
@log_callback("accept_duel")
async def callback_accept_duel(callback: CallbackQuery) -> None:
    """Handle accept duel button."""
    parts = parse_callback_args(callback.data, ACCEPT_DUEL, 1)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])

    async with async_session_factory() as session:
        player = await _resolve_player(session, callback.from_user)
        result = await DuelService(session).accept_challenge(duel_id, player.id)

        if not result.success:
            await session.rollback()
            await callback.answer(result.message, show_alert=True)
            return

        state = (await _gateway(session).get_state(duel_id)).state
        await callback.message.edit_text(
            format_duel_state(state, get_settings().poll_hint_seconds),
            reply_markup=get_duel_keyboard(duel_id),
        )
        await callback.answer("Duel je počeo! Izazivač igra prvi.")


@router.callback_query(F.data.startswith(DECLINE_DUEL))
@safe_handler
@log_callback("decline_duel")
async def callback_decline_duel(callback: CallbackQuery) -> None:
    """Handle decline duel button."""
    parts = parse_callback_args(callback.data, DECLINE_DUEL, 1)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])

    async with async_session_factory() as session:
        player = await _resolve_player(session, callback.from_user)
        result = await DuelService(session).decline_challenge(duel_id, player.id)

        if not result.success:
            await session.rollback()
            await callback.answer(result.message, show_alert=True)
            return

        await callback.message.edit_text(
            f"❌ {html.escape(player.display_name)} odbija izazov. Možda drugi put.",
            reply_markup=None,
        )
        await callback.answer("Izazov odbijen.")


@router.callback_query(F.data.startswith(VIEW_DUEL))
@safe_handler
@log_callback("view_duel")
async def callback_view_duel(callback: CallbackQuery) -> None:
    """Handle open/refresh button - the polling entry point."""
    parts = parse_callback_args(callback.data, VIEW_DUEL, 1)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])

    async with async_session_factory() as session:
        player = await _resolve_player(session, callback.from_user)
        await session.commit()

        result = await _gateway(session).get_state(duel_id, viewer_id=player.id)
        if not result.success:
            await callback.answer(result.message, show_alert=True)
            return

        state = result.state
        await edit_or_ignore(
            callback.message,
            format_duel_state(state, get_settings().poll_hint_seconds),
            reply_markup=_keyboard_for(state),
        )

        if state["is_your_turn"]:
            await callback.answer("Ti si na potezu!")
        else:
            await callback.answer()


@router.callback_query(F.data.startswith(CATEGORY_PREFIX))
@safe_handler
@log_callback("pick_category")
async def callback_pick_category(callback: CallbackQuery) -> None:
    """Handle category button - show that category's actions to the player on turn."""
    parts = parse_callback_args(callback.data, CATEGORY_PREFIX, 2)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])
    try:
        category = ActionCategory(parts[1])
    except ValueError:
        return

    async with async_session_factory() as session:
        player = await _resolve_player(session, callback.from_user)
        await session.commit()

        result = await _gateway(session).get_state(duel_id, viewer_id=player.id)
        if not result.success:
            await callback.answer(result.message, show_alert=True)
            return

        if not result.state["is_your_turn"]:
            await callback.answer("Nisi na potezu.", show_alert=True)
            return

        await callback.message.edit_reply_markup(
            reply_markup=get_category_keyboard(duel_id, category, result.state["available_actions"]),
        )
        await callback.answer()


@router.callback_query(F.data.startswith(ACTION_PREFIX))
@safe_handler
@log_callback("submit_action")
async def callback_submit_action(callback: CallbackQuery) -> None:
    """Handle action button."""
    parts = parse_callback_args(callback.data, ACTION_PREFIX, 2)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])
    action_key = parts[1]

    async with async_session_factory() as session:
        player = await _resolve_player(session, callback.from_user)
        result = await _gateway(session).submit_action(duel_id, player.id, action_key)

        if not result.success:
            await session.rollback()
            await callback.answer(result.message, show_alert=True)
            return

        state = result.state
        text = format_duel_state(state, get_settings().poll_hint_seconds)
        await callback.message.edit_text(text, reply_markup=_keyboard_for(state))
        await callback.answer(truncate(result.message), show_alert=result.turn_result.is_duel_over)


@router.callback_query(F.data.startswith(SURRENDER_DUEL))
@safe_handler
@log_callback("surrender")
async def callback_surrender(callback: CallbackQuery) -> None:
    """Handle surrender button."""
    parts = parse_callback_args(callback.data, SURRENDER_DUEL, 1)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])

    async with async_session_factory() as session:
        player = await _resolve_player(session, callback.from_user)
        result = await _gateway(session).surrender(duel_id, player.id)

        if not result.success:
            await session.rollback()
            await callback.answer(result.message, show_alert=True)
            return

        await callback.message.edit_text(format_duel_state(result.state), reply_markup=None)
        await callback.answer("Predaja je prihvaćena.")


@router.callback_query(F.data.startswith(HISTORY_DUEL))
@safe_handler
@log_callback("duel_history")
async def callback_duel_history(callback: CallbackQuery) -> None:
    """Handle history button - send the full log of a finished duel."""
    parts = parse_callback_args(callback.data, HISTORY_DUEL, 1)
    if not parts or not validate_callback_message(callback):
        return
    duel_id = int(parts[0])

    async with async_session_factory() as session:
        log = await _gateway(session).get_history(duel_id)
        if log is None:
            await callback.answer("Duel ne postoji.", show_alert=True)
            return

        await callback.message.answer(format_history(log))
        await callback.answer()
