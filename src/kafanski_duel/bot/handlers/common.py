"""Common bot handlers - /start, /help commands."""

import html

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from ...db.engine import async_session_factory
from ...db.models.enums import ActionCategory, CombatStat
from ...engine.catalog import get_catalog_by_category
from ...engine.types import FOUL_THRESHOLD, STARTING_STATS, TURN_CAP
from ...services.players import PlayerService
from ..utils import get_display_name, log_command, safe_handler, validate_message_user

router = Router(name="common")

CATEGORY_TITLES = {
    ActionCategory.PICE: "Piće",
    ActionCategory.HRANA: "Hrana",
    ActionCategory.SPECIJAL: "Specijal",
}


def format_catalog() -> str:
    """Price list of every action, grouped by category."""
    lines = []
    for category, actions in get_catalog_by_category().items():
        lines.append(f"<b>{CATEGORY_TITLES[category]}</b>")
        for action in actions:
            limit = f", najviše {action.max_uses}×" if action.max_uses is not None else ""
            lines.append(f"  {action.name}: {action.cost} din{limit}")
    return "\n".join(lines)


@router.message(Command("start"))
@safe_handler
@log_command("/start")
async def cmd_start(message: Message) -> None:
    """Handle /start command - register the player."""
    if not validate_message_user(message):
        await message.answer("Ne mogu da te prepoznam. Pokušaj ponovo.")
        return

    async with async_session_factory() as session:
        player = await PlayerService(session).get_or_create_player(
            telegram_user_id=message.from_user.id,
            display_name=get_display_name(message.from_user),
            username=message.from_user.username,
        )
        await session.commit()

    await message.answer(
        f"<b>Dobrodošli u Kafanski duel, {html.escape(player.display_name)}!</b>\n\n"
        "Dvoje gostiju, jedan sto, jedna kafana. Ko izgubi respekt ili napravi previše "
        "pijanih faulova, plaća račun.\n\n"
        "<b>Brzi start:</b>\n"
        " Odgovori na nečiju poruku sa /challenge\n"
        " Pogledaj svoje duele sa /duels\n\n"
        "Za pravila i cenovnik: /help"
    )


@router.message(Command("help"))
@safe_handler
@log_command("/help")
async def cmd_help(message: Message) -> None:
    """Handle /help command."""
    help_text = (
        "<b>Kafanski duel: pravila</b>\n\n"
        "<b>Komande</b>\n"
        "/start - Registracija i dobrodošlica\n"
        "/challenge - Izazovi nekoga (kao odgovor na poruku)\n"
        "/duels - Tvoji izazovi i dueli u toku\n"
        "/help - Ova poruka\n\n"
        "<b>Tok igre</b>\n"
        "Izazivač igra prvi, potezi se smenjuju. Svaki potez košta iz novčanika "
        f"(početno {STARTING_STATS[CombatStat.NOVCANIK]} din).\n"
        "Gubiš ako ti respekt padne na nulu ili napraviš "
        f"{FOUL_THRESHOLD} pijana faula. Posle {TURN_CAP}. ture odlučuje respekt, "
        "pa manje faulova, pa izazivač.\n"
        "Preko 100 na alkometru rizikuješ faul, a prepun stomak košta respekta.\n"
        "Dugme 🔄 Osveži pokazuje potez protivnika.\n\n"
        "<b>Cenovnik</b>\n"
    )
    await message.answer(help_text + format_catalog())
