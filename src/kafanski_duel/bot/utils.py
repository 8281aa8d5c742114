"""Bot utilities - error handling, logging, and parsing helpers."""

import functools
import logging
from typing import Any, Callable

from aiogram import types
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

logger = logging.getLogger("kafanski_duel.bot")

GENERIC_ERROR_MESSAGE = "Nešto je pošlo naopako. Pokušaj ponovo malo kasnije."

# Telegram limit for callback answer texts
CALLBACK_ANSWER_LIMIT = 200

# Telegram limit for message texts, minus room for markup
MESSAGE_LIMIT = 4000


def _is_stale_query(error: TelegramBadRequest) -> bool:
    return "query is too old" in str(error).lower()


def safe_handler(func: Callable) -> Callable:
    """Decorator to wrap handlers with error handling.

    Catches all exceptions, logs them with user/chat context and answers
    with a generic message. Works with both Message and CallbackQuery handlers.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        update: Message | CallbackQuery | None = None
        for arg in args:
            if isinstance(arg, (Message, CallbackQuery)):
                update = arg
                break

        try:
            return await func(*args, **kwargs)
        except TelegramBadRequest as e:
            # Old buttons pressed long after the message was sent
            if _is_stale_query(e):
                logger.debug(f"Ignoring old callback query in {func.__name__}")
                return None
            await _report_failure(func.__name__, update, e)
        except Exception as e:
            await _report_failure(func.__name__, update, e)
        return None

    return wrapper


async def _report_failure(handler: str, update: Message | CallbackQuery | None, error: Exception) -> None:
    user_id = None
    chat_id = None

    if isinstance(update, Message):
        user_id = update.from_user.id if update.from_user else None
        chat_id = update.chat.id
    elif isinstance(update, CallbackQuery):
        user_id = update.from_user.id
        chat_id = update.message.chat.id if update.message else None

    logger.exception(
        f"Handler error in {handler}: {error}",
        extra={
            "user_id": user_id,
            "chat_id": chat_id,
            "handler": handler,
        },
    )

    try:
        if isinstance(update, Message):
            await update.reply(GENERIC_ERROR_MESSAGE)
        elif isinstance(update, CallbackQuery):
            await update.answer(GENERIC_ERROR_MESSAGE, show_alert=True)
    except TelegramBadRequest as tg_err:
        if not _is_stale_query(tg_err):
            logger.exception("Failed to send error message to user")
    except Exception:
        logger.exception("Failed to send error message to user")


def log_command(command: str) -> Callable:
    """Decorator to log command usage.

    Args:
        command: The command name (e.g., "/start", "/challenge")
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for arg in args:
                if isinstance(arg, Message):
                    user_id = arg.from_user.id if arg.from_user else None
                    username = arg.from_user.username if arg.from_user else None
                    logger.info(f"Command {command} from user {user_id} (@{username}) in chat {arg.chat.id}")
                    break

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def log_callback(action: str) -> Callable:
    """Decorator to log button presses.

    Args:
        action: Description of the action (e.g., "accept_duel", "submit_action")
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for arg in args:
                if isinstance(arg, CallbackQuery):
                    chat_id = arg.message.chat.id if arg.message else None
                    logger.info(
                        f"Callback {action} ({arg.data}) from user {arg.from_user.id} "
                        f"(@{arg.from_user.username}) in chat {chat_id}"
                    )
                    break

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def validate_message_user(message: Message) -> bool:
    """Check if message has valid from_user."""
    return message.from_user is not None and message.from_user.id is not None


def validate_callback_message(callback: CallbackQuery) -> bool:
    """Check if callback query still has its message."""
    return callback.message is not None


def validate_reply_message(message: Message) -> bool:
    """Check if message is a reply with an identifiable target user."""
    return (
        message.reply_to_message is not None
        and message.reply_to_message.from_user is not None
        and message.reply_to_message.from_user.id is not None
    )


def get_display_name(user: types.User | None) -> str:
    """Get display name for a Telegram user.

    Args:
        user: The Telegram user

    Returns:
        Display name (full name or username or a numbered fallback)
    """
    if user is None:
        return "Nepoznat"

    if user.full_name:
        return user.full_name
    if user.username:
        return f"@{user.username}"
    return f"Igrač {user.id}"


def parse_callback_args(data: str | None, prefix: str, count: int) -> list[str] | None:
    """Split ``prefix<duel_id>[:arg...]`` callback data.

    Returns:
        The ``count`` parts with a numeric first part, or None if malformed
    """
    if not data or not data.startswith(prefix):
        return None
    parts = data[len(prefix) :].split(":")
    if len(parts) != count or not parts[0].isdecimal():
        return None
    return parts


def truncate(text: str, limit: int = CALLBACK_ANSWER_LIMIT) -> str:
    """Shorten text to fit a Telegram limit."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


async def edit_or_ignore(message: Message, text: str, reply_markup: InlineKeyboardMarkup | None = None) -> None:
    """Edit a message, ignoring refreshes that change nothing."""
    try:
        await message.edit_text(text, reply_markup=reply_markup)
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e).lower():
            raise
