"""Entry point for running the Kafanski duel bot."""

import asyncio
import logging
import sys

from kafanski_duel.bot.app import create_bot, create_dispatcher
from kafanski_duel.config import get_settings


async def main() -> None:
    """Start the bot."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    bot = create_bot()
    dp = create_dispatcher()

    logging.info("Starting Kafanski duel bot...")

    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
