"""Run the deep linking bot against the real Bot API (long polling)."""
import asyncio
import logging
import os

from aiogram import Bot
from dotenv import load_dotenv
from rich.logging import RichHandler

from examples.deep_linking_bot.app import create_dispatcher
from examples.deep_linking_bot.repository import MessageRepository

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(message)s",
    handlers=[RichHandler(rich_tracebacks=True)],
)
logging.getLogger("aiogram").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def main() -> None:
    bot = Bot(token=os.environ["BOT_TOKEN"])
    dp = create_dispatcher(message_repository=MessageRepository())

    logger.info("Starting deep linking bot...")
    try:
        await bot.delete_webhook(drop_pending_updates=True)
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
