from aiogram import Dispatcher
from aiogram.fsm.storage.base import BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage

from examples.deep_linking_bot.handlers import router
from examples.deep_linking_bot.repository import MessageRepository


def create_dispatcher(
    storage: BaseStorage | None = None,
    message_repository: MessageRepository | None = None,
) -> Dispatcher:
    dp = Dispatcher(storage=storage or MemoryStorage())

    # Router is a module-level singleton; detach it from a previous Dispatcher
    router._parent_router = None
    dp.include_router(router)

    if message_repository is not None:
        dp["message_repository"] = message_repository
    return dp
