"""Anonymous messages through deep links: ``t.me/<bot>?start=<chat_id>``."""
from examples.deep_linking_bot.app import create_dispatcher
from examples.deep_linking_bot.repository import MessageRepository

__all__ = ["create_dispatcher", "MessageRepository"]
