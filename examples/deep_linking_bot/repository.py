from datetime import datetime, timezone

from examples.deep_linking_bot.models import RelayedMessage


class MessageRepository:
    """Keeps relayed messages in memory."""

    def __init__(self) -> None:
        self._messages: list[RelayedMessage] = []

    async def add(self, sender_id: int, recipient_id: int, text: str) -> RelayedMessage:
        message = RelayedMessage(
            id=len(self._messages) + 1,
            sender_id=sender_id,
            recipient_id=recipient_id,
            text=text,
            created_at=datetime.now(timezone.utc),
        )
        self._messages.append(message)
        return message

    async def get_for_recipient(self, recipient_id: int) -> list[RelayedMessage]:
        return [m for m in self._messages if m.recipient_id == recipient_id]

    async def count(self) -> int:
        return len(self._messages)
