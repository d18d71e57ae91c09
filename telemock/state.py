"""
Stateful conversation storage for the mock Telegram server.

Maintains conversation history like real Telegram, enabling realistic testing
of message flows, edits, deletions and file lookups. One ConversationState
belongs to exactly one server instance; nothing here is shared globally.
"""
import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from telemock.responses import make_chat

logger = logging.getLogger("telemock.state")

# Message fields that carry a downloadable file, in lookup order
FILE_FIELDS = (
    "document",
    "photo",
    "audio",
    "video",
    "voice",
    "video_note",
    "animation",
    "sticker",
)


@dataclass
class StoredMessage:
    """Message stored in chat state."""

    message_id: int
    chat_id: int
    is_bot: bool
    payload: dict[str, Any]
    created_at: float = field(default_factory=time.time)
    edited_at: float | None = None
    is_deleted: bool = False
    is_pinned: bool = False

    @property
    def text(self) -> str | None:
        """Message text, falling back to the media caption."""
        return self.payload.get("text", self.payload.get("caption"))

    @property
    def reply_markup(self) -> dict[str, Any] | None:
        return self.payload.get("reply_markup")

    @property
    def from_user_id(self) -> int | None:
        sender = self.payload.get("from")
        return sender["id"] if sender else None

    @property
    def message_thread_id(self) -> int | None:
        return self.payload.get("message_thread_id")

    @property
    def has_protected_content(self) -> bool:
        return bool(self.payload.get("has_protected_content"))

    def has_inline_keyboard(self) -> bool:
        """Check if message has inline keyboard."""
        if self.reply_markup is None:
            return False
        return "inline_keyboard" in self.reply_markup

    def get_button_callback_data(self, button_text: str) -> str | None:
        """Find callback_data for button with given text."""
        if not self.has_inline_keyboard():
            return None

        for row in self.reply_markup.get("inline_keyboard", []):
            for button in row:
                if button_text in button.get("text", ""):
                    return button.get("callback_data")
        return None

    def get_button_at(self, row: int, col: int) -> dict[str, Any] | None:
        """Get button at specific position."""
        if not self.has_inline_keyboard():
            return None

        keyboard = self.reply_markup.get("inline_keyboard", [])
        if row < 0 or row >= len(keyboard):
            return None

        row_buttons = keyboard[row]
        if col < 0 or col >= len(row_buttons):
            return None

        return row_buttons[col]


@dataclass
class FileRecord:
    """File known to the server, retrievable through getFile."""

    file_id: str
    file_unique_id: str
    file_path: str
    file_size: int | None = None
    content: bytes | None = None

    def to_file(self) -> dict[str, Any]:
        """Render as a Bot API File object."""
        result: dict[str, Any] = {
            "file_id": self.file_id,
            "file_unique_id": self.file_unique_id,
            "file_path": self.file_path,
        }
        if self.file_size is not None:
            result["file_size"] = self.file_size
        return result


@dataclass
class CallbackRecord:
    """Callback query delivered to the bot."""

    callback_query_id: str
    chat_id: int | None
    message_id: int | None
    data: str | None
    answered: bool = False
    answer: dict[str, Any] | None = None


class ConversationState:
    """
    Maintains conversation state like real Telegram.

    All counters only ever grow: ids are never reused for the lifetime of
    the instance, across any number of dispatches.
    """

    def __init__(self, first_message_id: int = 1, first_update_id: int = 1) -> None:
        # chat_id -> message_id -> StoredMessage (insertion ordered)
        self._chats: dict[int, dict[int, StoredMessage]] = {}
        # chat_id -> Chat object as first seen
        self._chat_info: dict[int, dict[str, Any]] = {}
        self._files: dict[str, FileRecord] = {}
        self._callbacks: dict[str, CallbackRecord] = {}
        # chat_id -> user_id -> "banned" | permissions dict
        self._members: dict[int, dict[int, Any]] = {}
        # scope/language key -> list of BotCommand dicts
        self._commands: dict[str, list[dict[str, Any]]] = {}

        self._next_message_id = first_message_id
        self._next_update_id = first_update_id
        self._next_callback_query_id = 1
        self._next_file_id = 1

    # =========================================================================
    # Counters
    # =========================================================================

    @property
    def next_message_id(self) -> int:
        return self._next_message_id

    @property
    def next_update_id(self) -> int:
        return self._next_update_id

    @property
    def next_callback_query_id(self) -> int:
        return self._next_callback_query_id

    def allocate_message_id(self) -> int:
        message_id = self._next_message_id
        self._next_message_id += 1
        return message_id

    def claim_message_id(self, message_id: int) -> int:
        """Reserve an explicitly chosen id; it must not be behind the counter."""
        if message_id < self._next_message_id:
            raise ValueError(
                f"message_id {message_id} is already allocated "
                f"(next free id is {self._next_message_id})"
            )
        self._next_message_id = message_id + 1
        return message_id

    def allocate_update_id(self) -> int:
        update_id = self._next_update_id
        self._next_update_id += 1
        return update_id

    def allocate_callback_query_id(self) -> str:
        callback_query_id = self._next_callback_query_id
        self._next_callback_query_id += 1
        return str(callback_query_id)

    def allocate_file_ids(self, kind: str) -> tuple[str, str]:
        """Generate a new (file_id, file_unique_id) pair."""
        number = self._next_file_id
        self._next_file_id += 1
        return f"{kind}_file_{number:06d}", f"uniq_{kind}_{number:06d}"

    # =========================================================================
    # Chats
    # =========================================================================

    def remember_chat(self, chat: dict[str, Any]) -> None:
        """Keep the first full description seen for a chat."""
        self._chat_info.setdefault(chat["id"], copy.deepcopy(chat))

    def get_chat(self, chat_id: int) -> dict[str, Any]:
        """Chat object for responses: as seen in updates, else synthesized."""
        chat = self._chat_info.get(chat_id)
        if chat is None:
            return make_chat(chat_id)
        return copy.deepcopy(chat)

    def find_chat_by_username(self, username: str) -> dict[str, Any] | None:
        wanted = username.lstrip("@").lower()
        for chat in self._chat_info.values():
            if str(chat.get("username", "")).lower() == wanted:
                return copy.deepcopy(chat)
        return None

    # =========================================================================
    # Messages
    # =========================================================================

    def add_message(
        self,
        payload: dict[str, Any],
        is_bot: bool,
    ) -> StoredMessage:
        """Store a complete Message object; its message_id must already be allocated."""
        chat_id = payload["chat"]["id"]
        message_id = payload["message_id"]
        chat = self._chats.setdefault(chat_id, {})

        if message_id in chat:
            logger.error(
                "Duplicate message_id %d in chat %d - this should not happen",
                message_id,
                chat_id,
            )

        self.remember_chat(payload["chat"])
        self._register_files(payload)

        message = StoredMessage(
            message_id=message_id,
            chat_id=chat_id,
            is_bot=is_bot,
            payload=copy.deepcopy(payload),
        )
        chat[message_id] = message

        logger.debug(
            "Added message %d to chat %d: %s",
            message_id,
            chat_id,
            message.text[:50] if message.text else "(no text)",
        )
        return message

    def edit_message(
        self,
        chat_id: int,
        message_id: int,
        **changes: Any,
    ) -> StoredMessage | None:
        """Apply field changes to a live message. ``None`` values remove the field."""
        message = self.get_message(chat_id, message_id)
        if message is None or message.is_deleted:
            logger.warning(
                "Cannot edit message %d in chat %d - not found or deleted",
                message_id,
                chat_id,
            )
            return None

        for key, value in changes.items():
            if value is None:
                message.payload.pop(key, None)
            else:
                message.payload[key] = copy.deepcopy(value)

        message.edited_at = time.time()
        message.payload["edit_date"] = int(message.edited_at)
        self._register_files(message.payload)

        logger.debug("Edited message %d in chat %d", message_id, chat_id)
        return message

    def delete_message(self, chat_id: int, message_id: int) -> bool:
        """Mark message as deleted."""
        message = self.get_message(chat_id, message_id)
        if message is None or message.is_deleted:
            logger.warning(
                "Cannot delete message %d in chat %d - not found or already deleted",
                message_id,
                chat_id,
            )
            return False

        message.is_deleted = True
        logger.debug("Deleted message %d in chat %d", message_id, chat_id)
        return True

    def set_pinned(self, chat_id: int, message_id: int, pinned: bool) -> bool:
        message = self.get_message(chat_id, message_id)
        if message is None or message.is_deleted:
            return False
        message.is_pinned = pinned
        logger.debug("Message %d in chat %d pinned=%s", message_id, chat_id, pinned)
        return True

    def unpin_all(self, chat_id: int) -> int:
        """Unpin every message in chat. Returns how many were pinned."""
        pinned = [m for m in self._chats.get(chat_id, {}).values() if m.is_pinned]
        for message in pinned:
            message.is_pinned = False
        return len(pinned)

    def get_last_pinned(self, chat_id: int) -> StoredMessage | None:
        pinned = [m for m in self.get_conversation(chat_id) if m.is_pinned]
        return pinned[-1] if pinned else None

    # =========================================================================
    # Files
    # =========================================================================

    def store_file(self, record: FileRecord) -> FileRecord:
        """Remember a file. The first record stored for a file_id wins."""
        existing = self._files.get(record.file_id)
        if existing is not None:
            return existing
        self._files[record.file_id] = record
        logger.debug("Stored file %s (%s)", record.file_id, record.file_path)
        return record

    def get_file(self, file_id: str) -> FileRecord | None:
        return self._files.get(file_id)

    def find_file_by_path(self, file_path: str) -> FileRecord | None:
        for record in self._files.values():
            if record.file_path == file_path:
                return record
        return None

    def _register_files(self, payload: dict[str, Any]) -> None:
        for kind in FILE_FIELDS:
            media = payload.get(kind)
            if not media:
                continue
            # Photos come as a list of sizes, the largest last
            sizes = media if isinstance(media, list) else [media]
            for item in sizes:
                self.store_file(FileRecord(
                    file_id=item["file_id"],
                    file_unique_id=item["file_unique_id"],
                    file_size=item.get("file_size"),
                    file_path=f"{kind}s/{item['file_unique_id']}",
                ))

    # =========================================================================
    # Callback queries
    # =========================================================================

    def register_callback_query(
        self,
        chat_id: int | None,
        message_id: int | None,
        data: str | None,
    ) -> CallbackRecord:
        record = CallbackRecord(
            callback_query_id=self.allocate_callback_query_id(),
            chat_id=chat_id,
            message_id=message_id,
            data=data,
        )
        self._callbacks[record.callback_query_id] = record
        return record

    def get_callback_query(self, callback_query_id: str) -> CallbackRecord | None:
        return self._callbacks.get(callback_query_id)

    # =========================================================================
    # Members & commands
    # =========================================================================

    def set_member_status(self, chat_id: int, user_id: int, status: Any) -> None:
        self._members.setdefault(chat_id, {})[user_id] = status

    def clear_member_status(self, chat_id: int, user_id: int) -> None:
        self._members.get(chat_id, {}).pop(user_id, None)

    def get_member_status(self, chat_id: int, user_id: int) -> Any:
        return self._members.get(chat_id, {}).get(user_id)

    def set_commands(self, key: str, commands: list[dict[str, Any]]) -> None:
        self._commands[key] = copy.deepcopy(commands)

    def get_commands(self, key: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._commands.get(key, []))

    def delete_commands(self, key: str) -> None:
        self._commands.pop(key, None)

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_message(self, chat_id: int, message_id: int) -> StoredMessage | None:
        """Get message by ID."""
        if chat_id not in self._chats:
            return None
        return self._chats[chat_id].get(message_id)

    def get_live_message(self, chat_id: int, message_id: int) -> StoredMessage | None:
        """Get message by ID unless it was deleted."""
        message = self.get_message(chat_id, message_id)
        if message is None or message.is_deleted:
            return None
        return message

    def get_conversation(
        self,
        chat_id: int,
        include_deleted: bool = False,
    ) -> list[StoredMessage]:
        """Get all messages in chat in the order they were sent."""
        if chat_id not in self._chats:
            return []

        messages = list(self._chats[chat_id].values())
        if not include_deleted:
            messages = [m for m in messages if not m.is_deleted]
        return messages

    def get_bot_messages(
        self,
        chat_id: int,
        include_deleted: bool = False,
    ) -> list[StoredMessage]:
        """Get all bot messages in chat."""
        return [m for m in self.get_conversation(chat_id, include_deleted) if m.is_bot]

    def get_user_messages(
        self,
        chat_id: int,
        include_deleted: bool = False,
    ) -> list[StoredMessage]:
        """Get all user messages in chat."""
        return [m for m in self.get_conversation(chat_id, include_deleted) if not m.is_bot]

    def get_last_bot_message(self, chat_id: int) -> StoredMessage | None:
        """Get the most recent bot message."""
        bot_messages = self.get_bot_messages(chat_id)
        return bot_messages[-1] if bot_messages else None

    def find_message_with_button(
        self,
        chat_id: int,
        button_text: str,
    ) -> StoredMessage | None:
        """Find the most recent message containing a button with given text."""
        for message in reversed(self.get_bot_messages(chat_id)):
            if message.get_button_callback_data(button_text) is not None:
                return message
        return None

    def get_message_count(self, chat_id: int, include_deleted: bool = False) -> int:
        """Get number of messages in chat."""
        return len(self.get_conversation(chat_id, include_deleted))
