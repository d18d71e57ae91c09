"""
Build synthetic inbound events for simulating user actions.

Builders are frozen dataclasses: every ``with_*`` call returns a new
builder, so one base builder can be shared between tests and varied per
step. ``build()`` validates the builder once and produces an
UpdateEnvelope. Ids are not allocated here; the update feed does that at
dispatch time against the instance's state.
"""
import dataclasses
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Self

from telemock.errors import StateAssertionError
from telemock.state import ConversationState

DEFAULT_USER_ID = 1234567
DEFAULT_GROUP_ID = -1001234567890
MAX_CALLBACK_DATA_BYTES = 64

CHAT_TYPES = ("private", "group", "supergroup", "channel")


class UpdateKind(StrEnum):
    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CALLBACK_QUERY = "callback_query"


@dataclass(frozen=True)
class UpdateEnvelope:
    """One validated inbound event, waiting to be dispatched."""

    kind: UpdateKind
    user: dict[str, Any]
    chat: dict[str, Any]
    date: int
    content: dict[str, Any] = field(default_factory=dict)
    # New message: id to claim. Callback / edit: id of the referenced message.
    message_id: int | None = None
    reply_to_message_id: int | None = None
    message_thread_id: int | None = None
    data: str | None = None


def _fail(field_name: str, problem: str) -> StateAssertionError:
    return StateAssertionError(f"{field_name}: {problem}")


class _Builder:
    def with_fields(self, **fields: Any) -> Self:
        """Return a copy with the given fields replaced."""
        try:
            return dataclasses.replace(self, **fields)
        except TypeError as e:
            raise _fail(type(self).__name__, str(e)) from None


# =============================================================================
# Actors
# =============================================================================


@dataclass(frozen=True)
class MockUser(_Builder):
    id: int = DEFAULT_USER_ID
    first_name: str = "Test"
    last_name: str | None = "User"
    username: str | None = "testuser"
    language_code: str | None = "en"
    is_bot: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MockUser":
        return cls(
            id=payload["id"],
            first_name=payload.get("first_name", "Test"),
            last_name=payload.get("last_name"),
            username=payload.get("username"),
            language_code=payload.get("language_code"),
            is_bot=payload.get("is_bot", False),
        )

    def build(self) -> dict[str, Any]:
        if self.id <= 0:
            raise _fail("user.id", f"must be positive, got {self.id}")
        if not self.first_name:
            raise _fail("user.first_name", "must not be empty")

        user: dict[str, Any] = {
            "id": self.id,
            "is_bot": self.is_bot,
            "first_name": self.first_name,
        }
        for key in ("last_name", "username", "language_code"):
            value = getattr(self, key)
            if value is not None:
                user[key] = value
        return user


@dataclass(frozen=True)
class MockChat(_Builder):
    id: int = DEFAULT_USER_ID
    type: str = "private"
    title: str | None = None
    username: str | None = "testuser"
    first_name: str | None = "Test"
    last_name: str | None = "User"
    is_forum: bool = False

    @classmethod
    def private(cls, user: MockUser | None = None) -> "MockChat":
        """Private chat with ``user`` (the default user when omitted)."""
        user = user or MockUser()
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
        )

    @classmethod
    def group(cls, chat_id: int = -1234567, title: str = "Test Group") -> "MockChat":
        return cls(id=chat_id, type="group", title=title, username=None, first_name=None, last_name=None)

    @classmethod
    def supergroup(cls, chat_id: int = DEFAULT_GROUP_ID, title: str = "Test Supergroup") -> "MockChat":
        return cls(id=chat_id, type="supergroup", title=title, username=None, first_name=None, last_name=None)

    @classmethod
    def channel(cls, chat_id: int = -1009876543210, title: str = "Test Channel") -> "MockChat":
        return cls(id=chat_id, type="channel", title=title, username=None, first_name=None, last_name=None)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MockChat":
        return cls(
            id=payload["id"],
            type=payload["type"],
            title=payload.get("title"),
            username=payload.get("username"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            is_forum=payload.get("is_forum", False),
        )

    def build(self) -> dict[str, Any]:
        if self.type not in CHAT_TYPES:
            raise _fail("chat.type", f"must be one of {', '.join(CHAT_TYPES)}, got {self.type!r}")
        if self.type == "private" and self.id <= 0:
            raise _fail("chat.id", "private chats have positive ids")
        if self.type != "private":
            if self.id >= 0:
                raise _fail("chat.id", f"{self.type} chats have negative ids")
            if not self.title:
                raise _fail("chat.title", f"{self.type} chats need a title")

        chat: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.type == "private":
            chat["first_name"] = self.first_name or "Test"
            if self.last_name is not None:
                chat["last_name"] = self.last_name
        else:
            chat["title"] = self.title
        if self.username is not None:
            chat["username"] = self.username
        if self.is_forum:
            chat["is_forum"] = True
        return chat


@dataclass(frozen=True)
class MockMe(_Builder):
    """Identity the mock server reports for getMe."""

    id: int = 1234567890
    first_name: str = "TestBot"
    username: str = "test_bot"
    can_join_groups: bool = True
    can_read_all_group_messages: bool = False
    supports_inline_queries: bool = False

    def build(self) -> dict[str, Any]:
        if self.id <= 0:
            raise _fail("me.id", "must be positive")
        if not self.username:
            raise _fail("me.username", "bots always have a username")
        return {
            "id": self.id,
            "is_bot": True,
            "first_name": self.first_name,
            "username": self.username,
            "can_join_groups": self.can_join_groups,
            "can_read_all_group_messages": self.can_read_all_group_messages,
            "supports_inline_queries": self.supports_inline_queries,
        }


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class _MockEvent(_Builder):
    user: MockUser = field(default_factory=MockUser)
    chat: MockChat | None = None
    date: int | None = None

    def with_user(self, user: MockUser) -> Self:
        return dataclasses.replace(self, user=user)

    def with_chat(self, chat: MockChat) -> Self:
        return dataclasses.replace(self, chat=chat)

    def _actors(self) -> tuple[dict[str, Any], dict[str, Any]]:
        user = self.user.build()
        chat = (self.chat or MockChat.private(self.user)).build()
        if chat["type"] == "private" and chat["id"] != user["id"]:
            raise _fail(
                "chat.id",
                f"private chat {chat['id']} does not belong to user {user['id']}",
            )
        return user, chat

    def _date(self) -> int:
        return self.date if self.date is not None else int(time.time())


@dataclass(frozen=True)
class _MockMessage(_MockEvent, ABC):
    message_id: int | None = None
    reply_to_message_id: int | None = None
    message_thread_id: int | None = None

    def with_message_id(self, message_id: int) -> Self:
        return dataclasses.replace(self, message_id=message_id)

    def replying_to(self, message_id: int) -> Self:
        return dataclasses.replace(self, reply_to_message_id=message_id)

    @abstractmethod
    def content(self) -> dict[str, Any]:
        """Kind-specific message fields (text, photo, contact and so on)."""

    def build(self, state: ConversationState | None = None) -> UpdateEnvelope:
        user, chat = self._actors()
        content = self.content()

        if state is not None:
            if self.message_id is not None and self.message_id < state.next_message_id:
                raise _fail(
                    "message_id",
                    f"{self.message_id} is already taken (next free id is {state.next_message_id})",
                )
            if (
                self.reply_to_message_id is not None
                and state.get_live_message(chat["id"], self.reply_to_message_id) is None
            ):
                raise _fail(
                    "reply_to_message_id",
                    f"message {self.reply_to_message_id} does not exist in chat {chat['id']}",
                )

        return UpdateEnvelope(
            kind=UpdateKind.MESSAGE,
            user=user,
            chat=chat,
            date=self._date(),
            content=content,
            message_id=self.message_id,
            reply_to_message_id=self.reply_to_message_id,
            message_thread_id=self.message_thread_id,
        )


@dataclass(frozen=True)
class MockMessageText(_MockMessage):
    text: str = "Hello"
    entities: tuple[dict[str, Any], ...] = ()

    def with_text(self, text: str) -> Self:
        return dataclasses.replace(self, text=text)

    def content(self) -> dict[str, Any]:
        if not self.text:
            raise _fail("text", "text messages need non-empty text")

        content: dict[str, Any] = {"text": self.text}
        entities = list(self.entities)
        # Commands arrive with a bot_command entity, like from real clients
        if not entities and self.text.startswith("/"):
            command = self.text.split(maxsplit=1)[0]
            entities = [{"type": "bot_command", "offset": 0, "length": len(command)}]
        if entities:
            content["entities"] = entities
        return content


@dataclass(frozen=True)
class MockMessagePhoto(_MockMessage):
    caption: str | None = None
    file_id: str | None = None
    width: int = 800
    height: int = 600
    file_size: int = 51200

    def with_caption(self, caption: str) -> Self:
        return dataclasses.replace(self, caption=caption)

    def content(self) -> dict[str, Any]:
        if self.width <= 0 or self.height <= 0:
            raise _fail("photo", "width and height must be positive")
        # Thumbnail first, full size last
        return {
            "photo": [
                {"file_id": None, "width": 90, "height": 90 * self.height // self.width or 1},
                {
                    "file_id": self.file_id,
                    "width": self.width,
                    "height": self.height,
                    "file_size": self.file_size,
                },
            ],
            "caption": self.caption,
        }


@dataclass(frozen=True)
class MockMessageDocument(_MockMessage):
    caption: str | None = None
    file_id: str | None = None
    file_name: str = "document.pdf"
    mime_type: str = "application/pdf"
    file_size: int = 1024

    def with_caption(self, caption: str) -> Self:
        return dataclasses.replace(self, caption=caption)

    def content(self) -> dict[str, Any]:
        return {
            "document": {
                "file_id": self.file_id,
                "file_name": self.file_name,
                "mime_type": self.mime_type,
                "file_size": self.file_size,
            },
            "caption": self.caption,
        }


@dataclass(frozen=True)
class MockMessageVideo(_MockMessage):
    caption: str | None = None
    file_id: str | None = None
    duration: int = 30
    width: int = 1280
    height: int = 720
    mime_type: str = "video/mp4"

    def with_caption(self, caption: str) -> Self:
        return dataclasses.replace(self, caption=caption)

    def content(self) -> dict[str, Any]:
        if self.duration < 0:
            raise _fail("video.duration", "must not be negative")
        return {
            "video": {
                "file_id": self.file_id,
                "duration": self.duration,
                "width": self.width,
                "height": self.height,
                "mime_type": self.mime_type,
            },
            "caption": self.caption,
        }


@dataclass(frozen=True)
class MockMessageVoice(_MockMessage):
    file_id: str | None = None
    duration: int = 5
    mime_type: str = "audio/ogg"

    def content(self) -> dict[str, Any]:
        if self.duration < 0:
            raise _fail("voice.duration", "must not be negative")
        return {
            "voice": {
                "file_id": self.file_id,
                "duration": self.duration,
                "mime_type": self.mime_type,
            },
        }


@dataclass(frozen=True)
class MockMessageContact(_MockMessage):
    phone_number: str = "+10000000000"
    first_name: str = "Test"
    last_name: str | None = None
    # Shared contact belongs to the sender unless stated otherwise
    contact_user_id: int | None = None

    def content(self) -> dict[str, Any]:
        if not self.phone_number:
            raise _fail("phone_number", "must not be empty")
        contact: dict[str, Any] = {
            "phone_number": self.phone_number,
            "first_name": self.first_name,
            "user_id": self.contact_user_id or self.user.id,
        }
        if self.last_name is not None:
            contact["last_name"] = self.last_name
        return {"contact": contact}


@dataclass(frozen=True)
class MockMessageLocation(_MockMessage):
    latitude: float = 52.52
    longitude: float = 13.405

    def content(self) -> dict[str, Any]:
        if not -90 <= self.latitude <= 90:
            raise _fail("latitude", f"{self.latitude} is out of range")
        if not -180 <= self.longitude <= 180:
            raise _fail("longitude", f"{self.longitude} is out of range")
        return {"location": {"latitude": self.latitude, "longitude": self.longitude}}


@dataclass(frozen=True)
class MockEditedMessage(_MockEvent):
    """User edits one of their text messages.

    Without ``message_id`` the user's latest message in the chat is edited.
    """

    text: str = "Edited"
    message_id: int | None = None

    def with_text(self, text: str) -> Self:
        return dataclasses.replace(self, text=text)

    def build(self, state: ConversationState | None = None) -> UpdateEnvelope:
        user, chat = self._actors()
        if not self.text:
            raise _fail("text", "edited messages need non-empty text")

        if state is not None and self.message_id is not None:
            target = state.get_live_message(chat["id"], self.message_id)
            if target is None:
                raise _fail("message_id", f"message {self.message_id} does not exist in chat {chat['id']}")
            if target.is_bot:
                raise _fail("message_id", f"message {self.message_id} was sent by the bot")

        return UpdateEnvelope(
            kind=UpdateKind.EDITED_MESSAGE,
            user=user,
            chat=chat,
            date=self._date(),
            content={"text": self.text},
            message_id=self.message_id,
        )


@dataclass(frozen=True)
class MockCallbackQuery(_MockEvent):
    """User presses an inline button.

    Without ``message_id`` the latest bot message in the chat is used.
    """

    data: str = "data"
    message_id: int | None = None

    def with_data(self, data: str) -> Self:
        return dataclasses.replace(self, data=data)

    def with_message_id(self, message_id: int) -> Self:
        return dataclasses.replace(self, message_id=message_id)

    def build(self, state: ConversationState | None = None) -> UpdateEnvelope:
        user, chat = self._actors()
        if len(self.data.encode()) > MAX_CALLBACK_DATA_BYTES:
            raise _fail("data", f"callback data is limited to {MAX_CALLBACK_DATA_BYTES} bytes")

        if (
            state is not None
            and self.message_id is not None
            and state.get_live_message(chat["id"], self.message_id) is None
        ):
            raise _fail("message_id", f"message {self.message_id} does not exist in chat {chat['id']}")

        return UpdateEnvelope(
            kind=UpdateKind.CALLBACK_QUERY,
            user=user,
            chat=chat,
            date=self._date(),
            message_id=self.message_id,
            data=self.data,
        )
