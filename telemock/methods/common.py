"""
Helpers shared by the API method handlers.

Handlers receive the parsed request payload, the instance's
ConversationState and a MethodContext, and either return the Bot API
``result`` value or raise a MethodError.
"""
import time
from dataclasses import dataclass, field
from typing import Any

from telemock.errors import MalformedRequest, ReferenceNotFound
from telemock.state import ConversationState, StoredMessage
from telemock.responses import make_message

# Chat id used for "@username" targets the server has never seen
DEFAULT_USERNAME_CHAT_ID = 123456789


@dataclass(frozen=True)
class UploadedFile:
    """File part of a multipart request."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class MethodContext:
    """Per-instance, per-call information handlers may need."""

    me: dict[str, Any]
    now: float = field(default_factory=time.time)

    @property
    def bot_user(self) -> dict[str, Any]:
        return {
            "id": self.me["id"],
            "is_bot": True,
            "first_name": self.me["first_name"],
            "username": self.me.get("username"),
        }


def safe_int(value: Any) -> int | None:
    """Safely convert value to int, return None on failure."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def require_int(data: dict[str, Any], name: str) -> int:
    if data.get(name) is None:
        raise MalformedRequest(f"Bad Request: {name} is required")
    value = safe_int(data[name])
    if value is None:
        raise MalformedRequest(f"Bad Request: {name} must be an integer")
    return value


def optional_int(data: dict[str, Any], name: str) -> int | None:
    if data.get(name) is None:
        return None
    return require_int(data, name)


def require_str(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None or value == "":
        raise MalformedRequest(f"Bad Request: {name} is required")
    if not isinstance(value, str):
        raise MalformedRequest(f"Bad Request: {name} must be a string")
    return value


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def require_list(data: dict[str, Any], name: str) -> list[Any]:
    value = data.get(name)
    if not value:
        raise MalformedRequest(f"Bad Request: {name} is required")
    if not isinstance(value, list):
        raise MalformedRequest(f"Bad Request: {name} must be an array")
    return value


def resolve_chat(
    data: dict[str, Any],
    state: ConversationState,
    name: str = "chat_id",
) -> dict[str, Any]:
    """Resolve a numeric or ``@username`` chat reference into a Chat object."""
    raw = data.get(name)
    if raw is None or raw == "":
        raise MalformedRequest(f"Bad Request: {name} is required")

    if isinstance(raw, str) and raw.startswith("@"):
        chat = state.find_chat_by_username(raw)
        if chat is not None:
            return chat
        return state.get_chat(DEFAULT_USERNAME_CHAT_ID)

    chat_id = safe_int(raw)
    if chat_id is None:
        raise MalformedRequest(f"Bad Request: {name} must be an integer or @username")
    return state.get_chat(chat_id)


def require_message(
    state: ConversationState,
    chat_id: int,
    message_id: int,
    action: str,
) -> StoredMessage:
    """Look up a live message or fail the way Telegram does."""
    message = state.get_live_message(chat_id, message_id)
    if message is None:
        raise ReferenceNotFound(f"Bad Request: message to {action} not found")
    return message


def reply_target(
    data: dict[str, Any],
    state: ConversationState,
    chat_id: int,
) -> dict[str, Any] | None:
    """Message being replied to, from reply_parameters or reply_to_message_id."""
    params = data.get("reply_parameters")
    message_id = None
    if isinstance(params, dict):
        message_id = safe_int(params.get("message_id"))
        chat_id = safe_int(params.get("chat_id")) or chat_id
        allow_missing = parse_bool(params.get("allow_sending_without_reply", False))
    else:
        message_id = safe_int(data.get("reply_to_message_id"))
        allow_missing = parse_bool(data.get("allow_sending_without_reply", False))

    if message_id is None:
        return None

    message = state.get_live_message(chat_id, message_id)
    if message is None:
        if allow_missing:
            return None
        raise ReferenceNotFound("Bad Request: message to reply not found")

    reply = dict(message.payload)
    reply.pop("reply_to_message", None)
    return reply


@dataclass(frozen=True)
class SendTarget:
    """Validated destination of a send* call."""

    chat: dict[str, Any]
    message_thread_id: int | None = None
    reply_to_message: dict[str, Any] | None = None


def resolve_send_target(data: dict[str, Any], state: ConversationState) -> SendTarget:
    """Validate chat_id, message_thread_id and reply parameters. Reads state only."""
    chat = resolve_chat(data, state)
    return SendTarget(
        chat=chat,
        message_thread_id=optional_int(data, "message_thread_id"),
        reply_to_message=reply_target(data, state, chat["id"]),
    )


def send_bot_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
    target: SendTarget | None = None,
    **content: Any,
) -> dict[str, Any]:
    """Allocate, store and return a message sent by the bot.

    Picks up the fields every send* method shares: chat_id, reply
    parameters, reply_markup, message_thread_id and protect_content.
    Callers that change state before sending pass a ``target`` they
    resolved up front.
    """
    if target is None:
        target = resolve_send_target(data, state)

    # Validation is done; from here on the call always succeeds
    payload = make_message(
        message_id=state.allocate_message_id(),
        date=int(context.now),
        chat=target.chat,
        from_user=context.bot_user,
        reply_markup=data.get("reply_markup"),
        message_thread_id=target.message_thread_id,
        reply_to_message=target.reply_to_message,
        **content,
    )
    if parse_bool(data.get("protect_content", False)):
        payload["has_protected_content"] = True

    state.add_message(payload, is_bot=True)
    return payload
