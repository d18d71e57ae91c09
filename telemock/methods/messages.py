"""
Message-related API method handlers.

Handles: sendMessage, editMessageText, editMessageReplyMarkup,
         editMessageCaption, deleteMessage, deleteMessages,
         forwardMessage, copyMessage
"""
import copy
import logging
from typing import Any

from telemock.errors import MalformedRequest, ReferenceNotFound
from telemock.methods.common import (
    MethodContext,
    optional_int,
    parse_bool,
    require_int,
    require_list,
    require_message,
    require_str,
    resolve_chat,
    safe_int,
    send_bot_message,
)
from telemock.responses import make_message
from telemock.state import ConversationState, StoredMessage

logger = logging.getLogger("telemock.methods.messages")

NOT_MODIFIED = (
    "Bad Request: message is not modified: specified new message content and "
    "reply markup are exactly the same as a current content and reply markup "
    "of the message"
)


def _inline_markup(markup: Any) -> dict[str, Any] | None:
    if isinstance(markup, dict) and "inline_keyboard" in markup:
        return markup
    return None


def _edit_target(
    data: dict[str, Any],
    state: ConversationState,
) -> StoredMessage | None:
    """Resolve chat_id+message_id, or None for inline messages."""
    if data.get("inline_message_id") is not None:
        return None
    if data.get("chat_id") is None or data.get("message_id") is None:
        raise MalformedRequest(
            "Bad Request: chat_id and message_id or inline_message_id are required"
        )
    chat = resolve_chat(data, state)
    message_id = require_int(data, "message_id")
    return require_message(state, chat["id"], message_id, "edit")


def handle_send_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle sendMessage API call."""
    text = require_str(data, "text")

    message = send_bot_message(
        data, state, context,
        text=text,
        entities=data.get("entities"),
        link_preview_options=data.get("link_preview_options"),
    )

    logger.debug(
        "sendMessage to chat %d: message_id=%d, text=%s",
        message["chat"]["id"],
        message["message_id"],
        text[:50],
    )
    return message


def handle_edit_message_text(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any] | bool:
    """Handle editMessageText API call."""
    text = require_str(data, "text")
    stored = _edit_target(data, state)
    if stored is None:
        return True

    if "text" not in stored.payload:
        raise MalformedRequest("Bad Request: there is no text in the message to edit")

    new_markup = _inline_markup(data.get("reply_markup"))
    if stored.payload.get("text") == text and stored.reply_markup == new_markup:
        raise MalformedRequest(NOT_MODIFIED)

    stored = state.edit_message(
        stored.chat_id,
        stored.message_id,
        text=text,
        entities=data.get("entities"),
        reply_markup=new_markup,
    )

    logger.debug(
        "editMessageText: chat=%d, message=%d, text=%s",
        stored.chat_id,
        stored.message_id,
        text[:50],
    )
    return copy.deepcopy(stored.payload)


def handle_edit_message_reply_markup(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any] | bool:
    """Handle editMessageReplyMarkup API call."""
    stored = _edit_target(data, state)
    if stored is None:
        return True

    new_markup = _inline_markup(data.get("reply_markup"))
    if stored.reply_markup == new_markup:
        raise MalformedRequest(NOT_MODIFIED)

    stored = state.edit_message(stored.chat_id, stored.message_id, reply_markup=new_markup)

    logger.debug(
        "editMessageReplyMarkup: chat=%d, message=%d",
        stored.chat_id,
        stored.message_id,
    )
    return copy.deepcopy(stored.payload)


def handle_edit_message_caption(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any] | bool:
    """Handle editMessageCaption API call."""
    stored = _edit_target(data, state)
    if stored is None:
        return True

    if "text" in stored.payload:
        raise MalformedRequest("Bad Request: there is no caption in the message to edit")

    caption = data.get("caption")
    new_markup = _inline_markup(data.get("reply_markup"))
    if stored.payload.get("caption") == caption and stored.reply_markup == new_markup:
        raise MalformedRequest(NOT_MODIFIED)

    stored = state.edit_message(
        stored.chat_id,
        stored.message_id,
        caption=caption,
        caption_entities=data.get("caption_entities"),
        reply_markup=new_markup,
    )
    return copy.deepcopy(stored.payload)


def handle_delete_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle deleteMessage API call."""
    chat = resolve_chat(data, state)
    message_id = require_int(data, "message_id")

    if not state.delete_message(chat["id"], message_id):
        raise ReferenceNotFound("Bad Request: message to delete not found")

    logger.debug("deleteMessage: chat=%d, message=%d", chat["id"], message_id)
    return True


def handle_delete_messages(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle deleteMessages API call (batch delete).

    Like Telegram, ids that cannot be deleted are skipped silently.
    """
    chat = resolve_chat(data, state)
    message_ids = require_list(data, "message_ids")

    deleted = 0
    for raw_id in message_ids:
        message_id = safe_int(raw_id)
        if message_id is not None and state.delete_message(chat["id"], message_id):
            deleted += 1

    logger.debug(
        "deleteMessages: chat=%d, requested=%d, deleted=%d",
        chat["id"],
        len(message_ids),
        deleted,
    )
    return True


def _forward_origin(source: StoredMessage) -> dict[str, Any]:
    payload = source.payload
    chat = payload["chat"]
    if chat.get("type") == "channel":
        return {
            "type": "channel",
            "date": payload["date"],
            "chat": chat,
            "message_id": source.message_id,
        }
    if "from" in payload:
        return {"type": "user", "date": payload["date"], "sender_user": payload["from"]}
    return {"type": "hidden_user", "date": payload["date"], "sender_user_name": "Unknown user"}


def _source_message(
    data: dict[str, Any],
    state: ConversationState,
    action: str,
) -> StoredMessage:
    from_chat = resolve_chat(data, state, "from_chat_id")
    message_id = require_int(data, "message_id")
    source = require_message(state, from_chat["id"], message_id, action)
    if source.has_protected_content:
        raise MalformedRequest("Bad Request: message can't be forwarded")
    return source


_COPIED_FIELDS = (
    "text", "entities", "caption", "caption_entities", "photo", "video", "audio",
    "voice", "video_note", "animation", "document", "sticker", "contact",
    "location", "venue", "dice", "poll",
)


def handle_forward_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle forwardMessage API call."""
    source = _source_message(data, state, "forward")
    chat = resolve_chat(data, state)
    message_thread_id = optional_int(data, "message_thread_id")

    content = {k: copy.deepcopy(v) for k, v in source.payload.items() if k in _COPIED_FIELDS}
    message = make_message(
        message_id=state.allocate_message_id(),
        date=int(context.now),
        chat=chat,
        from_user=context.bot_user,
        message_thread_id=message_thread_id,
        forward_origin=_forward_origin(source),
        **content,
    )
    if parse_bool(data.get("protect_content", False)):
        message["has_protected_content"] = True
    state.add_message(message, is_bot=True)

    logger.debug(
        "forwardMessage: %d/%d -> chat %d as %d",
        source.chat_id,
        source.message_id,
        chat["id"],
        message["message_id"],
    )
    return message


def handle_copy_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle copyMessage API call. Returns a MessageId object."""
    source = _source_message(data, state, "copy")

    content = {
        k: copy.deepcopy(v)
        for k, v in source.payload.items()
        if k in _COPIED_FIELDS and k not in ("caption", "caption_entities")
    }
    if "caption" in data:
        content["caption"] = data["caption"]
        content["caption_entities"] = data.get("caption_entities")
    elif "caption" in source.payload:
        content["caption"] = source.payload["caption"]
        content["caption_entities"] = source.payload.get("caption_entities")

    message = send_bot_message(data, state, context, **content)
    return {"message_id": message["message_id"]}
