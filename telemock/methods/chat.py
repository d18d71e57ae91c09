"""
Chat administration API method handlers.

Handles: pinChatMessage, unpinChatMessage, unpinAllChatMessages,
         banChatMember, unbanChatMember, restrictChatMember,
         setMessageReaction
"""
import logging
from typing import Any

from telemock.errors import MalformedRequest
from telemock.methods.common import (
    MethodContext,
    optional_int,
    parse_bool,
    require_int,
    require_message,
    resolve_chat,
)
from telemock.state import ConversationState

logger = logging.getLogger("telemock.methods.chat")

BANNED = "kicked"


def handle_pin_chat_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle pinChatMessage API call."""
    chat = resolve_chat(data, state)
    message_id = require_int(data, "message_id")
    require_message(state, chat["id"], message_id, "pin")

    state.set_pinned(chat["id"], message_id, True)
    logger.debug("pinChatMessage: chat=%d, message=%d", chat["id"], message_id)
    return True


def handle_unpin_chat_message(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle unpinChatMessage API call.

    Without message_id the most recently pinned message is unpinned.
    """
    chat = resolve_chat(data, state)
    message_id = optional_int(data, "message_id")

    if message_id is None:
        pinned = state.get_last_pinned(chat["id"])
        if pinned is not None:
            state.set_pinned(chat["id"], pinned.message_id, False)
        return True

    require_message(state, chat["id"], message_id, "unpin")
    state.set_pinned(chat["id"], message_id, False)
    logger.debug("unpinChatMessage: chat=%d, message=%d", chat["id"], message_id)
    return True


def handle_unpin_all_chat_messages(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle unpinAllChatMessages API call."""
    chat = resolve_chat(data, state)
    count = state.unpin_all(chat["id"])
    logger.debug("unpinAllChatMessages: chat=%d, unpinned=%d", chat["id"], count)
    return True


def handle_ban_chat_member(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle banChatMember API call.

    With revoke_messages every message the user sent to the chat is
    deleted as well.
    """
    chat = resolve_chat(data, state)
    user_id = require_int(data, "user_id")
    if user_id == context.me["id"]:
        raise MalformedRequest("Bad Request: can't ban self")

    state.set_member_status(chat["id"], user_id, BANNED)

    revoked = 0
    if parse_bool(data.get("revoke_messages", False)):
        for message in state.get_user_messages(chat["id"]):
            if message.from_user_id == user_id and state.delete_message(chat["id"], message.message_id):
                revoked += 1

    logger.debug(
        "banChatMember: chat=%d, user=%d, revoked=%d",
        chat["id"],
        user_id,
        revoked,
    )
    return True


def handle_unban_chat_member(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle unbanChatMember API call."""
    chat = resolve_chat(data, state)
    user_id = require_int(data, "user_id")

    only_if_banned = parse_bool(data.get("only_if_banned", False))
    if only_if_banned and state.get_member_status(chat["id"], user_id) != BANNED:
        return True

    state.clear_member_status(chat["id"], user_id)
    logger.debug("unbanChatMember: chat=%d, user=%d", chat["id"], user_id)
    return True


def handle_restrict_chat_member(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle restrictChatMember API call."""
    chat = resolve_chat(data, state)
    user_id = require_int(data, "user_id")
    if chat["type"] == "private":
        raise MalformedRequest("Bad Request: method is available only for supergroups")

    permissions = data.get("permissions")
    if not isinstance(permissions, dict):
        raise MalformedRequest("Bad Request: permissions is required")

    state.set_member_status(chat["id"], user_id, permissions)
    logger.debug("restrictChatMember: chat=%d, user=%d", chat["id"], user_id)
    return True


def handle_set_message_reaction(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle setMessageReaction API call."""
    chat = resolve_chat(data, state)
    message_id = require_int(data, "message_id")
    message = require_message(state, chat["id"], message_id, "react")

    reaction = data.get("reaction") or []
    if not isinstance(reaction, list):
        raise MalformedRequest("Bad Request: reaction must be an array")

    # Reactions are not part of the Message object; keep them out of the payload
    logger.debug(
        "setMessageReaction: chat=%d, message=%d, reactions=%d",
        chat["id"],
        message.message_id,
        len(reaction),
    )
    return True
