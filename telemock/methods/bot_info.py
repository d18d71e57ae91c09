"""
Bot-level API method handlers.

Handles: getMe, setMyCommands, getMyCommands, deleteMyCommands,
         getUpdates, deleteWebhook, getWebhookInfo
"""
import json
import logging
from typing import Any

from telemock.errors import MalformedRequest
from telemock.methods.common import MethodContext
from telemock.state import ConversationState

logger = logging.getLogger("telemock.methods.bot_info")


def _commands_key(data: dict[str, Any]) -> str:
    scope = data.get("scope") or {"type": "default"}
    return json.dumps([scope, data.get("language_code") or ""], sort_keys=True)


def handle_get_me(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle getMe API call."""
    return dict(context.me)


def handle_set_my_commands(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle setMyCommands API call."""
    commands = data.get("commands")
    if not isinstance(commands, list):
        raise MalformedRequest("Bad Request: commands is required")

    for command in commands:
        if not isinstance(command, dict) or not command.get("command") or not command.get("description"):
            raise MalformedRequest("Bad Request: command and description are required")

    state.set_commands(_commands_key(data), commands)
    logger.debug("setMyCommands: %d commands", len(commands))
    return True


def handle_get_my_commands(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> list[dict[str, Any]]:
    """Handle getMyCommands API call."""
    return state.get_commands(_commands_key(data))


def handle_delete_my_commands(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle deleteMyCommands API call."""
    state.delete_commands(_commands_key(data))
    return True


def handle_get_updates(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> list[Any]:
    """Handle getUpdates API call (returns empty list).

    Updates are pushed by the test client, never polled.
    """
    return []


def handle_delete_webhook(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle deleteWebhook API call."""
    return True


def handle_get_webhook_info(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle getWebhookInfo API call."""
    return {"url": "", "has_custom_certificate": False, "pending_update_count": 0}
