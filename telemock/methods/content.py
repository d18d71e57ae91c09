"""
Non-media content API method handlers.

Handles: sendLocation, sendVenue, sendContact, sendDice, sendPoll,
         sendChatAction
"""
import logging
from typing import Any

from telemock.errors import MalformedRequest
from telemock.methods.common import (
    MethodContext,
    parse_bool,
    require_list,
    require_str,
    resolve_chat,
    send_bot_message,
)
from telemock.state import ConversationState

logger = logging.getLogger("telemock.methods.content")

DEFAULT_DICE_EMOJI = "🎲"

# Highest value Telegram rolls for each dice emoji
DICE_RANGES = {
    "🎲": 6,
    "🎯": 6,
    "🎳": 6,
    "🏀": 5,
    "⚽": 5,
    "🎰": 64,
}

CHAT_ACTIONS = frozenset({
    "typing",
    "upload_photo",
    "record_video",
    "upload_video",
    "record_voice",
    "upload_voice",
    "upload_document",
    "choose_sticker",
    "find_location",
    "record_video_note",
    "upload_video_note",
})


def _coordinate(data: dict[str, Any], name: str, limit: float) -> float:
    value = data.get(name)
    if value is None:
        raise MalformedRequest(f"Bad Request: {name} is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRequest(f"Bad Request: {name} must be a number") from None
    if not -limit <= number <= limit:
        raise MalformedRequest(f"Bad Request: {name} is out of range")
    return number


def _location(data: dict[str, Any]) -> dict[str, Any]:
    location: dict[str, Any] = {
        "latitude": _coordinate(data, "latitude", 90),
        "longitude": _coordinate(data, "longitude", 180),
    }
    for optional in ("horizontal_accuracy", "live_period", "heading", "proximity_alert_radius"):
        if data.get(optional) is not None:
            location[optional] = data[optional]
    return location


def handle_send_location(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle sendLocation API call."""
    location = _location(data)
    message = send_bot_message(data, state, context, location=location)

    logger.debug(
        "sendLocation to chat %d: %.5f, %.5f",
        message["chat"]["id"],
        location["latitude"],
        location["longitude"],
    )
    return message


def handle_send_venue(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle sendVenue API call."""
    location = _location(data)
    venue: dict[str, Any] = {
        "location": location,
        "title": require_str(data, "title"),
        "address": require_str(data, "address"),
    }
    for optional in ("foursquare_id", "foursquare_type", "google_place_id", "google_place_type"):
        if data.get(optional) is not None:
            venue[optional] = data[optional]

    # Telegram fills both fields for venue messages
    return send_bot_message(data, state, context, venue=venue, location=location)


def handle_send_contact(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle sendContact API call."""
    contact: dict[str, Any] = {
        "phone_number": require_str(data, "phone_number"),
        "first_name": require_str(data, "first_name"),
    }
    if data.get("last_name") is not None:
        contact["last_name"] = data["last_name"]
    if data.get("vcard") is not None:
        contact["vcard"] = data["vcard"]

    return send_bot_message(data, state, context, contact=contact)


def handle_send_dice(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle sendDice API call.

    The rolled value is derived from the message id, so the same
    conversation always rolls the same numbers.
    """
    emoji = data.get("emoji") or DEFAULT_DICE_EMOJI
    if emoji not in DICE_RANGES:
        raise MalformedRequest("Bad Request: invalid dice emoji specified")

    value = 1 + state.next_message_id % DICE_RANGES[emoji]
    message = send_bot_message(data, state, context, dice={"emoji": emoji, "value": value})

    logger.debug("sendDice to chat %d: %s -> %d", message["chat"]["id"], emoji, value)
    return message


def handle_send_poll(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle sendPoll API call."""
    question = require_str(data, "question")
    raw_options = require_list(data, "options")
    if not 2 <= len(raw_options) <= 10:
        raise MalformedRequest("Bad Request: poll must have 2-10 options")

    options = []
    for option in raw_options:
        text = option.get("text") if isinstance(option, dict) else option
        if not isinstance(text, str) or not text:
            raise MalformedRequest("Bad Request: poll options must be non-empty strings")
        options.append({"text": text, "voter_count": 0})

    poll_type = data.get("type") or "regular"
    if poll_type not in ("regular", "quiz"):
        raise MalformedRequest("Bad Request: wrong poll type specified")

    poll: dict[str, Any] = {
        "id": f"poll_{state.next_message_id}",
        "question": question,
        "options": options,
        "total_voter_count": 0,
        "is_closed": parse_bool(data.get("is_closed", False)),
        "is_anonymous": parse_bool(data.get("is_anonymous", True)),
        "type": poll_type,
        "allows_multiple_answers": parse_bool(data.get("allows_multiple_answers", False)),
    }
    for optional in ("correct_option_id", "explanation", "open_period", "close_date"):
        if data.get(optional) is not None:
            poll[optional] = data[optional]

    return send_bot_message(data, state, context, poll=poll)


def handle_send_chat_action(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle sendChatAction API call. Nothing is stored."""
    chat = resolve_chat(data, state)
    action = require_str(data, "action")
    if action not in CHAT_ACTIONS:
        raise MalformedRequest("Bad Request: wrong parameter action in request")

    logger.debug("sendChatAction: chat=%d, action=%s", chat["id"], action)
    return True
