"""
Callback query related API method handlers.

Handles: answerCallbackQuery
"""
import logging
from typing import Any

from telemock.errors import MalformedRequest, ReferenceNotFound
from telemock.methods.common import MethodContext, parse_bool
from telemock.state import ConversationState

logger = logging.getLogger("telemock.methods.callbacks")

MAX_ANSWER_TEXT_LENGTH = 200


def handle_answer_callback_query(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> bool:
    """Handle answerCallbackQuery API call."""
    callback_query_id = data.get("callback_query_id")
    if callback_query_id is None or callback_query_id == "":
        raise MalformedRequest("Bad Request: callback_query_id is required")

    record = state.get_callback_query(str(callback_query_id))
    if record is None:
        raise ReferenceNotFound(
            "Bad Request: query is too old and response timeout expired or query ID is invalid"
        )

    text = data.get("text")
    if text is not None and len(str(text)) > MAX_ANSWER_TEXT_LENGTH:
        raise MalformedRequest("Bad Request: MESSAGE_TOO_LONG")

    record.answered = True
    record.answer = {
        "text": text,
        "show_alert": parse_bool(data.get("show_alert", False)),
        "url": data.get("url"),
    }

    logger.debug(
        "answerCallbackQuery: id=%s, text=%s",
        callback_query_id,
        text,
    )
    return True
