"""
Generate realistic Telegram API responses.

Creates JSON payloads that aiogram parses into its own types.
"""
from typing import Any


def make_ok_response(result: Any) -> dict[str, Any]:
    """Create successful Telegram API response."""
    return {"ok": True, "result": result}


def make_error_response(description: str, error_code: int = 400) -> dict[str, Any]:
    """Create error Telegram API response."""
    return {
        "ok": False,
        "error_code": error_code,
        "description": description,
    }


def make_chat(chat_id: int, username: str | None = None) -> dict[str, Any]:
    """Create a Chat object for a chat the server has not seen before."""
    if chat_id > 0:
        chat: dict[str, Any] = {"id": chat_id, "type": "private", "first_name": "Test"}
    elif str(chat_id).startswith("-100"):
        chat = {"id": chat_id, "type": "supergroup", "title": "Test Supergroup"}
    else:
        chat = {"id": chat_id, "type": "group", "title": "Test Group"}

    if username is not None:
        chat["username"] = username.lstrip("@")
    return chat


def make_message(
    message_id: int,
    date: int,
    chat: dict[str, Any],
    from_user: dict[str, Any] | None,
    *,
    text: str | None = None,
    caption: str | None = None,
    reply_markup: dict[str, Any] | None = None,
    message_thread_id: int | None = None,
    reply_to_message: dict[str, Any] | None = None,
    **content: Any,
) -> dict[str, Any]:
    """Create Message object for send*/edit* responses.

    ``content`` carries the media or service fields (``photo``, ``document``,
    ``dice``...) and is copied as is. ``None`` values are dropped.
    """
    message: dict[str, Any] = {
        "message_id": message_id,
        "date": date,
        "chat": chat,
    }
    if from_user is not None:
        message["from"] = from_user

    if text is not None:
        message["text"] = text
    if caption is not None:
        message["caption"] = caption
    if message_thread_id is not None:
        message["message_thread_id"] = message_thread_id
    if reply_to_message is not None:
        message["reply_to_message"] = reply_to_message

    # ReplyKeyboardMarkup is never echoed back by Telegram
    if reply_markup is not None and "inline_keyboard" in reply_markup:
        message["reply_markup"] = reply_markup

    message.update({key: value for key, value in content.items() if value is not None})
    return message
