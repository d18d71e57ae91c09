"""
Telegram API method handlers.

Each module handles a group of related API methods. The registry maps
Bot API method names to handlers; it is closed once built and every
server instance reads from it without modifying it.
"""
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from telemock.errors import UnsupportedMethod
from telemock.methods.bot_info import (
    handle_delete_my_commands,
    handle_delete_webhook,
    handle_get_me,
    handle_get_my_commands,
    handle_get_updates,
    handle_get_webhook_info,
    handle_set_my_commands,
)
from telemock.methods.callbacks import handle_answer_callback_query
from telemock.methods.chat import (
    handle_ban_chat_member,
    handle_pin_chat_message,
    handle_restrict_chat_member,
    handle_set_message_reaction,
    handle_unban_chat_member,
    handle_unpin_all_chat_messages,
    handle_unpin_chat_message,
)
from telemock.methods.common import MethodContext, UploadedFile
from telemock.methods.content import (
    handle_send_chat_action,
    handle_send_contact,
    handle_send_dice,
    handle_send_location,
    handle_send_poll,
    handle_send_venue,
)
from telemock.methods.media import (
    handle_get_file,
    handle_send_animation,
    handle_send_audio,
    handle_send_document,
    handle_send_media_group,
    handle_send_photo,
    handle_send_sticker,
    handle_send_video,
    handle_send_video_note,
    handle_send_voice,
)
from telemock.methods.messages import (
    handle_copy_message,
    handle_delete_message,
    handle_delete_messages,
    handle_edit_message_caption,
    handle_edit_message_reply_markup,
    handle_edit_message_text,
    handle_forward_message,
    handle_send_message,
)

Handler = Callable[..., Any]


@dataclass(frozen=True)
class MethodSpec:
    """One emulated Bot API method."""

    name: str
    handler: Handler


class MethodRegistry:
    """Closed, case-insensitive mapping of method names to handlers."""

    def __init__(self, specs: Iterable[MethodSpec]) -> None:
        self._specs: dict[str, MethodSpec] = {}
        for spec in specs:
            if not callable(spec.handler):
                raise TypeError(f"Handler for {spec.name!r} is not callable")
            key = spec.name.lower()
            if key in self._specs:
                raise ValueError(f"Method {spec.name!r} is registered twice")
            self._specs[key] = spec

    def resolve(self, method: str) -> MethodSpec:
        """Find the spec for ``method`` or raise UnsupportedMethod."""
        spec = self._specs.get(method.lower())
        if spec is None:
            raise UnsupportedMethod(method)
        return spec

    def __contains__(self, method: object) -> bool:
        return isinstance(method, str) and method.lower() in self._specs

    def __iter__(self) -> Iterator[MethodSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self._specs.values()]


DEFAULT_REGISTRY = MethodRegistry([
    # Messages
    MethodSpec("sendMessage", handle_send_message),
    MethodSpec("editMessageText", handle_edit_message_text),
    MethodSpec("editMessageReplyMarkup", handle_edit_message_reply_markup),
    MethodSpec("editMessageCaption", handle_edit_message_caption),
    MethodSpec("deleteMessage", handle_delete_message),
    MethodSpec("deleteMessages", handle_delete_messages),
    MethodSpec("forwardMessage", handle_forward_message),
    MethodSpec("copyMessage", handle_copy_message),
    # Media
    MethodSpec("sendPhoto", handle_send_photo),
    MethodSpec("sendVideo", handle_send_video),
    MethodSpec("sendAudio", handle_send_audio),
    MethodSpec("sendVoice", handle_send_voice),
    MethodSpec("sendVideoNote", handle_send_video_note),
    MethodSpec("sendAnimation", handle_send_animation),
    MethodSpec("sendDocument", handle_send_document),
    MethodSpec("sendSticker", handle_send_sticker),
    MethodSpec("sendMediaGroup", handle_send_media_group),
    MethodSpec("getFile", handle_get_file),
    # Content
    MethodSpec("sendLocation", handle_send_location),
    MethodSpec("sendVenue", handle_send_venue),
    MethodSpec("sendContact", handle_send_contact),
    MethodSpec("sendDice", handle_send_dice),
    MethodSpec("sendPoll", handle_send_poll),
    MethodSpec("sendChatAction", handle_send_chat_action),
    # Chat administration
    MethodSpec("pinChatMessage", handle_pin_chat_message),
    MethodSpec("unpinChatMessage", handle_unpin_chat_message),
    MethodSpec("unpinAllChatMessages", handle_unpin_all_chat_messages),
    MethodSpec("banChatMember", handle_ban_chat_member),
    MethodSpec("unbanChatMember", handle_unban_chat_member),
    MethodSpec("restrictChatMember", handle_restrict_chat_member),
    MethodSpec("setMessageReaction", handle_set_message_reaction),
    # Callbacks
    MethodSpec("answerCallbackQuery", handle_answer_callback_query),
    # Bot
    MethodSpec("getMe", handle_get_me),
    MethodSpec("setMyCommands", handle_set_my_commands),
    MethodSpec("getMyCommands", handle_get_my_commands),
    MethodSpec("deleteMyCommands", handle_delete_my_commands),
    MethodSpec("getUpdates", handle_get_updates),
    MethodSpec("deleteWebhook", handle_delete_webhook),
    MethodSpec("getWebhookInfo", handle_get_webhook_info),
])

__all__ = [
    "DEFAULT_REGISTRY",
    "MethodContext",
    "MethodRegistry",
    "MethodSpec",
    "UploadedFile",
]
