"""
Media-related API method handlers.

Handles: sendPhoto, sendVideo, sendAudio, sendVoice, sendVideoNote,
         sendAnimation, sendDocument, sendSticker, sendMediaGroup, getFile

A media field may be an uploaded file (multipart part or ``attach://``
reference), a file_id the server already knows, or any other string
(unknown file_id or URL). Known file_ids keep their stored metadata.
"""
import logging
from typing import Any

from telemock.errors import MalformedRequest, ReferenceNotFound
from telemock.methods.common import (
    MethodContext,
    UploadedFile,
    require_list,
    require_str,
    resolve_send_target,
    send_bot_message,
)
from telemock.state import ConversationState, FileRecord

logger = logging.getLogger("telemock.methods.media")

DEFAULT_MEDIA_DIMENSION = 100
DEFAULT_MEDIA_DURATION = 1

_MIME_TYPES = {
    "video": "video/mp4",
    "animation": "video/mp4",
    "audio": "audio/mpeg",
    "voice": "audio/ogg",
    "document": "application/octet-stream",
}


def _upload_source(value: Any, data: dict[str, Any], kind: str) -> UploadedFile | str:
    """Validate a media field and follow ``attach://`` references. Reads nothing from state."""
    if isinstance(value, str) and value.startswith("attach://"):
        attached = data.get(value.removeprefix("attach://"))
        if attached is None:
            raise MalformedRequest(f"Bad Request: file {value} is not attached")
        value = attached

    if isinstance(value, UploadedFile):
        return value
    if not isinstance(value, str) or not value:
        raise MalformedRequest(f"Bad Request: there is no {kind} in the request")
    return value


def _store_upload(
    source: UploadedFile | str,
    state: ConversationState,
    kind: str,
) -> tuple[FileRecord, str | None]:
    """Turn a validated media source into a stored FileRecord (and original filename)."""
    if isinstance(source, UploadedFile):
        file_id, file_unique_id = state.allocate_file_ids(kind)
        record = FileRecord(
            file_id=file_id,
            file_unique_id=file_unique_id,
            file_path=f"{kind}s/{file_unique_id}",
            file_size=len(source.content),
            content=source.content,
        )
        return state.store_file(record), source.filename

    known = state.get_file(source)
    if known is not None:
        return known, None

    if source.startswith(("http://", "https://")):
        file_id, file_unique_id = state.allocate_file_ids(kind)
        filename = source.rsplit("/", 1)[-1] or None
    else:
        # Unknown file_id: remember it so later getFile calls resolve
        file_id = source
        _, file_unique_id = state.allocate_file_ids(kind)
        filename = None

    record = FileRecord(
        file_id=file_id,
        file_unique_id=file_unique_id,
        file_path=f"{kind}s/{file_unique_id}",
    )
    return state.store_file(record), filename


def _media_object(
    kind: str,
    record: FileRecord,
    filename: str | None,
    params: dict[str, Any],
) -> Any:
    """Build the Bot API object describing one piece of media."""
    base: dict[str, Any] = {
        "file_id": record.file_id,
        "file_unique_id": record.file_unique_id,
    }
    if record.file_size is not None:
        base["file_size"] = record.file_size

    width = params.get("width") or DEFAULT_MEDIA_DIMENSION
    height = params.get("height") or DEFAULT_MEDIA_DIMENSION
    duration = params.get("duration") or DEFAULT_MEDIA_DURATION

    if kind == "photo":
        return [base | {"width": width, "height": height}]
    if kind in ("video", "animation"):
        shaped = base | {"width": width, "height": height, "duration": duration}
    elif kind == "video_note":
        shaped = base | {"length": params.get("length") or DEFAULT_MEDIA_DIMENSION, "duration": duration}
    elif kind in ("audio", "voice"):
        shaped = base | {"duration": duration}
    elif kind == "sticker":
        return base | {
            "type": "regular",
            "width": 512,
            "height": 512,
            "is_animated": False,
            "is_video": False,
            "emoji": params.get("emoji"),
        }
    else:
        shaped = dict(base)

    if kind in _MIME_TYPES:
        shaped["mime_type"] = _MIME_TYPES[kind]
    if filename and kind in ("document", "audio", "video", "animation"):
        shaped["file_name"] = filename
    return shaped


def _send_media(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
    kind: str,
) -> dict[str, Any]:
    if data.get(kind) is None:
        raise MalformedRequest(f"Bad Request: there is no {kind} in the request")

    source = _upload_source(data[kind], data, kind)
    target = resolve_send_target(data, state)

    # Validation is done; storing the file is the first state change
    record, filename = _store_upload(source, state, kind)
    media = _media_object(kind, record, filename, data)

    caption = data.get("caption") if kind not in ("video_note", "sticker") else None
    message = send_bot_message(
        data, state, context, target,
        caption=caption,
        caption_entities=data.get("caption_entities") if caption else None,
        **{kind: media},
    )

    logger.debug(
        "send %s to chat %d: message_id=%d, file_id=%s",
        kind,
        message["chat"]["id"],
        message["message_id"],
        record.file_id,
    )
    return message


def handle_send_photo(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendPhoto API call."""
    return _send_media(data, state, context, "photo")


def handle_send_video(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendVideo API call."""
    return _send_media(data, state, context, "video")


def handle_send_audio(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendAudio API call."""
    return _send_media(data, state, context, "audio")


def handle_send_voice(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendVoice API call."""
    return _send_media(data, state, context, "voice")


def handle_send_video_note(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendVideoNote API call (round video)."""
    return _send_media(data, state, context, "video_note")


def handle_send_animation(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendAnimation API call."""
    return _send_media(data, state, context, "animation")


def handle_send_document(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendDocument API call."""
    return _send_media(data, state, context, "document")


def handle_send_sticker(data: dict[str, Any], state: ConversationState, context: MethodContext) -> dict[str, Any]:
    """Handle sendSticker API call."""
    return _send_media(data, state, context, "sticker")


def handle_send_media_group(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> list[dict[str, Any]]:
    """Handle sendMediaGroup API call. Returns one Message per item."""
    items = require_list(data, "media")
    if not 2 <= len(items) <= 10:
        raise MalformedRequest("Bad Request: media must include 2-10 items")

    sources = []
    for item in items:
        if not isinstance(item, dict) or item.get("type") not in ("photo", "video", "audio", "document"):
            raise MalformedRequest("Bad Request: unsupported media type in media group")
        sources.append((item, _upload_source(item.get("media"), data, item["type"])))
    target = resolve_send_target(data, state)

    resolved = []
    for item, source in sources:
        record, filename = _store_upload(source, state, item["type"])
        resolved.append((item, _media_object(item["type"], record, filename, item)))

    media_group_id = f"group_{state.next_message_id}"
    messages = []
    for item, media in resolved:
        message = send_bot_message(
            data, state, context, target,
            caption=item.get("caption"),
            caption_entities=item.get("caption_entities"),
            media_group_id=media_group_id,
            **{item["type"]: media},
        )
        messages.append(message)

    logger.debug("sendMediaGroup: %d items, group=%s", len(messages), media_group_id)
    return messages


def handle_get_file(
    data: dict[str, Any],
    state: ConversationState,
    context: MethodContext,
) -> dict[str, Any]:
    """Handle getFile API call. Returns File object on success."""
    file_id = require_str(data, "file_id")

    record = state.get_file(file_id)
    if record is None:
        raise ReferenceNotFound("Bad Request: invalid file_id")

    logger.debug("getFile: file_id=%s -> %s", file_id, record.file_path)
    return record.to_file()
