"""
Update feed: holds the next inbound event and turns it into an aiogram Update.

Injecting an event never touches server state. Materializing it, done once
per dispatch, allocates update/message/callback ids and records the
inbound message in the instance's ConversationState.
"""
import copy
import logging
from typing import Any

from aiogram.types import Update

from telemock.errors import SetupFailure, StateAssertionError
from telemock.responses import make_message
from telemock.state import FILE_FIELDS, ConversationState, StoredMessage
from telemock.updates import UpdateEnvelope, UpdateKind

logger = logging.getLogger("telemock.feed")

PLACEHOLDER_TEXT = "Placeholder message"


class UpdateFeed:
    """Single pending inbound event for one mock instance."""

    def __init__(self, envelope: UpdateEnvelope | None = None) -> None:
        self._pending = envelope

    @property
    def pending(self) -> UpdateEnvelope | None:
        return self._pending

    def inject(self, envelope: UpdateEnvelope) -> None:
        """Replace the pending event."""
        self._pending = envelope
        logger.debug("Injected %s event for chat %d", envelope.kind, envelope.chat["id"])

    def materialize(self, state: ConversationState, me: dict[str, Any]) -> Update:
        """Allocate ids for the pending event and record it in ``state``."""
        envelope = self._pending
        if envelope is None:
            raise SetupFailure("No update to dispatch: call update() first")

        state.remember_chat(envelope.chat)

        if envelope.kind is UpdateKind.MESSAGE:
            payload = {"message": self._new_message(envelope, state)}
        elif envelope.kind is UpdateKind.EDITED_MESSAGE:
            payload = {"edited_message": self._edited_message(envelope, state)}
        else:
            payload = {"callback_query": self._callback_query(envelope, state, me)}

        update_id = state.allocate_update_id()
        logger.debug("Materialized update %d (%s)", update_id, envelope.kind)
        return Update.model_validate({"update_id": update_id, **payload})

    # =========================================================================
    # Event kinds
    # =========================================================================

    @staticmethod
    def _new_message(envelope: UpdateEnvelope, state: ConversationState) -> dict[str, Any]:
        chat_id = envelope.chat["id"]

        reply_to_message = None
        if envelope.reply_to_message_id is not None:
            target = state.get_live_message(chat_id, envelope.reply_to_message_id)
            if target is None:
                raise StateAssertionError(
                    f"reply_to_message_id: message {envelope.reply_to_message_id} "
                    f"does not exist in chat {chat_id}"
                )
            reply_to_message = dict(target.payload)
            reply_to_message.pop("reply_to_message", None)

        if envelope.message_id is not None:
            try:
                message_id = state.claim_message_id(envelope.message_id)
            except ValueError as e:
                raise StateAssertionError(f"message_id: {e}") from None
        else:
            message_id = state.allocate_message_id()

        content = copy.deepcopy(envelope.content)
        _assign_file_ids(content, state)

        payload = make_message(
            message_id=message_id,
            date=envelope.date,
            chat=envelope.chat,
            from_user=envelope.user,
            message_thread_id=envelope.message_thread_id,
            reply_to_message=reply_to_message,
            **content,
        )
        state.add_message(payload, is_bot=False)
        return payload

    @staticmethod
    def _edited_message(envelope: UpdateEnvelope, state: ConversationState) -> dict[str, Any]:
        chat_id = envelope.chat["id"]
        if envelope.message_id is not None:
            target = state.get_live_message(chat_id, envelope.message_id)
        else:
            own = [m for m in state.get_user_messages(chat_id) if m.from_user_id == envelope.user["id"]]
            target = own[-1] if own else None

        if target is None:
            raise StateAssertionError(f"message_id: no message of the user to edit in chat {chat_id}")

        edited = state.edit_message(chat_id, target.message_id, **envelope.content)
        return copy.deepcopy(edited.payload)

    @staticmethod
    def _callback_query(
        envelope: UpdateEnvelope,
        state: ConversationState,
        me: dict[str, Any],
    ) -> dict[str, Any]:
        chat_id = envelope.chat["id"]
        if envelope.message_id is not None:
            target = state.get_live_message(chat_id, envelope.message_id)
            if target is None:
                raise StateAssertionError(
                    f"message_id: message {envelope.message_id} does not exist in chat {chat_id}"
                )
        else:
            target = state.get_last_bot_message(chat_id) or _placeholder(envelope, state, me)

        record = state.register_callback_query(chat_id, target.message_id, envelope.data)
        return {
            "id": record.callback_query_id,
            "from": envelope.user,
            "chat_instance": str(chat_id),
            "message": copy.deepcopy(target.payload),
            "data": envelope.data,
        }


def _assign_file_ids(content: dict[str, Any], state: ConversationState) -> None:
    """Give every file in an inbound message an id unless the test chose one."""
    for kind in FILE_FIELDS:
        media = content.get(kind)
        if not media:
            continue
        for item in media if isinstance(media, list) else [media]:
            file_id, file_unique_id = state.allocate_file_ids(kind)
            if item.get("file_id") is None:
                item["file_id"] = file_id
            item.setdefault("file_unique_id", file_unique_id)


def _placeholder(
    envelope: UpdateEnvelope,
    state: ConversationState,
    me: dict[str, Any],
) -> StoredMessage:
    # Button pressed before the bot said anything in this chat
    payload = make_message(
        message_id=state.allocate_message_id(),
        date=envelope.date,
        chat=envelope.chat,
        from_user={
            "id": me["id"],
            "is_bot": True,
            "first_name": me["first_name"],
            "username": me.get("username"),
        },
        text=PLACEHOLDER_TEXT,
    )
    return state.add_message(payload, is_bot=True)
