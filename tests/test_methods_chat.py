"""
Tests for content, chat administration, callback and bot-level handlers.
"""
import pytest

from telemock.errors import MalformedRequest, ReferenceNotFound
from telemock.methods import MethodContext
from telemock.methods.bot_info import (
    handle_delete_my_commands,
    handle_get_me,
    handle_get_my_commands,
    handle_get_updates,
    handle_set_my_commands,
)
from telemock.methods.callbacks import handle_answer_callback_query
from telemock.methods.chat import (
    BANNED,
    handle_ban_chat_member,
    handle_pin_chat_message,
    handle_restrict_chat_member,
    handle_set_message_reaction,
    handle_unban_chat_member,
    handle_unpin_all_chat_messages,
    handle_unpin_chat_message,
)
from telemock.methods.content import (
    handle_send_chat_action,
    handle_send_contact,
    handle_send_dice,
    handle_send_location,
    handle_send_poll,
    handle_send_venue,
)
from telemock.methods.messages import handle_send_message
from telemock.responses import make_message
from telemock.state import ConversationState

CHAT_ID = 123
GROUP_ID = -1001234567890
USER_ID = 555


def _bot_message(state: ConversationState, context: MethodContext, chat_id: int = CHAT_ID) -> int:
    return handle_send_message({"chat_id": chat_id, "text": "Hi"}, state, context)["message_id"]


def _user_message(state: ConversationState, chat_id: int, user_id: int) -> int:
    payload = make_message(
        message_id=state.allocate_message_id(),
        date=1705320000,
        chat={"id": chat_id, "type": "supergroup", "title": "Group"},
        from_user={"id": user_id, "is_bot": False, "first_name": "Spam"},
        text="spam",
    )
    return state.add_message(payload, is_bot=False).message_id


class TestContent:
    """Test location, venue, contact, dice, poll and chat actions."""

    def test_location(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_location(
            {"chat_id": CHAT_ID, "latitude": "55.75", "longitude": "37.61"},
            state, context,
        )
        assert message["location"] == {"latitude": 55.75, "longitude": 37.61}

    def test_location_out_of_range(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="latitude is out of range"):
            handle_send_location({"chat_id": CHAT_ID, "latitude": 91, "longitude": 0}, state, context)

    def test_venue(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_venue(
            {"chat_id": CHAT_ID, "latitude": 1, "longitude": 2, "title": "Cafe", "address": "Main St"},
            state, context,
        )

        assert message["venue"]["title"] == "Cafe"
        assert message["location"] == message["venue"]["location"]

    def test_contact(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_contact(
            {"chat_id": CHAT_ID, "phone_number": "+100", "first_name": "Ann"},
            state, context,
        )
        assert message["contact"] == {"phone_number": "+100", "first_name": "Ann"}

    def test_dice_is_deterministic(self, state: ConversationState, context: MethodContext) -> None:
        first = handle_send_dice({"chat_id": CHAT_ID}, state, context)
        second = handle_send_dice({"chat_id": CHAT_ID, "emoji": "🎰"}, state, context)

        assert first["dice"] == {"emoji": "🎲", "value": 2}
        assert second["dice"] == {"emoji": "🎰", "value": 3}

    def test_dice_invalid_emoji(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="invalid dice emoji"):
            handle_send_dice({"chat_id": CHAT_ID, "emoji": "🍕"}, state, context)

    def test_poll(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_poll(
            {"chat_id": CHAT_ID, "question": "Tea?", "options": ["Yes", {"text": "No"}]},
            state, context,
        )

        poll = message["poll"]
        assert poll["id"] == "poll_1"
        assert [o["text"] for o in poll["options"]] == ["Yes", "No"]
        assert poll["type"] == "regular"
        assert poll["is_anonymous"] is True

    def test_poll_needs_two_options(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="2-10 options"):
            handle_send_poll({"chat_id": CHAT_ID, "question": "Tea?", "options": ["Yes"]}, state, context)

    def test_chat_action(self, state: ConversationState, context: MethodContext) -> None:
        assert handle_send_chat_action({"chat_id": CHAT_ID, "action": "typing"}, state, context) is True
        assert state.get_message_count(CHAT_ID) == 0

    def test_chat_action_invalid(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="wrong parameter action"):
            handle_send_chat_action({"chat_id": CHAT_ID, "action": "dancing"}, state, context)


class TestPinning:
    """Test pin/unpin handlers."""

    def test_pin_and_unpin(self, state: ConversationState, context: MethodContext) -> None:
        message_id = _bot_message(state, context)

        handle_pin_chat_message({"chat_id": CHAT_ID, "message_id": message_id}, state, context)
        assert state.get_message(CHAT_ID, message_id).is_pinned

        handle_unpin_chat_message({"chat_id": CHAT_ID, "message_id": message_id}, state, context)
        assert not state.get_message(CHAT_ID, message_id).is_pinned

    def test_pin_missing(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(ReferenceNotFound, match="message to pin not found"):
            handle_pin_chat_message({"chat_id": CHAT_ID, "message_id": 9}, state, context)

    def test_unpin_without_id_unpins_latest(self, state: ConversationState, context: MethodContext) -> None:
        first = _bot_message(state, context)
        second = _bot_message(state, context)
        for message_id in (first, second):
            handle_pin_chat_message({"chat_id": CHAT_ID, "message_id": message_id}, state, context)

        handle_unpin_chat_message({"chat_id": CHAT_ID}, state, context)

        assert state.get_message(CHAT_ID, first).is_pinned
        assert not state.get_message(CHAT_ID, second).is_pinned

    def test_unpin_all(self, state: ConversationState, context: MethodContext) -> None:
        for _ in range(3):
            message_id = _bot_message(state, context)
            handle_pin_chat_message({"chat_id": CHAT_ID, "message_id": message_id}, state, context)

        handle_unpin_all_chat_messages({"chat_id": CHAT_ID}, state, context)

        assert state.get_last_pinned(CHAT_ID) is None


class TestMembers:
    """Test ban/unban/restrict handlers."""

    def test_ban(self, state: ConversationState, context: MethodContext) -> None:
        handle_ban_chat_member({"chat_id": GROUP_ID, "user_id": USER_ID}, state, context)
        assert state.get_member_status(GROUP_ID, USER_ID) == BANNED

    def test_ban_self(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="can't ban self"):
            handle_ban_chat_member({"chat_id": GROUP_ID, "user_id": context.me["id"]}, state, context)

    def test_ban_revokes_messages(self, state: ConversationState, context: MethodContext) -> None:
        spam = _user_message(state, GROUP_ID, USER_ID)
        other = _user_message(state, GROUP_ID, USER_ID + 1)

        handle_ban_chat_member(
            {"chat_id": GROUP_ID, "user_id": USER_ID, "revoke_messages": "true"},
            state, context,
        )

        assert state.get_message(GROUP_ID, spam).is_deleted
        assert not state.get_message(GROUP_ID, other).is_deleted

    def test_unban(self, state: ConversationState, context: MethodContext) -> None:
        handle_ban_chat_member({"chat_id": GROUP_ID, "user_id": USER_ID}, state, context)

        handle_unban_chat_member({"chat_id": GROUP_ID, "user_id": USER_ID}, state, context)

        assert state.get_member_status(GROUP_ID, USER_ID) is None

    def test_unban_only_if_banned_keeps_restriction(
        self, state: ConversationState, context: MethodContext
    ) -> None:
        permissions = {"can_send_messages": False}
        handle_restrict_chat_member(
            {"chat_id": GROUP_ID, "user_id": USER_ID, "permissions": permissions},
            state, context,
        )

        handle_unban_chat_member(
            {"chat_id": GROUP_ID, "user_id": USER_ID, "only_if_banned": True},
            state, context,
        )

        assert state.get_member_status(GROUP_ID, USER_ID) == permissions

    def test_restrict_in_private_chat(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="only for supergroups"):
            handle_restrict_chat_member(
                {"chat_id": CHAT_ID, "user_id": USER_ID, "permissions": {}},
                state, context,
            )

    def test_restrict_requires_permissions(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="permissions is required"):
            handle_restrict_chat_member({"chat_id": GROUP_ID, "user_id": USER_ID}, state, context)


class TestReactions:
    """Test setMessageReaction."""

    def test_react(self, state: ConversationState, context: MethodContext) -> None:
        message_id = _bot_message(state, context)
        result = handle_set_message_reaction(
            {"chat_id": CHAT_ID, "message_id": message_id, "reaction": [{"type": "emoji", "emoji": "👍"}]},
            state, context,
        )

        assert result is True
        assert "reaction" not in state.get_message(CHAT_ID, message_id).payload

    def test_react_missing_message(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(ReferenceNotFound, match="message to react not found"):
            handle_set_message_reaction({"chat_id": CHAT_ID, "message_id": 5}, state, context)


class TestAnswerCallbackQuery:
    """Test answerCallbackQuery."""

    def test_answer_marks_record(self, state: ConversationState, context: MethodContext) -> None:
        record = state.register_callback_query(CHAT_ID, None, "add")

        result = handle_answer_callback_query(
            {"callback_query_id": record.callback_query_id, "text": "Done"},
            state, context,
        )

        assert result is True
        assert record.answered
        assert record.answer["text"] == "Done"
        assert record.answer["show_alert"] is False

    def test_unknown_query(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(ReferenceNotFound, match="query ID is invalid"):
            handle_answer_callback_query({"callback_query_id": "999"}, state, context)

    def test_missing_query_id(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest):
            handle_answer_callback_query({}, state, context)

    def test_text_too_long(self, state: ConversationState, context: MethodContext) -> None:
        record = state.register_callback_query(CHAT_ID, None, "add")

        with pytest.raises(MalformedRequest, match="MESSAGE_TOO_LONG"):
            handle_answer_callback_query(
                {"callback_query_id": record.callback_query_id, "text": "x" * 201},
                state, context,
            )
        assert not record.answered


class TestBotInfo:
    """Test getMe and command management."""

    def test_get_me(self, state: ConversationState, context: MethodContext) -> None:
        me = handle_get_me({}, state, context)

        assert me == context.me
        assert me is not context.me

    def test_commands_round_trip(self, state: ConversationState, context: MethodContext) -> None:
        commands = [{"command": "start", "description": "Start the bot"}]

        handle_set_my_commands({"commands": commands}, state, context)

        assert handle_get_my_commands({}, state, context) == commands
        assert handle_get_my_commands({"language_code": "ru"}, state, context) == []

    def test_commands_by_scope(self, state: ConversationState, context: MethodContext) -> None:
        scope = {"type": "all_group_chats"}
        handle_set_my_commands(
            {"commands": [{"command": "ban", "description": "Ban"}], "scope": scope},
            state, context,
        )

        handle_delete_my_commands({"scope": scope}, state, context)

        assert handle_get_my_commands({"scope": scope}, state, context) == []

    def test_invalid_command(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest):
            handle_set_my_commands({"commands": [{"command": "start"}]}, state, context)

    def test_get_updates_is_empty(self, state: ConversationState, context: MethodContext) -> None:
        assert handle_get_updates({"offset": 10}, state, context) == []
