"""
Tests for turning pending events into aiogram Updates.
"""
import pytest
from aiogram.types import Update

from telemock.errors import SetupFailure, StateAssertionError
from telemock.feed import PLACEHOLDER_TEXT, UpdateFeed
from telemock.methods import MethodContext
from telemock.methods.messages import handle_send_message
from telemock.state import ConversationState
from telemock.updates import (
    DEFAULT_USER_ID,
    MockCallbackQuery,
    MockEditedMessage,
    MockMessageDocument,
    MockMessagePhoto,
    MockMessageText,
)


def _feed(builder, state: ConversationState) -> UpdateFeed:
    return UpdateFeed(builder.build(state))


class TestMaterialize:
    """Test UpdateFeed.materialize for new messages."""

    def test_empty_feed(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(SetupFailure):
            UpdateFeed().materialize(state, context.me)

    def test_text_message(self, state: ConversationState, context: MethodContext) -> None:
        update = _feed(MockMessageText(text="/start"), state).materialize(state, context.me)

        assert isinstance(update, Update)
        assert update.update_id == 1
        assert update.message.message_id == 1
        assert update.message.text == "/start"
        assert state.get_user_messages(DEFAULT_USER_ID)[0].message_id == 1

    def test_injecting_does_not_touch_state(self, state: ConversationState) -> None:
        UpdateFeed().inject(MockMessageText().build(state))

        assert state.next_message_id == 1
        assert state.next_update_id == 1

    def test_ids_increase_per_materialize(self, state: ConversationState, context: MethodContext) -> None:
        feed = _feed(MockMessageText(), state)

        updates = [feed.materialize(state, context.me) for _ in range(3)]

        assert [u.update_id for u in updates] == [1, 2, 3]
        assert [u.message.message_id for u in updates] == [1, 2, 3]

    def test_ids_shared_with_bot_messages(self, state: ConversationState, context: MethodContext) -> None:
        feed = _feed(MockMessageText(), state)
        feed.materialize(state, context.me)
        handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "Reply"}, state, context)

        update = feed.materialize(state, context.me)

        assert update.message.message_id == 3

    def test_claimed_message_id(self, state: ConversationState, context: MethodContext) -> None:
        update = _feed(MockMessageText().with_message_id(50), state).materialize(state, context.me)

        assert update.message.message_id == 50
        assert state.next_message_id == 51

    def test_claimed_id_taken_since_build(self, state: ConversationState, context: MethodContext) -> None:
        feed = _feed(MockMessageText().with_message_id(1), state)
        handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "Hi"}, state, context)

        with pytest.raises(StateAssertionError, match="message_id"):
            feed.materialize(state, context.me)

    def test_reply(self, state: ConversationState, context: MethodContext) -> None:
        sent = handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "Question"}, state, context)

        update = _feed(MockMessageText(text="Answer").replying_to(sent["message_id"]), state).materialize(
            state, context.me
        )

        assert update.message.reply_to_message.text == "Question"

    def test_photo_file_ids(self, state: ConversationState, context: MethodContext) -> None:
        update = _feed(MockMessagePhoto(), state).materialize(state, context.me)

        sizes = update.message.photo
        assert len({size.file_id for size in sizes}) == 2
        assert state.get_file(sizes[-1].file_id) is not None

    def test_chosen_file_id_kept(self, state: ConversationState, context: MethodContext) -> None:
        update = _feed(MockMessageDocument(file_id="my_doc"), state).materialize(state, context.me)

        assert update.message.document.file_id == "my_doc"
        assert state.get_file("my_doc").file_path.startswith("documents/")


class TestEditedMessage:
    """Test materializing edited messages."""

    def test_edits_latest_own_message(self, state: ConversationState, context: MethodContext) -> None:
        _feed(MockMessageText(text="tpyo"), state).materialize(state, context.me)

        update = _feed(MockEditedMessage(text="typo"), state).materialize(state, context.me)

        assert update.edited_message.message_id == 1
        assert update.edited_message.text == "typo"
        assert update.edited_message.edit_date is not None
        assert state.get_message(DEFAULT_USER_ID, 1).text == "typo"

    def test_nothing_to_edit(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(StateAssertionError, match="no message"):
            _feed(MockEditedMessage(), state).materialize(state, context.me)


class TestCallbackQuery:
    """Test materializing callback queries."""

    def test_targets_last_bot_message(self, state: ConversationState, context: MethodContext) -> None:
        handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "First"}, state, context)
        handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "Second"}, state, context)

        update = _feed(MockCallbackQuery(data="add"), state).materialize(state, context.me)

        query = update.callback_query
        assert query.data == "add"
        assert query.message.message_id == 2
        assert query.chat_instance == str(DEFAULT_USER_ID)
        assert state.get_callback_query(query.id).data == "add"

    def test_explicit_message(self, state: ConversationState, context: MethodContext) -> None:
        handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "First"}, state, context)
        handle_send_message({"chat_id": DEFAULT_USER_ID, "text": "Second"}, state, context)

        update = _feed(MockCallbackQuery(message_id=1), state).materialize(state, context.me)

        assert update.callback_query.message.text == "First"

    def test_placeholder_when_bot_silent(self, state: ConversationState, context: MethodContext) -> None:
        update = _feed(MockCallbackQuery(), state).materialize(state, context.me)

        assert update.callback_query.message.text == PLACEHOLDER_TEXT
        assert state.get_last_bot_message(DEFAULT_USER_ID).text == PLACEHOLDER_TEXT

    def test_query_ids_unique(self, state: ConversationState, context: MethodContext) -> None:
        feed = _feed(MockCallbackQuery(), state)

        ids = {feed.materialize(state, context.me).callback_query.id for _ in range(3)}

        assert len(ids) == 3
