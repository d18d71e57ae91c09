"""
Tests for media method handlers and getFile.
"""
import pytest

from telemock.errors import MalformedRequest, ReferenceNotFound
from telemock.methods import MethodContext, UploadedFile
from telemock.methods.media import (
    handle_get_file,
    handle_send_document,
    handle_send_media_group,
    handle_send_photo,
    handle_send_sticker,
    handle_send_video,
    handle_send_video_note,
    handle_send_voice,
)
from telemock.state import ConversationState

CHAT_ID = 123


class TestSendMedia:
    """Test the send* media handlers."""

    def test_uploaded_photo(self, state: ConversationState, context: MethodContext) -> None:
        upload = UploadedFile(filename="cat.jpg", content=b"jpeg-bytes", content_type="image/jpeg")

        message = handle_send_photo(
            {"chat_id": CHAT_ID, "photo": upload, "caption": "A cat"},
            state, context,
        )

        photo = message["photo"]
        assert isinstance(photo, list) and len(photo) == 1
        assert photo[0]["file_id"] == "photo_file_000001"
        assert photo[0]["file_size"] == len(b"jpeg-bytes")
        assert message["caption"] == "A cat"

        record = state.get_file(photo[0]["file_id"])
        assert record.content == b"jpeg-bytes"
        assert record.file_path == "photos/uniq_photo_000001"

    def test_attach_reference(self, state: ConversationState, context: MethodContext) -> None:
        upload = UploadedFile(filename="report.pdf", content=b"%PDF")

        message = handle_send_document(
            {"chat_id": CHAT_ID, "document": "attach://file1", "file1": upload},
            state, context,
        )

        assert message["document"]["file_name"] == "report.pdf"
        assert message["document"]["mime_type"] == "application/octet-stream"

    def test_missing_attachment(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="not attached"):
            handle_send_document({"chat_id": CHAT_ID, "document": "attach://file1"}, state, context)

    def test_missing_media(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="there is no video"):
            handle_send_video({"chat_id": CHAT_ID}, state, context)

    def test_bad_reply_stores_nothing(self, state: ConversationState, context: MethodContext) -> None:
        """A rejected upload leaves no file behind and burns no file id."""
        upload = UploadedFile(filename="cat.jpg", content=b"jpeg-bytes")

        with pytest.raises(ReferenceNotFound, match="message to reply not found"):
            handle_send_photo(
                {"chat_id": CHAT_ID, "photo": upload, "reply_to_message_id": 999},
                state, context,
            )

        assert state.get_file("photo_file_000001") is None
        assert state.find_file_by_path("photos/uniq_photo_000001") is None

        message = handle_send_photo({"chat_id": CHAT_ID, "photo": upload}, state, context)
        assert message["photo"][0]["file_id"] == "photo_file_000001"

    def test_bad_chat_id_stores_nothing(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="chat_id"):
            handle_send_document(
                {"chat_id": "not-a-chat", "document": "https://example.com/report.pdf"},
                state, context,
            )

        assert state.find_file_by_path("documents/uniq_document_000001") is None

    def test_known_file_id_is_reused(self, state: ConversationState, context: MethodContext) -> None:
        first = handle_send_voice(
            {"chat_id": CHAT_ID, "voice": UploadedFile(filename="v.ogg", content=b"ogg")},
            state, context,
        )
        file_id = first["voice"]["file_id"]

        second = handle_send_voice({"chat_id": CHAT_ID, "voice": file_id}, state, context)

        assert second["voice"]["file_id"] == file_id
        assert second["voice"]["file_unique_id"] == first["voice"]["file_unique_id"]

    def test_unknown_file_id_is_remembered(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_video({"chat_id": CHAT_ID, "video": "AgADexternal"}, state, context)

        assert message["video"]["file_id"] == "AgADexternal"
        assert state.get_file("AgADexternal") is not None

    def test_url_gets_new_file_id(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_document(
            {"chat_id": CHAT_ID, "document": "https://example.com/files/report.pdf"},
            state, context,
        )

        assert message["document"]["file_id"].startswith("document_file_")
        assert message["document"]["file_name"] == "report.pdf"

    def test_video_note_has_no_caption(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_video_note(
            {"chat_id": CHAT_ID, "video_note": "note_id", "caption": "ignored"},
            state, context,
        )

        assert "caption" not in message
        assert message["video_note"]["length"] == 100

    def test_sticker_shape(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_sticker({"chat_id": CHAT_ID, "sticker": "sticker_id"}, state, context)

        sticker = message["sticker"]
        assert sticker["type"] == "regular"
        assert sticker["width"] == sticker["height"] == 512

    def test_stored_in_conversation(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_photo({"chat_id": CHAT_ID, "photo": "photo_id"}, state, context)

        stored = state.get_last_bot_message(CHAT_ID)
        assert stored.message_id == message["message_id"]


class TestMediaGroup:
    """Test sendMediaGroup."""

    def test_group_shares_id(self, state: ConversationState, context: MethodContext) -> None:
        messages = handle_send_media_group(
            {
                "chat_id": CHAT_ID,
                "media": [
                    {"type": "photo", "media": "photo_a", "caption": "First"},
                    {"type": "photo", "media": "photo_b"},
                ],
            },
            state, context,
        )

        assert [m["message_id"] for m in messages] == [1, 2]
        assert {m["media_group_id"] for m in messages} == {"group_1"}
        assert messages[0]["caption"] == "First"
        assert "caption" not in messages[1]

    def test_too_few_items(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="2-10 items"):
            handle_send_media_group(
                {"chat_id": CHAT_ID, "media": [{"type": "photo", "media": "photo_a"}]},
                state, context,
            )

    def test_unsupported_type_allocates_nothing(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="unsupported media type"):
            handle_send_media_group(
                {
                    "chat_id": CHAT_ID,
                    "media": [
                        {"type": "photo", "media": "photo_a"},
                        {"type": "sticker", "media": "sticker_b"},
                    ],
                },
                state, context,
            )

        assert state.next_message_id == 1
        assert state.get_message_count(CHAT_ID) == 0

    def test_missing_attachment_stores_nothing(self, state: ConversationState, context: MethodContext) -> None:
        """Items are checked before any of them is stored."""
        upload = UploadedFile(filename="a.jpg", content=b"a")

        with pytest.raises(MalformedRequest, match="not attached"):
            handle_send_media_group(
                {
                    "chat_id": CHAT_ID,
                    "media": [
                        {"type": "photo", "media": "attach://first"},
                        {"type": "photo", "media": "attach://second"},
                    ],
                    "first": upload,
                },
                state, context,
            )

        assert state.get_file("photo_file_000001") is None

    def test_bad_chat_id_stores_nothing(self, state: ConversationState, context: MethodContext) -> None:
        upload = UploadedFile(filename="a.jpg", content=b"a")

        with pytest.raises(MalformedRequest, match="chat_id"):
            handle_send_media_group(
                {
                    "chat_id": "not-a-chat",
                    "media": [
                        {"type": "photo", "media": "attach://first"},
                        {"type": "photo", "media": "attach://first"},
                    ],
                    "first": upload,
                },
                state, context,
            )

        assert state.get_file("photo_file_000001") is None
        assert state.next_message_id == 1


class TestGetFile:
    """Test getFile."""

    def test_known_file(self, state: ConversationState, context: MethodContext) -> None:
        message = handle_send_document(
            {"chat_id": CHAT_ID, "document": UploadedFile(filename="a.txt", content=b"abc")},
            state, context,
        )
        file_id = message["document"]["file_id"]

        result = handle_get_file({"file_id": file_id}, state, context)

        assert result == {
            "file_id": file_id,
            "file_unique_id": message["document"]["file_unique_id"],
            "file_path": f"documents/{message['document']['file_unique_id']}",
            "file_size": 3,
        }

    def test_unknown_file(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(ReferenceNotFound, match="invalid file_id"):
            handle_get_file({"file_id": "nope"}, state, context)

    def test_missing_file_id(self, state: ConversationState, context: MethodContext) -> None:
        with pytest.raises(MalformedRequest, match="file_id is required"):
            handle_get_file({}, state, context)
