"""
Fake Telegram Bot API server for aiogram integration tests.

Provides a stateful HTTP server that emulates the Bot API, records every
call the bot makes and lets tests drive a conversation step by step.

Usage:
    from telemock import MockBot, MockMessageText, MockCallbackQuery

    async def test_start(router):
        async with MockBot(MockMessageText(text="/start"), router) as mock:
            await mock.dispatch()
            assert mock.get_last_text() == "What would you like to do?"

            mock.update(MockCallbackQuery(data="add"))
            await mock.dispatch()
            mock.assert_callback_answered()
"""
from telemock.bot import MockBot
from telemock.capture import CapturedCall, CaptureLog
from telemock.config import MockServerSettings, get_settings
from telemock.errors import (
    ButtonNotFoundError,
    DispatchTimeout,
    MalformedRequest,
    MethodError,
    NoMessagesError,
    ReferenceNotFound,
    SetupFailure,
    StateAssertionError,
    TelemockError,
    UnsupportedMethod,
)
from telemock.methods import DEFAULT_REGISTRY, MethodRegistry, MethodSpec
from telemock.server import FakeTelegramServer
from telemock.state import ConversationState, StoredMessage
from telemock.updates import (
    MockCallbackQuery,
    MockChat,
    MockEditedMessage,
    MockMe,
    MockMessageContact,
    MockMessageDocument,
    MockMessageLocation,
    MockMessagePhoto,
    MockMessageText,
    MockMessageVideo,
    MockMessageVoice,
    MockUser,
    UpdateEnvelope,
    UpdateKind,
)

__all__ = [
    # Client
    "MockBot",
    "FakeTelegramServer",
    "MockServerSettings",
    "get_settings",
    # Inspection
    "CaptureLog",
    "CapturedCall",
    "ConversationState",
    "StoredMessage",
    # Registry
    "DEFAULT_REGISTRY",
    "MethodRegistry",
    "MethodSpec",
    # Builders
    "MockUser",
    "MockChat",
    "MockMe",
    "MockMessageText",
    "MockMessagePhoto",
    "MockMessageDocument",
    "MockMessageVideo",
    "MockMessageVoice",
    "MockMessageContact",
    "MockMessageLocation",
    "MockEditedMessage",
    "MockCallbackQuery",
    "UpdateEnvelope",
    "UpdateKind",
    # Errors
    "TelemockError",
    "SetupFailure",
    "StateAssertionError",
    "DispatchTimeout",
    "MethodError",
    "UnsupportedMethod",
    "MalformedRequest",
    "ReferenceNotFound",
    "NoMessagesError",
    "ButtonNotFoundError",
]
