"""
High-level test client for integration tests.

Provides simple API for driving an aiogram application through a fake
Telegram server and inspecting what it sent back.

Usage:
    async with MockBot(MockMessageText(text="/start"), router) as mock:
        await mock.dispatch()
        assert mock.captured_calls().last_text() == "What would you like to do?"

        mock.update(MockCallbackQuery(data="add"))
        await mock.dispatch()
"""
import asyncio
import logging
from typing import Any, Protocol

from aiogram import Bot, Dispatcher, Router
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.client.telegram import TelegramAPIServer
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import User

from telemock.capture import CapturedCall, CaptureLog
from telemock.config import MockServerSettings, get_settings
from telemock.dependencies import DependencyBridge
from telemock.errors import ButtonNotFoundError, DispatchTimeout, NoMessagesError, SetupFailure
from telemock.feed import UpdateFeed
from telemock.methods import MethodRegistry
from telemock.server import FakeTelegramServer
from telemock.state import ConversationState, StoredMessage
from telemock.updates import MockCallbackQuery, MockChat, MockMe, MockUser, UpdateEnvelope

logger = logging.getLogger("telemock.bot")


class EnvelopeBuilder(Protocol):
    def build(self, state: ConversationState | None = None) -> UpdateEnvelope: ...


def _as_dispatcher(pipeline: Dispatcher | Router) -> Dispatcher:
    if isinstance(pipeline, Dispatcher):
        return pipeline
    if not isinstance(pipeline, Router):
        raise SetupFailure(f"Expected aiogram Dispatcher or Router, got {type(pipeline).__name__}")

    dp = Dispatcher(storage=MemoryStorage())
    # Routers are module-level singletons; detach from any previous Dispatcher
    pipeline._parent_router = None
    try:
        dp.include_router(pipeline)
    except (RuntimeError, ValueError) as e:
        raise SetupFailure(f"Cannot build dispatcher: {e}") from e
    return dp


class MockBot:
    """
    One isolated fake Telegram instance bound to an aiogram application.

    Owns the HTTP server (and with it the conversation state and capture
    log), a real aiogram Bot pointed at it, and the pending update.
    """

    def __init__(
        self,
        update: UpdateEnvelope | EnvelopeBuilder,
        pipeline: Dispatcher | Router,
        *,
        settings: MockServerSettings | None = None,
        me: MockMe | None = None,
        raise_errors: bool = False,
        registry: MethodRegistry | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.dispatcher = _as_dispatcher(pipeline)
        self.raise_errors = raise_errors
        self.errors: list[BaseException] = []

        self._server = FakeTelegramServer(
            registry=registry,
            settings=self.settings,
            me=me.build() if me is not None else None,
        )
        self._bridge = DependencyBridge(self.dispatcher)
        self._feed = UpdateFeed()
        self._bot: Bot | None = None
        self._task: asyncio.Task | None = None
        self._dispatch_count = 0

        self.update(update)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def __aenter__(self) -> "MockBot":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.stop()

    async def start(self) -> None:
        """Start the mock server, create the bot and run startup handlers.

        If anything fails after the port is bound, the session is closed and
        the port released before ``SetupFailure`` is raised.
        """
        if self._bot is not None:
            return

        server_url = await self._server.start()
        try:
            local_api = TelegramAPIServer.from_base(server_url)
            session = AiohttpSession(api=local_api)
            self._bot = Bot(token=self.settings.token, session=session)

            await self.dispatcher.emit_startup(
                bot=self._bot,
                bots=[self._bot],
                dispatcher=self.dispatcher,
                **self.dispatcher.workflow_data,
            )
        except BaseException as e:
            await self._release()
            if isinstance(e, Exception):
                raise SetupFailure(f"MockBot startup failed: {e}") from e
            raise
        logger.debug("MockBot started at %s", server_url)

    async def stop(self) -> None:
        """Abort a running dispatch, run shutdown handlers and release the port.

        The port is released even when a shutdown handler raises; the
        handler's exception is re-raised afterwards.
        """
        try:
            if self._task is not None and not self._task.done():
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
                except Exception:
                    logger.debug("Cancelled dispatch failed while stopping", exc_info=True)
            self._task = None

            if self._bot is not None:
                bot = self._bot
                try:
                    await self.dispatcher.emit_shutdown(
                        bot=bot,
                        bots=[bot],
                        dispatcher=self.dispatcher,
                        **self.dispatcher.workflow_data,
                    )
                finally:
                    await self._release()
        finally:
            await self._server.stop()
        logger.debug("MockBot stopped")

    async def _release(self) -> None:
        """Close the bot session and stop the server, without running handlers."""
        bot, self._bot = self._bot, None
        try:
            if bot is not None:
                await bot.session.close()
        finally:
            await self._server.stop()

    # =========================================================================
    # Driving the conversation
    # =========================================================================

    def dependencies(self, *collaborators: Any, **named: Any) -> "MockBot":
        """Inject collaborators into handlers the way production wiring does."""
        self._bridge.set(*collaborators, **named)
        return self

    def update(self, update: UpdateEnvelope | EnvelopeBuilder) -> "MockBot":
        """Replace the pending update. Builders are validated against current state."""
        envelope = update if isinstance(update, UpdateEnvelope) else update.build(self.state)
        self._feed.inject(envelope)
        return self

    async def dispatch(self) -> list[CapturedCall]:
        """Deliver the pending update and wait until the handlers settle.

        Returns the calls the application made while handling it.
        """
        await self.start()

        update = self._feed.materialize(self.state, self._server.me)
        self._dispatch_count += 1
        self._server.current_dispatch = self._dispatch_count

        self._task = asyncio.create_task(
            self.dispatcher.feed_update(self.bot, update),
            name=f"telemock-dispatch-{self._dispatch_count}",
        )
        try:
            await asyncio.wait_for(self._task, timeout=self.settings.dispatch_timeout)
        except TimeoutError:
            raise DispatchTimeout(
                f"Dispatch {self._dispatch_count} did not finish "
                f"within {self.settings.dispatch_timeout}s"
            ) from None
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # Only the dispatch task was cancelled, which stop() does
            raise SetupFailure(
                f"MockBot was stopped during dispatch {self._dispatch_count}"
            ) from None
        except Exception as e:
            self.errors.append(e)
            logger.error(
                "Handler error in dispatch %d: %s",
                self._dispatch_count,
                e,
                exc_info=True,
            )
            if self.raise_errors:
                raise
        finally:
            self._task = None
            self._server.current_dispatch = 0

        return self.last_dispatch_calls()

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def bot(self) -> Bot:
        """Get the bot instance."""
        if self._bot is None:
            raise SetupFailure("MockBot not started. Use 'async with' or await start().")
        return self._bot

    @property
    def state(self) -> ConversationState:
        return self._server.state

    @property
    def api_url(self) -> str:
        return self._server.url

    @property
    def me(self) -> User:
        return User.model_validate(self._server.me)

    @property
    def dispatch_count(self) -> int:
        return self._dispatch_count

    @property
    def pending(self) -> UpdateEnvelope | None:
        return self._feed.pending

    def captured_calls(self) -> CaptureLog:
        return self._server.log

    def last_dispatch_calls(self) -> list[CapturedCall]:
        """Calls made while handling the most recent dispatch."""
        return self._server.log.for_dispatch(self._dispatch_count)

    @property
    def chat_id(self) -> int:
        """Chat of the pending update, used by the conversation helpers."""
        if self._feed.pending is None:
            raise NoMessagesError("No pending update, chat is unknown")
        return self._feed.pending.chat["id"]

    # =========================================================================
    # Stateful Chat Access
    # =========================================================================

    def get_conversation(self, include_deleted: bool = False) -> list[StoredMessage]:
        """Get full conversation history ordered by time."""
        return self.state.get_conversation(self.chat_id, include_deleted)

    def get_bot_messages(self, include_deleted: bool = False) -> list[StoredMessage]:
        return self.state.get_bot_messages(self.chat_id, include_deleted)

    def get_last_bot_message(self) -> StoredMessage | None:
        return self.state.get_last_bot_message(self.chat_id)

    def get_last_text(self) -> str | None:
        """Get text from the last sendMessage call."""
        return self.captured_calls().last_text()

    def callback_for_button(self, button_text: str) -> MockCallbackQuery:
        """Build a press on the latest inline button whose text contains ``button_text``."""
        message = self.state.find_message_with_button(self.chat_id, button_text)
        if message is None:
            raise ButtonNotFoundError(f"No button with text '{button_text}' found in chat")

        callback_data = message.get_button_callback_data(button_text)
        if callback_data is None:
            raise ButtonNotFoundError(f"Button '{button_text}' found but has no callback_data")
        return self._callback(callback_data, message.message_id)

    def callback_at(self, row: int, col: int) -> MockCallbackQuery:
        """Build a press on the button at (row, col) of the last bot message."""
        message = self.get_last_bot_message()
        if message is None:
            raise NoMessagesError("No bot messages in chat to click button on")

        button = message.get_button_at(row, col)
        if button is None or button.get("callback_data") is None:
            raise ButtonNotFoundError(
                f"No callback button at position ({row}, {col}) in message {message.message_id}"
            )
        return self._callback(button["callback_data"], message.message_id)

    def _callback(self, data: str, message_id: int) -> MockCallbackQuery:
        pending = self._feed.pending
        return MockCallbackQuery(
            user=MockUser.from_payload(pending.user),
            chat=MockChat.from_payload(pending.chat),
            data=data,
            message_id=message_id,
        )

    # =========================================================================
    # Assertions
    # =========================================================================

    def assert_message_sent(self) -> None:
        """Assert that at least one message was sent."""
        assert self.captured_calls().sent_messages(), "No messages were sent"

    def assert_last_text(self, expected: str) -> None:
        actual = self.get_last_text()
        assert actual == expected, f"Expected last text {expected!r}, got {actual!r}"

    def assert_message_contains(self, text: str) -> None:
        """Assert that the last message contains specific text."""
        last_text = self.get_last_text()
        assert last_text is not None, "No message was sent"
        assert text in last_text, f"Text '{text}' not found in message: {last_text}"

    def assert_callback_answered(self) -> None:
        """Assert that callback query was answered."""
        assert self.captured_calls().callback_answers(), "Callback query was not answered"

    def assert_message_deleted(self, message_id: int) -> None:
        """Assert that a specific message was deleted."""
        message = self.state.get_message(self.chat_id, message_id)
        assert message is not None, f"Message {message_id} not found"
        assert message.is_deleted, f"Message {message_id} was not deleted"

    def assert_message_edited(self, message_id: int) -> None:
        """Assert that a specific message was edited."""
        message = self.state.get_message(self.chat_id, message_id)
        assert message is not None, f"Message {message_id} not found"
        assert message.edited_at is not None, f"Message {message_id} was not edited"

    def assert_last_bot_message_has_button(self, button_text: str) -> None:
        """Assert that the last bot message has a button with specific text."""
        last = self.get_last_bot_message()
        assert last is not None, "No bot messages in chat"
        assert last.get_button_callback_data(button_text) is not None, (
            f"Button '{button_text}' not found in last bot message keyboard"
        )

    def assert_conversation_length(self, expected: int, include_deleted: bool = False) -> None:
        """Assert the conversation has expected number of messages."""
        actual = self.state.get_message_count(self.chat_id, include_deleted)
        assert actual == expected, f"Expected {expected} messages, got {actual}"
