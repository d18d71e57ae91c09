"""
Tests for the fixtures registered through the pytest11 entry point.
"""
import logging

import pytest
from aiogram import F, Router
from aiogram.types import Message
from rich.logging import RichHandler

from telemock import MockBot, MockMessageText
from telemock.config import MockServerSettings
from telemock.log import setup_logging
from telemock.pytest_plugin import MockBotFactory


@pytest.fixture
def shout_router(router: Router) -> Router:
    @router.message(F.text)
    async def shout(message: Message) -> None:
        await message.answer(message.text.upper())

    return router


class TestMockBotFactory:
    """Test the mock_bot_factory fixture."""

    @pytest.mark.asyncio
    async def test_factory_starts_instance(
        self, mock_bot_factory: MockBotFactory, shout_router: Router
    ) -> None:
        """Created instances are started and ready to dispatch."""
        mock = await mock_bot_factory(MockMessageText(text="hey"), shout_router)

        assert isinstance(mock, MockBot)
        await mock.dispatch()
        assert mock.get_last_text() == "HEY"

    @pytest.mark.asyncio
    async def test_factory_uses_fixture_settings(
        self,
        mock_bot_factory: MockBotFactory,
        mock_server_settings: MockServerSettings,
        shout_router: Router,
    ) -> None:
        """Instances share the per-test settings unless given their own."""
        mock = await mock_bot_factory(MockMessageText(), shout_router)
        assert mock.settings is mock_server_settings

    @pytest.mark.asyncio
    async def test_several_instances(self, mock_bot_factory: MockBotFactory) -> None:
        """Each instance gets its own server."""
        first = await mock_bot_factory(MockMessageText(), Router())
        second = await mock_bot_factory(MockMessageText(), Router())

        assert first.api_url != second.api_url

    def test_teardown_stops_every_instance(self, pytester: pytest.Pytester) -> None:
        """A failing stop() is reported, and the remaining instances are still stopped."""
        pytester.makeini("[pytest]\nasyncio_mode = auto\nasyncio_default_fixture_loop_scope = function\n")
        pytester.makepyfile(
            """
            import aiohttp
            import pytest
            from aiogram import Dispatcher

            from telemock import MockMessageText

            URLS = []


            async def test_create(mock_bot_factory):
                broken = Dispatcher()

                @broken.shutdown()
                async def on_shutdown():
                    raise RuntimeError("flush failed")

                healthy = await mock_bot_factory(MockMessageText(), Dispatcher())
                failing = await mock_bot_factory(MockMessageText(), broken)
                URLS.extend([healthy.api_url, failing.api_url])


            async def test_ports_released():
                assert len(URLS) == 2
                async with aiohttp.ClientSession() as session:
                    for url in URLS:
                        with pytest.raises(aiohttp.ClientConnectionError):
                            await session.get(url)
            """
        )

        result = pytester.runpytest()

        result.assert_outcomes(passed=2, errors=1)
        result.stdout.fnmatch_lines(["*RuntimeError: flush failed*"])


class TestLogging:
    """Test log setup."""

    def test_rich_handler_added_once(self) -> None:
        setup_logging("DEBUG")
        setup_logging("INFO")

        logger = logging.getLogger("telemock")
        assert logger.level == logging.INFO
        assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
        assert logging.getLogger("aiogram").level == logging.WARNING
