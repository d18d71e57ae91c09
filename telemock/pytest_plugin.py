"""
pytest plugin: fixtures for driving aiogram applications through telemock.

Registered through the ``pytest11`` entry point, so installing telemock
is enough to make the fixtures available.
"""
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from aiogram import Dispatcher, Router

from telemock.bot import EnvelopeBuilder, MockBot
from telemock.config import MockServerSettings, load_settings
from telemock.log import setup_logging
from telemock.updates import UpdateEnvelope

MockBotFactory = Callable[..., Awaitable[MockBot]]


@pytest.fixture
def mock_server_settings() -> MockServerSettings:
    """Fresh settings per test (environment and .env file are re-read)."""
    settings = load_settings()
    setup_logging(settings.log_level)
    return settings


@pytest_asyncio.fixture
async def mock_bot_factory(mock_server_settings: MockServerSettings) -> AsyncIterator[MockBotFactory]:
    """Create started MockBot instances that are stopped at teardown."""
    created: list[MockBot] = []

    async def factory(
        update: UpdateEnvelope | EnvelopeBuilder,
        pipeline: Dispatcher | Router,
        **kwargs: Any,
    ) -> MockBot:
        kwargs.setdefault("settings", mock_server_settings)
        mock = MockBot(update, pipeline, **kwargs)
        created.append(mock)
        await mock.start()
        return mock

    yield factory

    errors: list[Exception] = []
    for mock in reversed(created):
        try:
            await mock.stop()
        except Exception as e:
            errors.append(e)
    if errors:
        raise errors[0]
