"""
Test configuration and shared fixtures for telemock.

Provides fixtures for:
- Settings from .env.test
- Bare conversation state and method context for handler tests
- Fresh dispatchers and routers for end-to-end tests
"""
from pathlib import Path

from dotenv import load_dotenv

# =============================================================================
# LOAD TEST ENVIRONMENT (.env.test)
# =============================================================================

env_test_path = Path(__file__).parent.parent / ".env.test"
if env_test_path.exists():
    load_dotenv(env_test_path, override=True)

import pytest
from aiogram import Dispatcher, Router
from aiogram.fsm.storage.memory import MemoryStorage

from telemock.config import MockServerSettings, get_settings
from telemock.methods import MethodContext
from telemock.server import make_me
from telemock.state import ConversationState


@pytest.fixture
def settings() -> MockServerSettings:
    """Load settings from .env.test."""
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def state() -> ConversationState:
    return ConversationState()


@pytest.fixture
def context(settings: MockServerSettings) -> MethodContext:
    return MethodContext(me=make_me(settings))


@pytest.fixture
def simple_dispatcher() -> Dispatcher:
    """Create a simple dispatcher for testing."""
    return Dispatcher(storage=MemoryStorage())


@pytest.fixture
def router() -> Router:
    """Fresh router, so handlers registered by one test never leak into another."""
    return Router()
