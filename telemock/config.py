import os
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def env_file() -> Path:
    """`.env.test` when ENV=test, else `.env`; looked up when settings are built."""
    return Path(os.getcwd()) / (".env.test" if os.getenv("ENV") == "test" else ".env")


class MockServerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TELEMOCK_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 0  # 0 = ephemeral port picked by the OS
    bind_attempts: int = 5

    token: str = "1234567890:TEST_TOKEN_FOR_MOCK_SERVER"
    bot_username: str = "test_bot"
    bot_first_name: str = "TestBot"

    # Seconds a single dispatch may run before it is cancelled
    dispatch_timeout: float = 10.0

    first_message_id: int = 1
    first_update_id: int = 1

    log_level: str = "WARNING"

    @property
    def bot_id(self) -> int:
        return int(self.token.split(":", 1)[0])


def load_settings() -> MockServerSettings:
    """Read settings from the environment and the current env file."""
    return MockServerSettings(_env_file=env_file())


@lru_cache
def get_settings() -> MockServerSettings:
    return load_settings()
