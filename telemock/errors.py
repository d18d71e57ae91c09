"""
Exceptions raised by the mock Telegram server and its test client.

Method-level errors (``MethodError`` subclasses) never reach the test:
the server turns them into Bot API failure envelopes so the bot's own
error handling runs. Everything else is raised to the test directly.
"""
from typing import Any

from telemock.responses import make_error_response


class TelemockError(Exception):
    """Base class for all telemock errors."""


class SetupFailure(TelemockError):
    """Mock server could not be started or used (port exhaustion, bad pipeline)."""


class StateAssertionError(TelemockError):
    """A synthetic update is inconsistent and was rejected at build time."""


class NoMessagesError(TelemockError):
    """Raised when trying to access messages in an empty chat."""


class ButtonNotFoundError(TelemockError):
    """Raised when a button cannot be found in the chat."""


class MethodError(TelemockError):
    """Failure of a single Bot API call, delivered to the bot as an error response."""

    error_code: int = 400

    def __init__(self, description: str, error_code: int | None = None) -> None:
        super().__init__(description)
        self.description = description
        if error_code is not None:
            self.error_code = error_code

    def to_response(self) -> dict[str, Any]:
        return make_error_response(self.description, error_code=self.error_code)


class UnsupportedMethod(MethodError):
    """Bot called a method the mock server does not emulate."""

    error_code = 404

    def __init__(self, method: str) -> None:
        super().__init__(
            f"Not Found: method '{method}' is not supported by the mock server",
        )
        self.method = method


class MalformedRequest(MethodError):
    """Payload of a known method failed validation."""


class ReferenceNotFound(MethodError):
    """Call references a message, file or query the server has never seen."""


class DispatchTimeout(TelemockError):
    """Handlers did not settle within the configured dispatch timeout."""
