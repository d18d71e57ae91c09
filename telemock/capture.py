"""
Capture log for the mock Telegram server.

Stores every API call made by the bot, together with the response the
server synthesized for it, for inspection in tests.
"""
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from aiogram.types import Message

logger = logging.getLogger("telemock.capture")


@dataclass(frozen=True)
class CapturedCall:
    """Single captured API call: what the bot asked for and what it got back."""

    method: str
    ordinal: int
    request: dict[str, Any]
    response: dict[str, Any]
    dispatch: int = 0
    timestamp: float = field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return bool(self.response.get("ok"))

    @property
    def result(self) -> Any:
        return self.response.get("result")

    @property
    def error_code(self) -> int | None:
        return self.response.get("error_code")

    @property
    def description(self) -> str | None:
        return self.response.get("description")

    @property
    def message(self) -> Message | None:
        """Result parsed as an aiogram Message, when the call returned one."""
        result = self.result
        if not isinstance(result, dict) or "message_id" not in result or "chat" not in result:
            return None
        return Message.model_validate(result)

    @property
    def text(self) -> str | None:
        """Text (or caption) the bot sent, as requested."""
        return self.request.get("text", self.request.get("caption"))


class CaptureLog:
    """
    Append-only record of every call made to one mock server.

    Calls are kept in the order the server committed them. Queries never
    modify the log and always return fresh lists.
    """

    def __init__(self) -> None:
        self._calls: list[CapturedCall] = []

    def append(
        self,
        method: str,
        request: dict[str, Any],
        response: dict[str, Any],
        dispatch: int = 0,
    ) -> CapturedCall:
        call = CapturedCall(
            method=method,
            ordinal=len(self._calls),
            request=request,
            response=response,
            dispatch=dispatch,
        )
        self._calls.append(call)
        logger.debug("Captured call #%d: %s", call.ordinal, method)
        return call

    def __len__(self) -> int:
        return len(self._calls)

    def __iter__(self) -> Iterator[CapturedCall]:
        return iter(list(self._calls))

    def __getitem__(self, index: int) -> CapturedCall:
        return self._calls[index]

    def all(self) -> list[CapturedCall]:
        """Get all captured calls."""
        return list(self._calls)

    def by_method(self, method: str) -> list[CapturedCall]:
        """Get all calls for a specific method (case-insensitive)."""
        wanted = method.lower()
        return [c for c in self._calls if c.method.lower() == wanted]

    def last(self, method: str | None = None) -> CapturedCall | None:
        """Get the most recent call, optionally of one method."""
        calls = self._calls if method is None else self.by_method(method)
        return calls[-1] if calls else None

    def for_dispatch(self, dispatch: int) -> list[CapturedCall]:
        """Get the calls made while handling one dispatch."""
        return [c for c in self._calls if c.dispatch == dispatch]

    def texts(self, method: str = "sendMessage") -> list[str | None]:
        """Texts of every call of ``method``, in order."""
        return [c.text for c in self.by_method(method)]

    def last_text(self, method: str = "sendMessage") -> str | None:
        last = self.last(method)
        return last.text if last is not None else None

    def sent_messages(self) -> list[CapturedCall]:
        """Get all sendMessage calls."""
        return self.by_method("sendMessage")

    def edited_messages(self) -> list[CapturedCall]:
        """Get all editMessageText calls."""
        return self.by_method("editMessageText")

    def deleted_messages(self) -> list[CapturedCall]:
        """Get all deleteMessage calls."""
        return self.by_method("deleteMessage")

    def callback_answers(self) -> list[CapturedCall]:
        """Get all answerCallbackQuery calls."""
        return self.by_method("answerCallbackQuery")
