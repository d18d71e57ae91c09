"""
Fake Telegram Bot API HTTP server.

Accepts requests in the same format as api.telegram.org and returns
realistic responses. Every call is validated against the instance's
ConversationState, answered by the method registry and recorded in the
instance's CaptureLog.
"""
import json
import logging
from typing import Any

from aiohttp import web
from aiohttp.test_utils import TestServer

from telemock.capture import CaptureLog
from telemock.config import MockServerSettings, get_settings
from telemock.errors import MethodError, SetupFailure
from telemock.methods import DEFAULT_REGISTRY, MethodContext, MethodRegistry, UploadedFile
from telemock.responses import make_error_response, make_ok_response
from telemock.state import ConversationState

logger = logging.getLogger("telemock.server")

# Form fields aiogram sends JSON-encoded
JSON_FIELDS = frozenset({
    "reply_markup",
    "reply_parameters",
    "entities",
    "caption_entities",
    "link_preview_options",
    "media",
    "options",
    "permissions",
    "commands",
    "scope",
    "reaction",
    "message_ids",
    "allowed_updates",
    "explanation_entities",
    "question_entities",
})

FAKE_FILE_CONTENT = b"\x00\x00\x00\x1cftypisom" + b"\x00" * 100


def make_me(settings: MockServerSettings) -> dict[str, Any]:
    """Bot identity returned by getMe."""
    return {
        "id": settings.bot_id,
        "is_bot": True,
        "first_name": settings.bot_first_name,
        "username": settings.bot_username,
        "can_join_groups": True,
        "can_read_all_group_messages": False,
        "supports_inline_queries": False,
    }


class FakeTelegramServer:
    """
    Fake Telegram Bot API server.

    Routes requests to the method registry and tracks all API calls.
    Owns exactly one ConversationState and one CaptureLog.
    """

    def __init__(
        self,
        registry: MethodRegistry | None = None,
        settings: MockServerSettings | None = None,
        me: dict[str, Any] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry or DEFAULT_REGISTRY
        self.me = me or make_me(self.settings)
        self.state = ConversationState(
            first_message_id=self.settings.first_message_id,
            first_update_id=self.settings.first_update_id,
        )
        self.log = CaptureLog()
        # Set by the test client around each dispatch
        self.current_dispatch = 0

        self.app = web.Application()
        self._setup_routes()
        self._test_server: TestServer | None = None

    def _setup_routes(self) -> None:
        """Setup URL routes for Telegram API methods."""
        self.app.router.add_post("/bot{token}/{method}", self._handle_request)
        self.app.router.add_get("/bot{token}/{method}", self._handle_request)
        # File download route (for bot.download)
        self.app.router.add_get("/file/bot{token}/{path:.*}", self._handle_file_download)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._test_server is not None

    @property
    def url(self) -> str:
        if self._test_server is None:
            raise SetupFailure("Mock server is not running")
        return f"http://{self._test_server.host}:{self._test_server.port}"

    async def start(self) -> str:
        """Bind a local port and start serving. Returns the base URL."""
        if self._test_server is not None:
            return self.url

        port = self.settings.port
        last_error: OSError | None = None
        for attempt in range(1, self.settings.bind_attempts + 1):
            test_server = TestServer(self.app, host=self.settings.host, port=port or None)
            try:
                await test_server.start_server()
            except OSError as e:
                last_error = e
                logger.warning(
                    "Bind attempt %d/%d on %s:%s failed: %s",
                    attempt,
                    self.settings.bind_attempts,
                    self.settings.host,
                    port or "ephemeral",
                    e,
                )
                await test_server.close()
                if port:
                    port += 1
                continue

            self._test_server = test_server
            logger.debug("Mock server listening at %s", self.url)
            return self.url

        raise SetupFailure(
            f"Could not bind mock server after {self.settings.bind_attempts} attempts"
        ) from last_error

    async def stop(self) -> None:
        """Stop serving and release the port. Safe to call twice."""
        if self._test_server is None:
            return
        test_server, self._test_server = self._test_server, None
        await test_server.close()
        logger.debug("Mock server stopped")

    # =========================================================================
    # Request handling
    # =========================================================================

    async def _handle_request(self, request: web.Request) -> web.Response:
        """Handle incoming API request."""
        method = request.match_info["method"]
        data = await self._parse_request_data(request)

        # No awaits below: validate, mutate and record happen as one step
        response_data = self._route_method(method, data)
        self.log.append(method, data, response_data, dispatch=self.current_dispatch)

        logger.debug("API %s -> %s", method, "ok" if response_data.get("ok") else "error")

        status = 200
        if not response_data.get("ok") and "error_code" in response_data:
            status = response_data["error_code"]

        return web.json_response(response_data, status=status)

    def _route_method(self, method: str, data: dict[str, Any]) -> dict[str, Any]:
        """Route API method to its registered handler."""
        try:
            spec = self.registry.resolve(method)
            result = spec.handler(data, self.state, MethodContext(me=self.me))
        except MethodError as e:
            if e.error_code == 404:
                logger.warning("Unknown API method: %s", method)
            else:
                logger.debug("API %s rejected: %s", method, e.description)
            return e.to_response()
        except Exception:
            logger.exception("Handler for %s crashed", method)
            return make_error_response("Internal Server Error: mock handler failed", error_code=500)

        return make_ok_response(result)

    async def _handle_file_download(self, request: web.Request) -> web.Response:
        """Handle file download requests (for bot.download)."""
        record = self.state.find_file_by_path(request.match_info["path"])
        if record is not None and record.content is not None:
            return web.Response(body=record.content, content_type="application/octet-stream")

        # Unknown files still download, as fake video bytes
        return web.Response(body=FAKE_FILE_CONTENT, content_type="video/mp4")

    @staticmethod
    async def _parse_request_data(request: web.Request) -> dict[str, Any]:
        """Parse request body based on content type."""
        content_type = request.content_type

        if content_type == "application/json":
            try:
                body = await request.json()
            except json.JSONDecodeError:
                return {}
            return body if isinstance(body, dict) else {}

        try:
            post_data = await request.post()
        except ValueError:
            return {}

        result: dict[str, Any] = {}
        for key, value in post_data.items():
            if isinstance(value, web.FileField):
                result[key] = UploadedFile(
                    filename=value.filename,
                    content=value.file.read(),
                    content_type=value.content_type,
                )
            elif key in JSON_FIELDS and isinstance(value, str) and value[:1] in ("{", "["):
                try:
                    result[key] = json.loads(value)
                except json.JSONDecodeError:
                    result[key] = value
            else:
                result[key] = value
        return result
