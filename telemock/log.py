"""Logging setup for test sessions."""
import logging

from rich.logging import RichHandler

_NOISY_LOGGERS = ("aiogram", "aiohttp.access", "asyncio")


def setup_logging(level: str | int = logging.WARNING) -> None:
    """Route telemock logs through rich and quiet chatty libraries."""
    logger = logging.getLogger("telemock")
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
        logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
