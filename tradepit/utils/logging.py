"""Logging utilities for TradePit.

Every peer logs through a StructuredLogger bound to its id, so each line
ends with "| peer=<id> ..." and lines from different peers interleaved in
one stream can still be told apart.
"""

import logging
import sys
from typing import Any

ROOT_LOGGER = "tradepit"

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"

_installed_handler: logging.Handler | None = None


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """Configure the tradepit logger tree.

    Calling this again replaces the handler installed by the previous call
    instead of adding a second one.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_string: Custom format string.
        handler: Custom handler. Defaults to a stdout StreamHandler.

    Returns:
        The configured "tradepit" logger.
    """
    global _installed_handler

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))

    logger = logging.getLogger(ROOT_LOGGER)
    if _installed_handler is not None:
        logger.removeHandler(_installed_handler)
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    _installed_handler = handler
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the tradepit namespace (e.g. "peer" -> "tradepit.peer")."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class StructuredLogger:
    """Logger that appends key=value context to every message.

    Example:
        log = StructuredLogger("peer").with_context(peer=3)
        log.info("Reset HALT")  # "Reset HALT | peer=3"
        log.debug("Offering", token="corn", to=1)  # "Offering | peer=3 token=corn to=1"
    """

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = dict(context or {})

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def with_context(self, **kwargs: Any) -> "StructuredLogger":
        """Add context to all log messages. Returns self for chaining."""
        self._context.update(kwargs)
        return self

    def _format_message(self, message: str, /, **kwargs: Any) -> str:
        data = {**self._context, **kwargs}
        if not data:
            return message
        return f"{message} | " + " ".join(f"{k}={v}" for k, v in data.items())

    def _log(self, level: int, message: str, kwargs: dict[str, Any], exc_info: bool = False) -> None:
        # Per-message trading detail is formatted only when it will be emitted.
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self._format_message(message, **kwargs), exc_info=exc_info)

    def debug(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def exception(self, message: str, /, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, message, kwargs, exc_info=True)


def peer_logger(peer_id: int) -> StructuredLogger:
    """StructuredLogger for one peer, carrying its id on every line."""
    return StructuredLogger("peer", context={"peer": peer_id})
