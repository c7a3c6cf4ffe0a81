"""TradePit utilities."""

from .logging import StructuredLogger, configure_logging, get_logger, peer_logger

__all__ = ["StructuredLogger", "configure_logging", "get_logger", "peer_logger"]
