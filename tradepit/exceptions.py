"""Custom exceptions for TradePit."""

from typing import Any


class TradePitError(Exception):
    """Base exception for all TradePit errors."""

    pass


# =============================================================================
# Transport Exceptions
# =============================================================================


class ChannelError(TradePitError):
    """Raised when a message cannot be handed to the transport."""

    pass


class UnknownDestinationError(ChannelError):
    """Raised when sending to an address the transport does not know."""

    def __init__(self, destination: Any):
        self.destination = destination
        super().__init__(f"Unknown destination: {destination!r}")


# =============================================================================
# Message Exceptions
# =============================================================================


class MessageError(TradePitError):
    """Base exception for message decoding errors."""

    pass


class UnknownMessageKindError(MessageError):
    """Raised when a payload carries a kind outside the six message kinds."""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Unknown message kind: {kind!r}")


class InvalidMessageError(MessageError):
    """Raised when a payload of a known kind fails validation."""

    def __init__(self, message: str, payload: Any = None):
        self.payload = payload
        super().__init__(f"Invalid message: {message}")


# =============================================================================
# Topology Exceptions
# =============================================================================


class TopologyError(TradePitError):
    """Raised for invalid peer ids or topology sizes."""

    def __init__(self, message: str, peer_id: int | None = None):
        self.peer_id = peer_id
        prefix = f"[Peer {peer_id}] " if peer_id is not None else ""
        super().__init__(f"{prefix}{message}")


# =============================================================================
# Coordinator Exceptions
# =============================================================================


class CoordinatorTimeoutError(TradePitError):
    """Raised when the coordinator stops waiting for replies from peers."""

    def __init__(self, waiting_for: str, received: int, expected: int, timeout: float):
        self.waiting_for = waiting_for
        self.received = received
        self.expected = expected
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout:.2f}s waiting for {waiting_for}: "
            f"received {received} of {expected}"
        )
