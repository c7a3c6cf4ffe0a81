"""TradePit Transport Layer.

Components:
- channel: Channel interface and in-memory implementations
- codec: JSON encoding/decoding of messages
"""

from .channel import Address, Channel, InMemoryTransport, RecordingChannel
from .codec import decode_message, encode_message

__all__ = [
    "Address",
    "Channel",
    "InMemoryTransport",
    "RecordingChannel",
    "decode_message",
    "encode_message",
]
