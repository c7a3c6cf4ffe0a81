"""JSON wire codec for TradePit messages."""

import json
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..exceptions import InvalidMessageError, UnknownMessageKindError
from ..types import (
    MESSAGE_KINDS,
    AcceptOffer,
    Marker,
    Message,
    NewHand,
    RejectOffer,
    Reset,
    TenderOffer,
)

_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)

_MESSAGE_TYPES = (Reset, NewHand, TenderOffer, AcceptOffer, RejectOffer, Marker)


def encode_message(message: BaseModel) -> bytes:
    """Serialize a message model to JSON bytes."""
    return message.model_dump_json().encode("utf-8")


def decode_message(payload: Any) -> Message:
    """Decode a payload into one of the six message models.

    Accepts message models (returned as-is), JSON bytes/str, or dicts.

    Raises:
        UnknownMessageKindError: If the payload's kind is not a message kind.
        InvalidMessageError: If the payload is malformed.
    """
    if isinstance(payload, _MESSAGE_TYPES):
        return payload

    if isinstance(payload, BaseModel):
        raise UnknownMessageKindError(getattr(payload, "kind", type(payload).__name__))

    if isinstance(payload, (bytes, bytearray, str)):
        try:
            payload = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidMessageError(f"not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise UnknownMessageKindError(type(payload).__name__)

    kind = payload.get("kind")
    if kind not in MESSAGE_KINDS:
        raise UnknownMessageKindError(kind)

    try:
        return _MESSAGE_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise InvalidMessageError(str(e), payload=payload) from e
