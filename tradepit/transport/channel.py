"""Channel abstraction connecting peers and the coordinator.

Peers never resolve destinations themselves. They hand a message and an
address (a peer id or COORDINATOR) to a Channel, which must deliver
messages in order per destination and must never block the sender.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Union

from pydantic import BaseModel

from ..exceptions import TopologyError, UnknownDestinationError
from ..types import COORDINATOR

logger = logging.getLogger(__name__)

Address = Union[int, str]


class Channel(ABC):
    """Abstract fire-and-forget send interface."""

    @abstractmethod
    def send(self, destination: Address, message: BaseModel) -> None:
        """Hand a message to the transport without waiting for delivery.

        Args:
            destination: Peer id or COORDINATOR.
            message: Message model to deliver.

        Raises:
            ChannelError: If the transport cannot accept the message.
        """


class InMemoryTransport(Channel):
    """One asyncio.Queue inbox per peer plus one for the coordinator.

    Queues are FIFO, so delivery order is preserved per destination and
    therefore per (sender, receiver) pair.

    Example:
        transport = InMemoryTransport(num_players=5)
        transport.send(3, TenderOffer(token="wheat", source_peer=0))
        message = await transport.inbox(3).get()
    """

    def __init__(self, num_players: int):
        """Initialize the transport.

        Args:
            num_players: Number of peers (addresses 0..num_players-1).
        """
        if num_players < 1:
            raise TopologyError(f"num_players must be positive, got {num_players}")
        self._num_players = num_players
        self._inboxes: dict[Address, asyncio.Queue[Any]] = {
            peer_id: asyncio.Queue() for peer_id in range(num_players)
        }
        self._inboxes[COORDINATOR] = asyncio.Queue()
        self._sent_count = 0

    @property
    def num_players(self) -> int:
        return self._num_players

    @property
    def sent_count(self) -> int:
        """Total messages accepted for delivery."""
        return self._sent_count

    def inbox(self, address: Address) -> "asyncio.Queue[Any]":
        """Get the inbox queue for an address."""
        try:
            return self._inboxes[address]
        except KeyError:
            raise UnknownDestinationError(address) from None

    def send(self, destination: Address, message: BaseModel) -> None:
        queue = self.inbox(destination)
        queue.put_nowait(message)
        self._sent_count += 1

    def pending(self) -> int:
        """Messages waiting in all inboxes."""
        return sum(queue.qsize() for queue in self._inboxes.values())


class RecordingChannel(Channel):
    """Channel that records every send, for driving peers synchronously.

    Example:
        channel = RecordingChannel()
        peer = PeerProcess(0, channel)
        peer.deliver(NewHand(tokens=["wheat"], num_players=2))
        assert channel.sent[0] == (1, TenderOffer(token="wheat", source_peer=0))
    """

    def __init__(self) -> None:
        self.sent: list[tuple[Address, BaseModel]] = []

    def send(self, destination: Address, message: BaseModel) -> None:
        self.sent.append((destination, message))

    def to(self, destination: Address) -> list[BaseModel]:
        """Messages sent to one destination, in order."""
        return [message for dest, message in self.sent if dest == destination]

    def of_type(self, message_type: type) -> list[tuple[Address, BaseModel]]:
        """(destination, message) pairs whose message is of a given type."""
        return [(dest, message) for dest, message in self.sent if isinstance(message, message_type)]

    def clear(self) -> None:
        self.sent.clear()
