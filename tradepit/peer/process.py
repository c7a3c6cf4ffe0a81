"""Peer process: one serialized inbox in front of the trading and snapshot machines."""

import asyncio
from typing import Any

from ..exceptions import TopologyError, UnknownMessageKindError
from ..snapshot.engine import SnapshotEngine
from ..trading.machine import TradingStateMachine
from ..trading.selection import SelectionStrategy
from ..transport.channel import Channel
from ..transport.codec import decode_message
from ..types import (
    COORDINATOR,
    AcceptOffer,
    EpochPhase,
    Marker,
    NewHand,
    PeerConfig,
    PeerPhase,
    RejectOffer,
    Reset,
    ResetAction,
    TenderOffer,
)
from ..utils.logging import peer_logger


class PeerProcess:
    """A single trading peer.

    All state for one peer lives here and is only touched from deliver(),
    which handles one message at a time. Failures never escape deliver():
    the message is logged with the peer id and dropped.

    Example:
        transport = InMemoryTransport(num_players=5)
        peer = PeerProcess(peer_id=0, channel=transport)
        task = asyncio.create_task(peer.run(transport.inbox(0)))
    """

    def __init__(
        self,
        peer_id: int,
        channel: Channel,
        config: PeerConfig | None = None,
        selection: SelectionStrategy | None = None,
    ):
        """Initialize the peer.

        Args:
            peer_id: Stable peer id (0..N-1).
            channel: Outbound channel to peers and the coordinator.
            config: Peer configuration.
            selection: Token/destination selection strategy.
        """
        if peer_id < 0:
            raise TopologyError(f"peer_id must be non-negative, got {peer_id}", peer_id=peer_id)
        self._peer_id = peer_id
        self._channel = channel
        self._config = config or PeerConfig()
        self._log = peer_logger(peer_id)

        self._trading = TradingStateMachine(
            peer_id=peer_id,
            channel=channel,
            config=self._config,
            selection=selection,
            on_trade_received=self._on_trade_received,
            log=self._log,
        )
        self._snapshot = SnapshotEngine(
            peer_id=peer_id,
            channel=channel,
            pool=self._trading.pool,
            num_players=lambda: self._trading.num_players,
            is_halted=lambda: self._trading.halted,
            log=self._log,
        )
        self._handled_count = 0
        self._stopping = False

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    @property
    def peer_id(self) -> int:
        return self._peer_id

    @property
    def phase(self) -> PeerPhase:
        return self._trading.phase

    @property
    def epoch_phase(self) -> EpochPhase:
        return self._snapshot.phase

    @property
    def pool(self) -> list[str]:
        return self._trading.pool.tokens

    @property
    def hand_counts(self) -> dict[str, int]:
        return self._trading.pool.counts

    @property
    def trade_count(self) -> int:
        return self._trading.counter.count

    @property
    def halted(self) -> bool:
        return self._trading.halted

    @property
    def num_players(self) -> int:
        return self._trading.num_players

    @property
    def recording(self) -> bool:
        return self._snapshot.recording

    @property
    def participants(self) -> list[int]:
        return self._snapshot.participants

    @property
    def snapshot_record(self) -> dict[str, int]:
        return self._snapshot.record

    @property
    def epoch(self) -> int:
        return self._snapshot.epoch

    @property
    def handled_count(self) -> int:
        return self._handled_count

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def deliver(self, raw: Any) -> None:
        """Handle one inbound message. Never raises."""
        try:
            message = decode_message(raw)
        except UnknownMessageKindError as e:
            self._log.warning("Discarding unknown message kind", kind=e.kind)
            return
        except Exception:
            self._log.exception("Discarding undecodable message", message=repr(raw))
            return

        try:
            self._dispatch(message)
        except Exception:
            self._log.exception("Handler failed, message dropped", message=repr(message))
        finally:
            self._handled_count += 1

    def _dispatch(self, message: Any) -> None:
        if isinstance(message, Reset):
            self._on_reset(message)
        elif isinstance(message, NewHand):
            # A held marker must go out before the hand triggers any tender.
            self._snapshot.on_topology(message.num_players)
            self._trading.on_new_hand(message)
        elif isinstance(message, TenderOffer):
            self._trading.on_tender_offer(message)
        elif isinstance(message, AcceptOffer):
            self._trading.on_accept_offer(message)
        elif isinstance(message, RejectOffer):
            self._trading.on_reject_offer(message)
        elif isinstance(message, Marker):
            self._snapshot.on_marker(message)
        else:
            raise TypeError(f"Unhandled message type: {type(message).__name__}")

    def _on_reset(self, reset: Reset) -> None:
        if reset.action == ResetAction.HALT:
            self._log.info("Reset HALT")
            self._trading.halt()
        else:
            self._log.info("Reset CLEAR")
            self._trading.clear()
            self._snapshot.reset()
        self._channel.send(COORDINATOR, reset)

    def _on_trade_received(self, source_peer: int, token: str) -> None:
        self._snapshot.observe(source_peer, token)

    # -------------------------------------------------------------------------
    # Serving
    # -------------------------------------------------------------------------

    def stop(self) -> None:
        """Ask run() to return after the current message."""
        self._stopping = True

    async def run(self, inbox: "asyncio.Queue[Any]") -> None:
        """Serve an inbox until stop() is called or the task is cancelled."""
        self._stopping = False
        self._log.debug("Serving inbox")
        while not self._stopping:
            message = await inbox.get()
            try:
                self.deliver(message)
            finally:
                inbox.task_done()
            # Let the other peers in this event loop make progress.
            await asyncio.sleep(0)
        self._log.debug("Stopped", handled=self._handled_count)
