"""Marker-based global snapshot engine (Chandy-Lamport style).

Each peer records its own pool when it sees the first marker of an
epoch and forwards a marker of its own to every other peer. From then
until a peer's marker arrives, every trade token received from that peer
belongs to the channel and is added to the record. When markers from
all other peers have arrived, the record is reported to the coordinator
and the engine returns to idle.

Trading is never paused: the cut is defined purely by per-channel
message order.
"""

from typing import Callable, Iterable, Iterator

from ..trading.pool import ResourcePool
from ..transport.channel import Channel
from ..types import COORDINATOR, EpochPhase, Marker, SnapshotReport
from ..utils.logging import StructuredLogger


class ParticipantSet:
    """Peers whose marker has arrived in the current epoch.

    Backed by a per-peer flag table that is cleared in place between
    epochs and only grows when a larger topology is seen.
    """

    def __init__(self, capacity: int = 0):
        self._seen: list[bool] = [False] * capacity
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __contains__(self, peer_id: object) -> bool:
        return isinstance(peer_id, int) and 0 <= peer_id < len(self._seen) and self._seen[peer_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self.members())

    @property
    def capacity(self) -> int:
        return len(self._seen)

    def ensure_capacity(self, capacity: int) -> None:
        if capacity > len(self._seen):
            self._seen.extend([False] * (capacity - len(self._seen)))

    def add(self, peer_id: int) -> bool:
        """Add a peer. Returns False if it was already present."""
        if peer_id < 0:
            raise ValueError(f"Invalid participant id: {peer_id}")
        self.ensure_capacity(peer_id + 1)
        if self._seen[peer_id]:
            return False
        self._seen[peer_id] = True
        self._size += 1
        return True

    def truncate(self, capacity: int) -> list[int]:
        """Remove members with id >= capacity. Returns the removed ids."""
        removed = [peer_id for peer_id in range(capacity, len(self._seen)) if self._seen[peer_id]]
        for peer_id in removed:
            self._seen[peer_id] = False
        self._size -= len(removed)
        return removed

    def members(self) -> list[int]:
        return [peer_id for peer_id, seen in enumerate(self._seen) if seen]

    def clear(self) -> None:
        for i in range(len(self._seen)):
            self._seen[i] = False
        self._size = 0


class SnapshotRecord:
    """Commodity -> count map for one epoch, cleared in place."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._counts)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def seed(self, tokens: Iterable[str]) -> None:
        for token in tokens:
            self.fold(token)

    def fold(self, token: str) -> None:
        self._counts[token] = self._counts.get(token, 0) + 1

    def as_dict(self) -> dict[str, int]:
        return dict(sorted(self._counts.items()))

    def clear(self) -> None:
        self._counts.clear()


class SnapshotEngine:
    """Per-peer marker bookkeeping.

    Example:
        engine = SnapshotEngine(
            peer_id=2,
            channel=channel,
            pool=pool,
            num_players=lambda: 5,
            is_halted=lambda: False,
        )
        engine.on_marker(Marker(source=COORDINATOR_MARKER_SOURCE))
        # pool recorded, Marker(source=2) sent to peers 0, 1, 3 and 4
    """

    def __init__(
        self,
        peer_id: int,
        channel: Channel,
        pool: ResourcePool,
        num_players: Callable[[], int],
        is_halted: Callable[[], bool],
        log: StructuredLogger | None = None,
    ):
        """Initialize the engine.

        Args:
            peer_id: This peer's id.
            channel: Outbound channel for markers and reports.
            pool: The peer's pool, recorded at the start of each epoch.
            num_players: Returns the current topology size (0 if unknown).
            is_halted: Returns True while marker forwarding is suppressed.
            log: Logger carrying the peer's context.
        """
        self._peer_id = peer_id
        self._channel = channel
        self._pool = pool
        self._num_players = num_players
        self._is_halted = is_halted
        self._log = log or StructuredLogger("snapshot").with_context(peer=peer_id)

        self._record = SnapshotRecord()
        self._participants = ParticipantSet()
        self._recording = False
        self._broadcast_pending = False
        self._epoch = 0

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def broadcast_pending(self) -> bool:
        """True while a started epoch waits for NewHand to broadcast its marker."""
        return self._broadcast_pending

    @property
    def phase(self) -> EpochPhase:
        return EpochPhase.RECORDING if self._recording else EpochPhase.IDLE

    @property
    def epoch(self) -> int:
        """Number of completed epochs."""
        return self._epoch

    @property
    def participants(self) -> list[int]:
        return self._participants.members()

    @property
    def record(self) -> dict[str, int]:
        return self._record.as_dict()

    def observe(self, source_peer: int, token: str) -> None:
        """Fold an inbound trade token into the record if its channel is open."""
        if self._recording and source_peer not in self._participants:
            self._record.fold(token)

    def on_marker(self, marker: Marker) -> None:
        if marker.source == self._peer_id:
            self._log.warning("Ignoring marker from self", source=marker.source)
            return

        num_players = self._num_players()
        if num_players > 0 and marker.source >= num_players:
            self._log.warning(
                "Ignoring marker from outside the topology",
                source=marker.source,
                num_players=num_players,
            )
            return

        if not self._recording:
            self._start_epoch(marker, num_players)
        elif marker.from_coordinator:
            self._log.warning("Ignoring coordinator marker during active epoch")
            return
        elif not self._participants.add(marker.source):
            self._log.warning("Ignoring duplicate marker", source=marker.source)
            return
        else:
            self._log.debug(
                "Marker received",
                source=marker.source,
                participants=self._participants.members(),
            )

        self._check_complete(num_players)

    def on_topology(self, num_players: int) -> None:
        """Send a broadcast held back because the topology was unknown.

        Must run before any trade token leaves the peer under the new
        topology, so the marker precedes them on every channel.
        """
        if not self._broadcast_pending or num_players <= 0:
            return
        self._broadcast_pending = False
        dropped = self._participants.truncate(num_players)
        if dropped:
            self._log.warning("Dropping markers from outside the topology", sources=dropped)
        self._log.debug("Topology known, sending held marker", num_players=num_players)
        self._broadcast(num_players)
        self._check_complete(num_players)

    def reset(self) -> None:
        """Abandon the current epoch. The completed epoch count is kept."""
        if self._recording:
            self._log.info("Recording abandoned", epoch=self._epoch)
        self._record.clear()
        self._participants.clear()
        self._recording = False
        self._broadcast_pending = False

    def _start_epoch(self, marker: Marker, num_players: int) -> None:
        self._participants.ensure_capacity(num_players)
        self._record.seed(self._pool.tokens)
        self._recording = True
        if not marker.from_coordinator:
            self._participants.add(marker.source)
        self._log.info(
            "Recording started",
            trigger=marker.source,
            epoch=self._epoch,
            record=self._record.as_dict(),
        )
        if num_players > 0:
            self._broadcast(num_players)
        else:
            self._broadcast_pending = True
            self._log.debug("Topology unknown, marker broadcast held until NewHand")

    def _broadcast(self, num_players: int) -> None:
        if self._is_halted():
            # A halted peer forwards no markers, so other peers' epochs
            # cannot complete until it is cleared and re-triggered.
            self._log.warning("Halted, marker broadcast suppressed", epoch=self._epoch)
            return
        marker = Marker(source=self._peer_id)
        for peer_id in range(num_players):
            if peer_id != self._peer_id:
                self._channel.send(peer_id, marker)

    def _check_complete(self, num_players: int) -> None:
        if num_players <= 0 or len(self._participants) < num_players - 1:
            return

        report = SnapshotReport(
            player=self._peer_id,
            epoch=self._epoch,
            counts=self._record.as_dict(),
        )
        self._log.info("All markers received", epoch=self._epoch, record=report.counts)
        self._channel.send(COORDINATOR, report)

        self._record.clear()
        self._participants.clear()
        self._recording = False
        self._epoch += 1
