"""In-process coordinator for running and observing a set of peers.

The coordinator deals hands, triggers snapshots, issues resets, and
collects what the peers send back on its channel. It runs every peer as
an asyncio task over an InMemoryTransport.
"""

import asyncio
import logging
import random
from collections import Counter
from typing import Any, Callable, Iterable

from .exceptions import CoordinatorTimeoutError, TopologyError
from .peer.process import PeerProcess
from .trading.selection import RandomSelection
from .transport.channel import InMemoryTransport
from .types import (
    COORDINATOR,
    COORDINATOR_MARKER_SOURCE,
    Marker,
    NewHand,
    Reset,
    ResetAction,
    SimulationConfig,
    SnapshotReport,
)

logger = logging.getLogger(__name__)


class Coordinator:
    """Drives a full peer topology in one event loop.

    Example:
        config = SimulationConfig(num_players=5, seed=7)
        async with Coordinator(config) as coordinator:
            coordinator.deal()
            reports = await coordinator.snapshot(initiator=2)
            totals = Coordinator.aggregate(reports)
            assert sum(totals.values()) == coordinator.total_dealt
            await coordinator.reset(ResetAction.HALT)
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        transport: InMemoryTransport | None = None,
    ):
        """Initialize the coordinator and its peers.

        Args:
            config: Simulation configuration.
            transport: Transport to use. Defaults to a new InMemoryTransport.
        """
        self._config = config or SimulationConfig()
        self._transport = transport or InMemoryTransport(self._config.num_players)
        self._rng = random.Random(self._config.seed)

        peer_config = self._config.peer_config()
        self._peers = [
            PeerProcess(
                peer_id=peer_id,
                channel=self._transport,
                config=peer_config,
                selection=self._selection_for(peer_id),
            )
            for peer_id in range(self._config.num_players)
        ]

        self._reports: asyncio.Queue[SnapshotReport] = asyncio.Queue()
        self._acks: asyncio.Queue[Reset] = asyncio.Queue()
        self._tasks: list[asyncio.Task[None]] = []
        self._total_dealt = 0

    def _selection_for(self, peer_id: int) -> RandomSelection:
        if self._config.seed is None:
            return RandomSelection()
        return RandomSelection(seed=self._config.seed + peer_id)

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def transport(self) -> InMemoryTransport:
        return self._transport

    @property
    def peers(self) -> list[PeerProcess]:
        return list(self._peers)

    @property
    def total_dealt(self) -> int:
        """Tokens dealt since the last CLEAR."""
        return self._total_dealt

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "Coordinator":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    def start(self) -> None:
        """Start one task per peer plus the coordinator inbox router."""
        if self._tasks:
            return
        for peer in self._peers:
            inbox = self._transport.inbox(peer.peer_id)
            self._tasks.append(asyncio.create_task(peer.run(inbox), name=f"peer-{peer.peer_id}"))
        self._tasks.append(asyncio.create_task(self._route_inbox(), name="coordinator"))
        logger.info(f"Started {len(self._peers)} peers")

    async def stop(self) -> None:
        """Cancel all tasks and wait for them to finish."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Stopped all peers")

    async def _route_inbox(self) -> None:
        inbox = self._transport.inbox(COORDINATOR)
        while True:
            message = await inbox.get()
            if isinstance(message, SnapshotReport):
                self._reports.put_nowait(message)
            elif isinstance(message, Reset):
                self._acks.put_nowait(message)
            else:
                logger.warning(f"Coordinator ignoring unexpected message: {message!r}")
            inbox.task_done()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def build_deck(self) -> list[str]:
        """One suit of cards_per_commodity tokens for each player's commodity."""
        deck = [
            commodity
            for commodity in self._config.deck_commodities()
            for _ in range(self._config.cards_per_commodity)
        ]
        self._rng.shuffle(deck)
        return deck

    def deal(self) -> list[list[str]]:
        """Shuffle a deck and send every peer an equal NewHand.

        Returns:
            The hands, indexed by peer id.
        """
        num_players = self._config.num_players
        deck = self.build_deck()
        size = len(deck) // num_players
        hands = [deck[i * size:(i + 1) * size] for i in range(num_players)]

        for peer_id, hand in enumerate(hands):
            self._transport.send(peer_id, NewHand(tokens=hand, num_players=num_players))
        self._total_dealt += sum(len(hand) for hand in hands)
        logger.info(f"Dealt {self._total_dealt} tokens to {num_players} peers")
        return hands

    async def snapshot(self, initiator: int = 0, timeout: float = 10.0) -> list[SnapshotReport]:
        """Trigger a snapshot at one peer and collect every peer's report.

        Args:
            initiator: Peer that receives the coordinator marker.
            timeout: Seconds to wait for all reports.

        Returns:
            Reports sorted by player.

        Raises:
            TopologyError: If the initiator is not a peer.
            CoordinatorTimeoutError: If not every peer reports in time.
        """
        if not 0 <= initiator < len(self._peers):
            raise TopologyError("No such peer to initiate a snapshot", peer_id=initiator)
        self._drain(self._reports, "snapshot report")
        self._transport.send(initiator, Marker(source=COORDINATOR_MARKER_SOURCE))
        logger.info(f"Snapshot triggered at peer {initiator}")

        reports: dict[int, SnapshotReport] = {}
        await self._collect(
            self._reports,
            lambda report: reports.setdefault(report.player, report),
            lambda: len(reports),
            "snapshot reports",
            timeout,
        )
        return [reports[player] for player in sorted(reports)]

    async def reset(self, action: ResetAction, timeout: float = 10.0) -> list[Reset]:
        """Send Reset(action) to every peer and wait for all acknowledgements.

        Raises:
            CoordinatorTimeoutError: If not every peer acknowledges in time.
        """
        self._drain(self._acks, "reset acknowledgement")
        for peer in self._peers:
            self._transport.send(peer.peer_id, Reset(action=action))
        if action == ResetAction.CLEAR:
            self._total_dealt = 0

        acks: list[Reset] = []
        await self._collect(self._acks, acks.append, lambda: len(acks), "reset acknowledgements", timeout)
        logger.info(f"Reset {action.value} acknowledged by {len(acks)} peers")
        return acks

    async def _collect(
        self,
        queue: asyncio.Queue,
        accept: Callable[[Any], Any],
        count: Callable[[], int],
        waiting_for: str,
        timeout: float,
    ) -> None:
        expected = len(self._peers)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while count() < expected:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise CoordinatorTimeoutError(waiting_for, count(), expected, timeout)
            try:
                item = await asyncio.wait_for(queue.get(), remaining)
            except asyncio.TimeoutError:
                raise CoordinatorTimeoutError(waiting_for, count(), expected, timeout) from None
            accept(item)

    @staticmethod
    def _drain(queue: asyncio.Queue, what: str) -> None:
        while not queue.empty():
            stale = queue.get_nowait()
            logger.warning(f"Discarding stale {what}: {stale!r}")

    @staticmethod
    def aggregate(reports: Iterable[SnapshotReport]) -> dict[str, int]:
        """Sum per-commodity counts across reports."""
        totals: Counter[str] = Counter()
        for report in reports:
            totals.update(report.counts)
        return dict(sorted(totals.items()))
