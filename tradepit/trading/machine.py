"""Trading state machine for one peer.

A peer holds a pool of commodity tokens and keeps offering one of them
to a random other peer. An offered token is accepted only if it is the
commodity the receiver already holds the most of; the receiver then pays
with a token of the commodity it holds the least of. Rejected tokens go
back to the offerer, who immediately tries again.

Phases: NO_HAND -> TRADING, HALTED at any time via halt(), and back to
NO_HAND only via clear().
"""

from typing import Callable

from ..transport.channel import Channel
from ..types import (
    AcceptOffer,
    NewHand,
    PeerConfig,
    PeerPhase,
    RejectOffer,
    TenderOffer,
)
from ..utils.logging import StructuredLogger
from .limits import TradeCounter
from .pool import ResourcePool
from .selection import RandomSelection, SelectionStrategy

# Called with (source_peer, token) for every inbound trade message.
TradeObserver = Callable[[int, str], None]


class TradingStateMachine:
    """Runs the make/accept/reject offer protocol for a single peer.

    Not thread-safe: the owning peer serializes all calls.

    Example:
        machine = TradingStateMachine(peer_id=0, channel=channel)
        machine.on_new_hand(NewHand(tokens=["wheat", "corn"], num_players=3))
        # one TenderOffer has been sent to peer 1 or 2
    """

    def __init__(
        self,
        peer_id: int,
        channel: Channel,
        config: PeerConfig | None = None,
        selection: SelectionStrategy | None = None,
        on_trade_received: TradeObserver | None = None,
        log: StructuredLogger | None = None,
    ):
        """Initialize the state machine.

        Args:
            peer_id: This peer's id.
            channel: Outbound channel.
            config: Peer configuration (trade cap).
            selection: Token/destination selection strategy.
            on_trade_received: Observer notified of each inbound trade token
                before the trading decision is made.
            log: Logger carrying the peer's context.
        """
        self._peer_id = peer_id
        self._channel = channel
        self._config = config or PeerConfig()
        self._selection = selection or RandomSelection()
        self._on_trade_received = on_trade_received
        self._log = log or StructuredLogger("trading").with_context(peer=peer_id)

        self._pool = ResourcePool()
        self._counter = TradeCounter(
            max_trades=self._config.max_trades,
            progress_interval=self._config.progress_log_interval,
            on_progress=lambda count: self._log.debug("Trade counter", num_trades=count),
            on_exhausted=lambda cap: self._log.info("Trade cap reached", max_trades=cap),
        )
        self._num_players = 0
        self._halted = False
        self._has_hand = False

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    @property
    def pool(self) -> ResourcePool:
        return self._pool

    @property
    def counter(self) -> TradeCounter:
        return self._counter

    @property
    def num_players(self) -> int:
        return self._num_players

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def phase(self) -> PeerPhase:
        if self._halted:
            return PeerPhase.HALTED
        if self._has_hand:
            return PeerPhase.TRADING
        return PeerPhase.NO_HAND

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def halt(self) -> None:
        """Drop inbound trades until the next clear()."""
        self._halted = True

    def clear(self) -> None:
        """Drop all tokens and return to NO_HAND."""
        self._pool.clear()
        self._counter.reset()
        self._num_players = 0
        self._halted = False
        self._has_hand = False

    # -------------------------------------------------------------------------
    # Inbound messages
    # -------------------------------------------------------------------------

    def on_new_hand(self, message: NewHand) -> None:
        # An accepted offer may already have beaten the hand here; tokens
        # are simply appended.
        self._pool.extend(message.tokens)
        self._num_players = message.num_players
        self._has_hand = True
        self._log.info("New hand", hand=self._pool.describe(), num_players=self._num_players)
        self.tender()

    def on_tender_offer(self, message: TenderOffer) -> None:
        if self._halted:
            return
        self._log.debug("Received offer", token=message.token, source=message.source_peer)
        self._observe(message.source_peer, message.token)

        wanted = self._pool.max_commodity()
        self._log.debug("Maximum commodity", commodity=wanted, counts=self._pool.counts)
        if message.token == wanted:
            self._pool.add(message.token)
            self._reply_accept(message.source_peer)
        else:
            self._reply_reject(message)

    def on_accept_offer(self, message: AcceptOffer) -> None:
        if self._halted:
            return
        self._observe(message.source_peer, message.token)
        self._pool.add(message.token)
        self._log.debug(
            "Received payment",
            token=message.token,
            source=message.source_peer,
            hand=self._pool.describe(),
        )
        self.tender()

    def on_reject_offer(self, message: RejectOffer) -> None:
        if self._halted:
            return
        self._observe(message.source_peer, message.token)
        self._pool.add(message.token)
        self._log.debug(
            "Offer rejected",
            token=message.token,
            source=message.source_peer,
            hand=self._pool.describe(),
        )
        self.tender()

    # -------------------------------------------------------------------------
    # Outbound messages
    # -------------------------------------------------------------------------

    def tender(self) -> None:
        """Offer a random token to a random other peer."""
        if not self._counter.try_acquire():
            return
        if self._num_players == 0:
            # Hand not dealt yet, so the topology is unknown.
            return

        candidates = [p for p in range(self._num_players) if p != self._peer_id]
        if not candidates or len(self._pool) == 0:
            self._log.debug("Nothing to offer", pool_size=len(self._pool))
            return

        token = self._pool.pop(self._selection.choose_token(self._pool.tokens))
        destination = candidates[self._selection.choose_peer(candidates)]
        self._log.debug("Offering", token=token, to=destination)
        self._channel.send(destination, TenderOffer(token=token, source_peer=self._peer_id))

    def _reply_accept(self, destination: int) -> None:
        if not self._counter.try_acquire():
            return

        payment = self._pool.min_commodity()
        if payment is None:
            return
        self._pool.remove_first(payment)
        self._log.debug(
            "Accepting offer",
            payment=payment,
            to=destination,
            hand=self._pool.describe(),
        )
        self._channel.send(destination, AcceptOffer(token=payment, source_peer=self._peer_id))

    def _reply_reject(self, offer: TenderOffer) -> None:
        if not self._counter.try_acquire():
            return
        self._log.debug("Rejecting offer", token=offer.token, to=offer.source_peer)
        self._channel.send(
            offer.source_peer,
            RejectOffer(token=offer.token, source_peer=self._peer_id),
        )

    def _observe(self, source_peer: int, token: str) -> None:
        if self._on_trade_received:
            self._on_trade_received(source_peer, token)
