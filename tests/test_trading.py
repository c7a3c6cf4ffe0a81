"""Tests for TradePit Trading Layer."""

import logging

import pytest

from tradepit.trading.limits import TradeCounter
from tradepit.trading.machine import TradingStateMachine
from tradepit.trading.pool import ResourcePool
from tradepit.trading.selection import RandomSelection, ScriptedSelection
from tradepit.transport.channel import RecordingChannel
from tradepit.types import (
    AcceptOffer,
    NewHand,
    PeerConfig,
    PeerPhase,
    RejectOffer,
    TenderOffer,
)


def make_machine(peer_id=1, max_trades=100, selection=None, observed=None):
    channel = RecordingChannel()
    observer = None
    if observed is not None:
        observer = lambda source, token: observed.append((source, token))
    machine = TradingStateMachine(
        peer_id=peer_id,
        channel=channel,
        config=PeerConfig(max_trades=max_trades),
        selection=selection or ScriptedSelection(),
        on_trade_received=observer,
    )
    return machine, channel


class TestResourcePool:
    """Tests for ResourcePool."""

    def test_counts_follow_tokens(self):
        """Test that counts always sum to the pool size."""
        pool = ResourcePool(["A", "A", "B", "B", "B", "C"])
        assert pool.counts == {"A": 2, "B": 3, "C": 1}
        assert sum(pool.counts.values()) == len(pool)

        pool.pop(0)
        pool.add("C")
        pool.remove_first("B")
        assert pool.counts == {"A": 1, "B": 2, "C": 2}
        assert sum(pool.counts.values()) == len(pool) == 5

    def test_max_and_min_tie_break(self):
        """Test that ties go to the lexicographically smallest commodity."""
        pool = ResourcePool(["wheat", "corn", "wheat", "corn", "rye"])
        assert pool.max_commodity() == "corn"
        assert pool.min_commodity() == "rye"

        pool.add("rye")
        assert pool.min_commodity() == "corn"

    def test_empty_pool(self):
        """Test that an empty pool has no max or min."""
        pool = ResourcePool()
        assert pool.max_commodity() is None
        assert pool.min_commodity() is None
        assert pool.counts == {}

    def test_remove_first_missing(self):
        """Test removing a commodity that is not held."""
        pool = ResourcePool(["A"])
        with pytest.raises(ValueError):
            pool.remove_first("B")

    def test_clear(self):
        pool = ResourcePool(["A", "B"])
        pool.clear()
        assert len(pool) == 0
        assert pool.counts == {}


class TestTradeCounter:
    """Tests for TradeCounter."""

    def test_counts_every_attempt(self):
        """Test that refused attempts still advance the counter."""
        counter = TradeCounter(max_trades=2)

        assert counter.try_acquire() is True

    def test_exhausted_callback_fires_once(self):
        caps = []
        counter = TradeCounter(max_trades=1, on_exhausted=caps.append)
        for _ in range(4):
            counter.try_acquire()
        assert caps == [1]

    def test_cap_logged_with_peer_context(self, caplog):
        """Test that the machine reports the cap through its peer logger."""
        machine, _ = make_machine(peer_id=6, max_trades=0)
        with caplog.at_level(logging.INFO, logger="tradepit"):
            machine.tender()
            machine.tender()

        lines = [r.getMessage() for r in caplog.records if "Trade cap" in r.getMessage()]
        assert lines == ["Trade cap reached | peer=6 max_trades=0"]
        assert counter.try_acquire() is True
        assert counter.exhausted
        assert counter.try_acquire() is False
        assert counter.try_acquire() is False
        assert counter.count == 4

    def test_zero_cap(self):
        counter = TradeCounter(max_trades=0)
        assert counter.try_acquire() is False
        assert counter.count == 1

    def test_progress_callback(self):
        """Test that progress is reported every interval."""
        seen = []
        counter = TradeCounter(max_trades=10, progress_interval=3, on_progress=seen.append)
        for _ in range(7):
            counter.try_acquire()
        assert seen == [0, 3, 6]

    def test_reset(self):
        counter = TradeCounter(max_trades=1)
        counter.try_acquire()
        counter.try_acquire()
        counter.reset()
        assert counter.count == 0
        assert counter.try_acquire() is True


class TestSelection:
    """Tests for selection strategies."""

    def test_seeded_random_is_reproducible(self):
        tokens = ["A", "B", "C", "D"]
        first = RandomSelection(seed=42)
        second = RandomSelection(seed=42)
        picks = [first.choose_token(tokens) for _ in range(20)]
        assert picks == [second.choose_token(tokens) for _ in range(20)]
        assert all(0 <= i < len(tokens) for i in picks)

    def test_scripted_selection(self):
        """Test that scripts are consumed in order, then fall back to the first entry."""
        selection = ScriptedSelection(tokens=["C", "X"], peers=[4])
        assert selection.choose_token(["A", "B", "C"]) == 2
        assert selection.choose_token(["A", "B", "C"]) == 0  # "X" not held
        assert selection.choose_peer([1, 2, 4]) == 2
        assert selection.choose_peer([1, 2, 4]) == 0

    def test_queued_choices_extend_the_script(self):
        selection = ScriptedSelection(tokens=["A"])
        selection.queue_token("B")
        selection.queue_peer(3)
        selection.queue_peer(1)

        assert selection.choose_token(["A", "B"]) == 0
        assert selection.choose_token(["A", "B"]) == 1
        assert selection.choose_peer([1, 3]) == 1
        assert selection.choose_peer([1, 3]) == 0

    def test_queued_choices_drive_tenders(self):
        """Test that choices queued mid-run steer the next offer."""
        selection = ScriptedSelection()
        machine, channel = make_machine(peer_id=0, selection=selection)
        selection.queue_token("B")
        selection.queue_peer(2)
        machine.on_new_hand(NewHand(tokens=["A", "B"], num_players=3))

        assert channel.sent == [(2, TenderOffer(token="B", source_peer=0))]


class TestNewHand:
    """Tests for dealing a new hand."""

    def test_new_hand_tenders_once(self):
        """Test that a new hand produces exactly one offer to another peer."""
        machine, channel = make_machine(peer_id=0, selection=RandomSelection(seed=3))

        machine.on_new_hand(NewHand(tokens=["A", "A", "B", "B", "B", "C"], num_players=5))

        assert len(channel.sent) == 1
        destination, offer = channel.sent[0]
        assert isinstance(offer, TenderOffer)
        assert destination in {1, 2, 3, 4}
        assert offer.source_peer == 0
        assert len(machine.pool) == 5
        assert machine.num_players == 5
        assert machine.phase == PeerPhase.TRADING

    def test_offered_token_leaves_the_pool(self):
        machine, channel = make_machine(
            peer_id=0, selection=ScriptedSelection(tokens=["C"], peers=[3])
        )

        machine.on_new_hand(NewHand(tokens=["A", "A", "B", "B", "B", "C"], num_players=5))

        assert channel.sent == [(3, TenderOffer(token="C", source_peer=0))]
        assert machine.pool.counts == {"A": 2, "B": 3}

    def test_hand_is_appended(self):
        """Test that tokens received before the hand are kept."""
        machine, _ = make_machine(peer_id=0)
        machine.pool.add("Z")

        machine.on_new_hand(NewHand(tokens=["A"], num_players=0))

        assert sorted(machine.pool.tokens) == ["A", "Z"]


class TestTenderOffer:
    """Tests for receiving offers."""

    def test_reject_when_not_most_held(self):
        """Test that an offer of a non-maximum commodity is returned."""
        machine, channel = make_machine(peer_id=1)
        machine.pool.extend(["A", "B", "C", "C", "C"])

        machine.on_tender_offer(TenderOffer(token="A", source_peer=0))

        assert channel.sent == [(0, RejectOffer(token="A", source_peer=1))]
        assert machine.pool.counts == {"A": 1, "B": 1, "C": 3}

    def test_accept_pays_with_least_held(self):
        """Test that an accepted offer is paid for with the minimum commodity."""
        machine, channel = make_machine(peer_id=1)
        machine.pool.extend(["A", "B", "C", "C", "C"])

        machine.on_tender_offer(TenderOffer(token="C", source_peer=0))

        assert channel.sent == [(0, AcceptOffer(token="A", source_peer=1))]
        assert machine.pool.counts == {"B": 1, "C": 4}

    def test_reject_with_empty_hand(self):
        machine, channel = make_machine(peer_id=1)

        machine.on_tender_offer(TenderOffer(token="A", source_peer=0))

        assert channel.sent == [(0, RejectOffer(token="A", source_peer=1))]
        assert len(machine.pool) == 0

    def test_accept_aborted_at_cap_keeps_token(self):
        """Test that an accept past the cap keeps the token and pays nothing."""
        machine, channel = make_machine(peer_id=1, max_trades=0)
        machine.pool.extend(["A", "C"])

        machine.on_tender_offer(TenderOffer(token="A", source_peer=0))

        assert channel.sent == []
        assert machine.pool.counts == {"A": 2, "C": 1}
        assert machine.counter.count == 1

    def test_reject_aborted_at_cap(self):
        machine, channel = make_machine(peer_id=1, max_trades=0)
        machine.pool.extend(["C", "C"])

        machine.on_tender_offer(TenderOffer(token="A", source_peer=0))

        assert channel.sent == []
        assert machine.pool.counts == {"C": 2}
        assert machine.counter.count == 1

    def test_observer_sees_offer_before_decision(self):
        observed = []
        machine, _ = make_machine(peer_id=1, observed=observed)
        machine.pool.extend(["C"])

        machine.on_tender_offer(TenderOffer(token="C", source_peer=4))

        assert observed == [(4, "C")]


class TestReplies:
    """Tests for receiving accept and reject replies."""

    def _dealt(self, selection):
        machine, channel = make_machine(peer_id=0, selection=selection)
        machine.on_new_hand(NewHand(tokens=["A", "B", "C"], num_players=3))
        channel.clear()
        return machine, channel

    def test_accept_adds_payment_and_tenders(self):
        machine, channel = self._dealt(ScriptedSelection(tokens=["A", "B"], peers=[1, 2]))
        assert machine.pool.counts == {"B": 1, "C": 1}

        machine.on_accept_offer(AcceptOffer(token="C", source_peer=1))

        assert channel.sent == [(2, TenderOffer(token="B", source_peer=0))]
        assert machine.pool.counts == {"C": 2}

    def test_reject_returns_token_and_tenders(self):
        machine, channel = self._dealt(ScriptedSelection(tokens=["A", "A"], peers=[1, 1]))

        machine.on_reject_offer(RejectOffer(token="A", source_peer=1))

        assert channel.sent == [(1, TenderOffer(token="A", source_peer=0))]
        assert machine.pool.counts == {"B": 1, "C": 1}

    def test_replies_are_observed(self):
        observed = []
        machine, _ = make_machine(peer_id=0, observed=observed)

        machine.on_accept_offer(AcceptOffer(token="A", source_peer=2))
        machine.on_reject_offer(RejectOffer(token="B", source_peer=3))

        assert observed == [(2, "A"), (3, "B")]


class TestTender:
    """Tests for making offers."""

    def test_suppressed_without_topology(self):
        """Test that no offer is made before num_players is known, but the attempt counts."""
        machine, channel = make_machine(peer_id=0)
        machine.pool.extend(["A", "B"])

        machine.tender()

        assert channel.sent == []
        assert len(machine.pool) == 2
        assert machine.counter.count == 1

    def test_empty_pool(self):
        machine, channel = make_machine(peer_id=0)
        machine.on_new_hand(NewHand(tokens=[], num_players=3))

        assert channel.sent == []

    def test_single_peer_topology(self):
        machine, channel = make_machine(peer_id=0)
        machine.on_new_hand(NewHand(tokens=["A"], num_players=1))

        assert channel.sent == []
        assert machine.pool.tokens == ["A"]

    def test_never_offers_to_self(self):
        machine, channel = make_machine(peer_id=2, selection=RandomSelection(seed=0))
        machine.on_new_hand(NewHand(tokens=["A"] * 50, num_players=4))
        for _ in range(40):
            machine.tender()

        destinations = {destination for destination, _ in channel.sent}
        assert 2 not in destinations
        assert destinations <= {0, 1, 3}

    def test_cutoff_applies_to_all_outbound_sends(self):
        """Test that tender, accept and reject attempts share one cap."""
        machine, channel = make_machine(peer_id=0, max_trades=2)
        machine.on_new_hand(NewHand(tokens=["A", "B", "B"], num_players=3))  # attempt 1
        machine.on_tender_offer(TenderOffer(token="C", source_peer=1))  # attempt 2, reject
        assert len(channel.sent) == 2

        machine.on_tender_offer(TenderOffer(token="B", source_peer=2))  # attempt 3, refused
        machine.tender()  # attempt 4, refused
        machine.on_reject_offer(RejectOffer(token="C", source_peer=1))  # attempt 5, refused

        assert len(channel.sent) == 2
        assert machine.counter.count == 5


class TestHaltAndClear:
    """Tests for HALT and CLEAR handling."""

    def test_halt_drops_inbound_trades(self):
        observed = []
        machine, channel = make_machine(peer_id=1, observed=observed)
        machine.pool.extend(["A"])
        machine.halt()

        machine.on_tender_offer(TenderOffer(token="A", source_peer=0))
        machine.on_accept_offer(AcceptOffer(token="B", source_peer=0))
        machine.on_reject_offer(RejectOffer(token="C", source_peer=0))

        assert channel.sent == []
        assert observed == []
        assert machine.pool.tokens == ["A"]
        assert machine.phase == PeerPhase.HALTED

    def test_clear_from_any_state(self):
        machine, _ = make_machine(peer_id=0, selection=RandomSelection(seed=1))
        machine.on_new_hand(NewHand(tokens=["A", "B", "C"], num_players=3))
        machine.halt()

        machine.clear()

        assert len(machine.pool) == 0
        assert machine.pool.counts == {}
        assert machine.counter.count == 0
        assert machine.halted is False
        assert machine.num_players == 0
        assert machine.phase == PeerPhase.NO_HAND
