"""Core types and data models for TradePit."""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


# Address of the coordinator's control/result channel.
COORDINATOR = "coordinator"

# Marker source used when the coordinator (not a peer) starts a snapshot.
COORDINATOR_MARKER_SOURCE = -1

DEFAULT_MAX_TRADES = 20000

DEFAULT_COMMODITIES = ["wheat", "corn", "barley", "oats", "rye"]


# =============================================================================
# Enums
# =============================================================================


class ResetAction(str, Enum):
    """Action carried by a Reset control message."""

    HALT = "halt"
    CLEAR = "clear"


class MessageKind(str, Enum):
    """Discriminator for the six message kinds."""

    RESET = "reset"
    NEW_HAND = "new_hand"
    TENDER_OFFER = "tender_offer"
    ACCEPT_OFFER = "accept_offer"
    REJECT_OFFER = "reject_offer"
    MARKER = "marker"


class PeerPhase(str, Enum):
    """Trading phase of a peer."""

    NO_HAND = "no_hand"  # Before any NewHand (or after CLEAR)
    TRADING = "trading"
    HALTED = "halted"  # Until the next CLEAR


class EpochPhase(str, Enum):
    """Phase of the snapshot engine."""

    IDLE = "idle"
    RECORDING = "recording"


# =============================================================================
# Messages
# =============================================================================


class Reset(BaseModel):
    """Coordinator control message, echoed back as acknowledgement."""

    kind: Literal["reset"] = "reset"
    action: ResetAction


class NewHand(BaseModel):
    """A fresh hand of tokens dealt by the coordinator."""

    kind: Literal["new_hand"] = "new_hand"
    tokens: list[str] = Field(default_factory=list)
    num_players: int = Field(ge=0, description="Size of the peer topology")


class TenderOffer(BaseModel):
    """A token offered by source_peer."""

    kind: Literal["tender_offer"] = "tender_offer"
    token: str
    source_peer: int = Field(ge=0)


class AcceptOffer(BaseModel):
    """Payment token sent back by a peer that accepted an offer."""

    kind: Literal["accept_offer"] = "accept_offer"
    token: str
    source_peer: int = Field(ge=0)


class RejectOffer(BaseModel):
    """The offered token, returned unchanged."""

    kind: Literal["reject_offer"] = "reject_offer"
    token: str
    source_peer: int = Field(ge=0)


class Marker(BaseModel):
    """Snapshot marker. source is a peer id or COORDINATOR_MARKER_SOURCE."""

    kind: Literal["marker"] = "marker"
    source: int = Field(ge=COORDINATOR_MARKER_SOURCE)

    @property
    def from_coordinator(self) -> bool:
        return self.source == COORDINATOR_MARKER_SOURCE


Message = Annotated[
    Union[Reset, NewHand, TenderOffer, AcceptOffer, RejectOffer, Marker],
    Field(discriminator="kind"),
]

MESSAGE_KINDS = frozenset(kind.value for kind in MessageKind)


# =============================================================================
# Snapshot reports
# =============================================================================


class SnapshotReport(BaseModel):
    """Completed snapshot record sent by one peer to the coordinator."""

    kind: Literal["snapshot_report"] = "snapshot_report"
    player: int
    epoch: int = Field(default=0, description="Completed epochs before this one")
    counts: dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_state(self) -> dict[str, Any]:
        """Flat attribute/value map: {"Player": id, commodity: count, ...}."""
        state: dict[str, Any] = {"Player": self.player}
        state.update(self.counts)
        return state


# =============================================================================
# Configuration
# =============================================================================


class PeerConfig(BaseModel):
    """Per-peer configuration."""

    max_trades: int = Field(
        default=DEFAULT_MAX_TRADES,
        ge=0,
        description="Trade attempts allowed before outbound trading stops",
    )
    progress_log_interval: int = Field(
        default=100,
        ge=1,
        description="Log the trade counter every N attempts",
    )


class SimulationConfig(BaseModel):
    """Configuration for a coordinator-driven run."""

    num_players: int = Field(default=5, ge=2, description="Number of peers")
    commodities: list[str] = Field(default_factory=lambda: list(DEFAULT_COMMODITIES))
    cards_per_commodity: int = Field(default=9, ge=1)
    max_trades: int = Field(default=DEFAULT_MAX_TRADES, ge=0)
    seed: int | None = Field(default=None, description="Seed for reproducible runs")

    def deck_commodities(self) -> list[str]:
        """One commodity per player, padding with generated names if needed."""
        names = list(self.commodities[: self.num_players])
        while len(names) < self.num_players:
            names.append(f"commodity{len(names)}")
        return names

    def peer_config(self) -> PeerConfig:
        return PeerConfig(max_trades=self.max_trades)
