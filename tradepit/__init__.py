"""TradePit - token-trading peers with marker-based global snapshots.

Simple usage:
    from tradepit import Coordinator, SimulationConfig

    async with Coordinator(SimulationConfig(num_players=5)) as coordinator:
        coordinator.deal()
        reports = await coordinator.snapshot()

Advanced usage:
    from tradepit import PeerProcess, RecordingChannel, ScriptedSelection
"""

__version__ = "0.1.0"

# Types
from .types import (
    COORDINATOR,
    COORDINATOR_MARKER_SOURCE,
    DEFAULT_MAX_TRADES,
    AcceptOffer,
    EpochPhase,
    Marker,
    Message,
    MessageKind,
    NewHand,
    PeerConfig,
    PeerPhase,
    RejectOffer,
    Reset,
    ResetAction,
    SimulationConfig,
    SnapshotReport,
    TenderOffer,
)

# Exceptions
from .exceptions import (
    ChannelError,
    CoordinatorTimeoutError,
    InvalidMessageError,
    MessageError,
    TopologyError,
    TradePitError,
    UnknownDestinationError,
    UnknownMessageKindError,
)

# Transport
from .transport import (
    Channel,
    InMemoryTransport,
    RecordingChannel,
    decode_message,
    encode_message,
)

# Trading
from .trading import (
    RandomSelection,
    ResourcePool,
    ScriptedSelection,
    SelectionStrategy,
    TradeCounter,
    TradingStateMachine,
)

# Snapshot
from .snapshot import ParticipantSet, SnapshotEngine, SnapshotRecord

# Peers and coordination
from .peer import PeerProcess
from .coordinator import Coordinator

# Utilities
from .utils import StructuredLogger, configure_logging, get_logger, peer_logger

__all__ = [
    "__version__",
    # Types
    "COORDINATOR",
    "COORDINATOR_MARKER_SOURCE",
    "DEFAULT_MAX_TRADES",
    "AcceptOffer",
    "EpochPhase",
    "Marker",
    "Message",
    "MessageKind",
    "NewHand",
    "PeerConfig",
    "PeerPhase",
    "RejectOffer",
    "Reset",
    "ResetAction",
    "SimulationConfig",
    "SnapshotReport",
    "TenderOffer",
    # Exceptions
    "ChannelError",
    "CoordinatorTimeoutError",
    "InvalidMessageError",
    "MessageError",
    "TopologyError",
    "TradePitError",
    "UnknownDestinationError",
    "UnknownMessageKindError",
    # Transport
    "Channel",
    "InMemoryTransport",
    "RecordingChannel",
    "decode_message",
    "encode_message",
    # Trading
    "RandomSelection",
    "ResourcePool",
    "ScriptedSelection",
    "SelectionStrategy",
    "TradeCounter",
    "TradingStateMachine",
    # Snapshot
    "ParticipantSet",
    "SnapshotEngine",
    "SnapshotRecord",
    # Peers and coordination
    "PeerProcess",
    "Coordinator",
    # Utilities
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "peer_logger",
]
