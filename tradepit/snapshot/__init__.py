"""TradePit Snapshot Layer."""

from .engine import ParticipantSet, SnapshotEngine, SnapshotRecord

__all__ = ["ParticipantSet", "SnapshotEngine", "SnapshotRecord"]
