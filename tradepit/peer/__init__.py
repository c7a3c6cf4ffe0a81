"""TradePit Peer Layer."""

from .process import PeerProcess

__all__ = ["PeerProcess"]
