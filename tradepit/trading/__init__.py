"""TradePit Trading Layer.

Components:
- pool: Token pool with derived hand counts
- selection: Pluggable token/destination selection
- limits: Trade attempt cap
- machine: Offer/accept/reject state machine
"""

from .limits import TradeCounter
from .machine import TradeObserver, TradingStateMachine
from .pool import ResourcePool
from .selection import RandomSelection, ScriptedSelection, SelectionStrategy

__all__ = [
    "RandomSelection",
    "ResourcePool",
    "ScriptedSelection",
    "SelectionStrategy",
    "TradeCounter",
    "TradeObserver",
    "TradingStateMachine",
]
