"""Pluggable selection of the token to offer and the peer to offer it to."""

import random
from abc import ABC, abstractmethod
from typing import Iterable, Sequence


class SelectionStrategy(ABC):
    """Chooses among current tokens and candidate peers.

    Both methods are pure with respect to the peer: they receive a view of
    the pool or the candidate list and return an index into it.
    """

    @abstractmethod
    def choose_token(self, tokens: Sequence[str]) -> int:
        """Index of the token to offer. tokens is never empty."""

    @abstractmethod
    def choose_peer(self, candidates: Sequence[int]) -> int:
        """Index of the destination peer. candidates is never empty."""


class RandomSelection(SelectionStrategy):
    """Uniform random selection, optionally seeded."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self._rng = rng or random.Random(seed)

    def choose_token(self, tokens: Sequence[str]) -> int:
        return self._rng.randrange(len(tokens))

    def choose_peer(self, candidates: Sequence[int]) -> int:
        return self._rng.randrange(len(candidates))


class ScriptedSelection(SelectionStrategy):
    """Deterministic selection for tests.

    Tokens are chosen by name and peers by id, consumed from the scripts in
    order. When a script runs dry, the first entry is chosen.

    Example:
        selection = ScriptedSelection(tokens=["wheat"], peers=[3])
        peer = PeerProcess(0, channel, selection=selection)
    """

    def __init__(self, tokens: Iterable[str] = (), peers: Iterable[int] = ()):
        self._tokens = list(tokens)
        self._peers = list(peers)

    def queue_token(self, token: str) -> None:
        self._tokens.append(token)

    def queue_peer(self, peer_id: int) -> None:
        self._peers.append(peer_id)

    def choose_token(self, tokens: Sequence[str]) -> int:
        if self._tokens:
            wanted = self._tokens.pop(0)
            if wanted in tokens:
                return list(tokens).index(wanted)
        return 0

    def choose_peer(self, candidates: Sequence[int]) -> int:
        if self._peers:
            wanted = self._peers.pop(0)
            if wanted in candidates:
                return list(candidates).index(wanted)
        return 0
