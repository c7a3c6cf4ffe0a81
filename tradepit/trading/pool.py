"""Resource pool and derived hand counts for one peer."""

from collections import Counter
from typing import Iterable, Iterator


class ResourcePool:
    """An owned multiset of commodity tokens with derived per-commodity counts.

    Tokens are kept in arrival order; counts are rebuilt after every
    mutation so that sum(counts) == len(pool) always holds.

    Example:
        pool = ResourcePool()
        pool.extend(["wheat", "wheat", "corn"])
        pool.counts  # {"corn": 1, "wheat": 2}
        pool.max_commodity()  # "wheat"
    """

    def __init__(self, tokens: Iterable[str] | None = None):
        self._tokens: list[str] = list(tokens or [])
        self._counts: dict[str, int] = {}
        self._rebuild_counts()

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tokens))

    def __contains__(self, token: object) -> bool:
        return token in self._counts

    @property
    def tokens(self) -> list[str]:
        """Copy of the tokens in arrival order."""
        return list(self._tokens)

    @property
    def counts(self) -> dict[str, int]:
        """Copy of the commodity -> count mapping."""
        return dict(self._counts)

    def _rebuild_counts(self) -> None:
        self._counts = dict(sorted(Counter(self._tokens).items()))

    def add(self, token: str) -> None:
        self._tokens.append(token)
        self._rebuild_counts()

    def extend(self, tokens: Iterable[str]) -> None:
        self._tokens.extend(tokens)
        self._rebuild_counts()

    def pop(self, index: int) -> str:
        """Remove and return the token at a position."""
        token = self._tokens.pop(index)
        self._rebuild_counts()
        return token

    def remove_first(self, commodity: str) -> str:
        """Remove the first token of a commodity.

        Raises:
            ValueError: If no token of that commodity is held.
        """
        self._tokens.remove(commodity)
        self._rebuild_counts()
        return commodity

    def clear(self) -> None:
        self._tokens.clear()
        self._counts.clear()

    def max_commodity(self) -> str | None:
        """Commodity with the strictly largest count.

        Ties go to the lexicographically smallest name. None when empty.
        """
        best: str | None = None
        best_count = -1
        for commodity, count in self._counts.items():
            if count > best_count:
                best, best_count = commodity, count
        return best

    def min_commodity(self) -> str | None:
        """Commodity with the strictly smallest count.

        Ties go to the lexicographically smallest name. None when empty.
        """
        best: str | None = None
        best_count = 0
        for commodity, count in self._counts.items():
            if best is None or count < best_count:
                best, best_count = commodity, count
        return best

    def describe(self) -> str:
        return f"size: {len(self._tokens)} " + " ".join(self._tokens)
