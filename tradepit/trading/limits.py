"""Trade attempt cap for a single peer."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class TradeCounter:
    """Counts outbound trade attempts and enforces a cap.

    Every call to try_acquire() is one attempt and advances the counter,
    whether or not the attempt is allowed. Attempts are allowed while the
    counter, read before the increment, is below the cap.

    Example:
        counter = TradeCounter(max_trades=2)
        counter.try_acquire()  # True, count == 1
        counter.try_acquire()  # True, count == 2
        counter.try_acquire()  # False, count == 3
    """

    def __init__(
        self,
        max_trades: int,
        progress_interval: int = 100,
        on_progress: Callable[[int], None] | None = None,
        on_exhausted: Callable[[int], None] | None = None,
    ):
        """Initialize the counter.

        Args:
            max_trades: Cap on allowed attempts.
            progress_interval: Report the count every N attempts.
            on_progress: Callback receiving the count at each interval.
            on_exhausted: Callback receiving the cap the first time an
                attempt is refused. Defaults to an INFO line on the module logger.
        """
        self._max_trades = max_trades
        self._progress_interval = progress_interval
        self._on_progress = on_progress
        self._on_exhausted = on_exhausted
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def max_trades(self) -> int:
        return self._max_trades

    @property
    def exhausted(self) -> bool:
        """True once no further attempt will be allowed."""
        return self._count >= self._max_trades

    def try_acquire(self) -> bool:
        """Check the cap and advance the counter.

        Returns:
            True if the attempt is within the cap.
        """
        if self._count % self._progress_interval == 0 and self._on_progress:
            self._on_progress(self._count)
        allowed = self._count < self._max_trades
        self._count += 1
        if not allowed and self._count == self._max_trades + 1:
            if self._on_exhausted:
                self._on_exhausted(self._max_trades)
            else:
                logger.info(f"Trade cap of {self._max_trades} reached")
        return allowed

    def reset(self) -> None:
        self._count = 0
