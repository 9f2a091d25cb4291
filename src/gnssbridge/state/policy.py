"""Register update rate policy.

The receiver can emit a dozen sentences per second. Register writes are
gated to at most one per minimum interval: the first fix after the interval
elapses wins, and every fix arriving inside the interval is discarded, not
queued.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class UpdateGate:
    """Minimum-interval gate, last value wins."""

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval = min_interval
        self._clock = clock
        self._last: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    def ready(self) -> bool:
        """Return ``True`` and close the gate if the interval has elapsed."""
        now = self._clock()
        if self._last is not None and now - self._last < self._min_interval:
            return False
        self._last = now
        return True

    def reset(self) -> None:
        self._last = None
