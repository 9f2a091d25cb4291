"""Fix event bus.

The decoder side publishes every accepted :class:`FixUpdate` here; the
register bank, the satellite tracker and any UI or logging collaborator
subscribe independently.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from gnssbridge.models.fix import FixUpdate

_logger = logging.getLogger(__name__)

FixSubscriber = Callable[[FixUpdate], None]


class FixBus:
    """Synchronous publish/subscribe channel for decoded fixes.

    Subscribers run in registration order on the publisher's thread. A
    subscriber that raises is logged and skipped; the remaining subscribers
    still receive the update.
    """

    def __init__(self) -> None:
        self._subscribers: list[FixSubscriber] = []

    def subscribe(self, callback: FixSubscriber) -> Callable[[], None]:
        """Register *callback* and return a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, update: FixUpdate) -> None:
        for callback in list(self._subscribers):
            try:
                callback(update)
            except Exception:
                _logger.exception("Fix subscriber %r failed for sentence=%s", callback, update.sentence)

    def __len__(self) -> int:
        return len(self._subscribers)
