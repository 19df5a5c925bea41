"""Synchronous change notifications between the store and its views."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)

ACTIVITY_CHANGED = "activityDidChange"
SHOW_HISTORY = "showHistoryWindow"

Callback = Callable[[], None]


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: "EventBus", event: str, callback: Callback) -> None:
        self._bus = bus
        self.event = event
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus.unsubscribe(self.event, self.callback)


class EventBus:
    """Named, payload-free events delivered in subscription order."""

    def __init__(self) -> None:
        self._subscribers: defaultdict[str, list[Callback]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callback) -> Subscription:
        self._subscribers[event].append(callback)
        return Subscription(self, event, callback)

    def unsubscribe(self, event: str, callback: Callback) -> None:
        callbacks = self._subscribers.get(event)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, ()))

    def emit(self, event: str) -> None:
        # Copy so callbacks may unsubscribe while being notified.
        for callback in list(self._subscribers.get(event, ())):
            try:
                callback()
            except Exception:
                logger.exception("Subscriber %r failed while handling %s", callback, event)
