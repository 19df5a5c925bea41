"""The activity state machine: one open activity plus a bounded history."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from .config import TrackerSettings
from .events import ACTIVITY_CHANGED, SHOW_HISTORY, EventBus, Subscription
from .models import Activity
from .normalization import matches_query
from .storage import PersistenceAdapter, StoredState

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ActivityStore:
    """Owns the current activity and history, persisting every mutation.

    Views read ``current_activity`` and ``history`` and subscribe to
    ``ACTIVITY_CHANGED``; they never mutate state directly. Notifications are
    delivered synchronously after the adapter has been asked to save.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        settings: Optional[TrackerSettings] = None,
        *,
        events: Optional[EventBus] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self.adapter = adapter
        self.settings = settings or TrackerSettings()
        self.events = events or EventBus()
        self._clock = clock
        self._current: Optional[Activity] = None
        self._history: tuple[Activity, ...] = ()
        self._restore(adapter.load())

    @property
    def current_activity(self) -> Optional[Activity]:
        return self._current

    @property
    def history(self) -> tuple[Activity, ...]:
        return self._history

    def _restore(self, state: StoredState) -> None:
        history = list(state.history)
        current = state.current
        if current is not None and current.is_closed:
            logger.warning("Stored current activity %s was already closed; archiving it.", current.id)
            history.insert(0, current)
            current = None
        open_entries = [activity for activity in history if not activity.is_closed]
        if open_entries:
            logger.warning("Dropping %d open entries found in stored history.", len(open_entries))
            history = [activity for activity in history if activity.is_closed]
        self._current = current
        self._history = tuple(history[: self.settings.max_history_size])
        logger.debug(
            "Loaded state: current=%s history=%d",
            self._current.text if self._current else None,
            len(self._history),
        )

    def start_activity(self, text: str) -> Optional[Activity]:
        """Make ``text`` the current activity, archiving the previous one."""
        trimmed = text.strip() if text else ""
        if not trimmed:
            return None

        now = self._clock()
        self._archive_current(now)
        self._current = Activity.begin(trimmed, now)
        logger.debug("Started activity %s: %s", self._current.id, self._current.text)
        self._commit()
        return self._current

    def clear_current(self) -> Optional[Activity]:
        """Archive the current activity, if any, and leave nothing current."""
        archived = self._archive_current(self._clock())
        self._current = None
        self._commit()
        return archived

    def clear_history(self) -> None:
        """Forget every archived activity; the current one stays."""
        removed = len(self._history)
        self._history = ()
        logger.debug("Cleared %d history entries.", removed)
        self._commit()

    def recent_activities(self, limit: Optional[int] = None) -> list[Activity]:
        """Most recent closed activities with distinct labels."""
        limit = self.settings.recent_limit if limit is None else limit
        if limit <= 0:
            return []
        seen: set[str] = set()
        recent: list[Activity] = []
        for activity in self._history:
            if not activity.is_closed or activity.text in seen:
                continue
            seen.add(activity.text)
            recent.append(activity)
            if len(recent) >= limit:
                break
        return recent

    def search_history(self, query: Optional[str] = None) -> list[Activity]:
        return [activity for activity in self._history if matches_query(activity.text, query)]

    def request_history_window(self) -> None:
        self.events.emit(SHOW_HISTORY)

    def subscribe(
        self, callback: Callable[[], None], event: str = ACTIVITY_CHANGED
    ) -> Subscription:
        return self.events.subscribe(event, callback)

    def _archive_current(self, now: datetime) -> Optional[Activity]:
        if self._current is None:
            return None
        closed = self._current.closed(now)
        self._history = (closed, *self._history)[: self.settings.max_history_size]
        return closed

    def _commit(self) -> None:
        if not self.adapter.save(self._current, self._history):
            logger.warning("Activity state kept in memory only; persistence failed.")
        self.events.emit(ACTIVITY_CHANGED)
