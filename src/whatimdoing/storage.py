"""Persistence adapters for the current activity and its history.

Every adapter follows the same contract: ``load`` never fails (missing or
corrupt data comes back as empty state) and ``save`` swallows storage errors
after logging them, reporting success through its return value. The store
keeps working in memory when a save fails.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from .config import ACTIVITY_HISTORY_KEY, CURRENT_ACTIVITY_KEY
from .db import (
    database_connection,
    fetch_current_row,
    fetch_history_rows,
    replace_state,
    row_to_activity,
)
from .models import Activity

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 500

BACKENDS = ("json", "sqlite")


@dataclass(frozen=True, slots=True)
class StoredState:
    current: Optional[Activity] = None
    history: tuple[Activity, ...] = ()


class PersistenceAdapter(ABC):
    """Durable home of the current activity pointer and bounded history."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        self.max_history = max_history

    @abstractmethod
    def load(self) -> StoredState:
        """Reconstruct state; absent or corrupt data yields empty state."""

    @abstractmethod
    def save(self, current: Optional[Activity], history: Sequence[Activity]) -> bool:
        """Persist state, returning ``False`` if storage failed."""

    def close(self) -> None:
        """Release any held resources."""

    @property
    def location(self) -> Optional[Path]:
        return None

    def _bounded(self, history: Sequence[Activity]) -> list[Activity]:
        return list(history[: self.max_history])

    def __enter__(self) -> "PersistenceAdapter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class InMemoryStateAdapter(PersistenceAdapter):
    """Keeps state for the lifetime of the process only."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        super().__init__(max_history)
        self._state = StoredState()

    def load(self) -> StoredState:
        return self._state

    def save(self, current: Optional[Activity], history: Sequence[Activity]) -> bool:
        self._state = StoredState(current=current, history=tuple(self._bounded(history)))
        return True


def _decode_history(raw: Any) -> tuple[Activity, ...]:
    if not isinstance(raw, list):
        raise TypeError(f"History must be a list, got {type(raw).__name__}")
    history: list[Activity] = []
    for item in raw:
        try:
            history.append(Activity.from_dict(item))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping unreadable history entry: %r", item)
    return tuple(history)


class JsonStateAdapter(PersistenceAdapter):
    """Stores both keys as inline JSON records in a single file."""

    def __init__(self, path: Path, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        super().__init__(max_history)
        self.path = Path(path)

    @property
    def location(self) -> Path:
        return self.path

    def load(self) -> StoredState:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return StoredState()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("State file %s is unreadable; starting empty.", self.path)
            return StoredState()
        if not isinstance(raw, dict):
            logger.warning("State file %s has unexpected layout; starting empty.", self.path)
            return StoredState()

        current: Optional[Activity] = None
        current_raw = raw.get(CURRENT_ACTIVITY_KEY)
        if current_raw is not None:
            try:
                current = Activity.from_dict(current_raw)
            except (KeyError, TypeError, ValueError):
                logger.warning("Discarding corrupt current activity in %s", self.path)

        history: tuple[Activity, ...] = ()
        if ACTIVITY_HISTORY_KEY in raw:
            try:
                history = _decode_history(raw[ACTIVITY_HISTORY_KEY])
            except TypeError:
                logger.warning("Discarding corrupt history in %s", self.path)

        return StoredState(current=current, history=history[: self.max_history])

    def save(self, current: Optional[Activity], history: Sequence[Activity]) -> bool:
        payload: dict[str, Any] = {
            ACTIVITY_HISTORY_KEY: [activity.to_dict() for activity in self._bounded(history)],
        }
        if current is not None:
            payload[CURRENT_ACTIVITY_KEY] = current.to_dict()
        try:
            self._write_atomic(json.dumps(payload, ensure_ascii=False, indent=2))
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save activity state to %s", self.path)
            return False
        return True

    def _write_atomic(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class SqliteStateAdapter(PersistenceAdapter):
    """Stores activities in a table with a pointer row for the current one.

    Each load and save opens its own connection, so the adapter can be used
    from whichever thread the caller runs on.
    """

    def __init__(self, path: Path, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        super().__init__(max_history)
        self.path = Path(path)

    @property
    def location(self) -> Path:
        return self.path

    def _ensure_parent(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> StoredState:
        try:
            self._ensure_parent()
            with database_connection(self.path) as conn:
                current_row = fetch_current_row(conn)
                history_rows = fetch_history_rows(conn, self.max_history)
        except (OSError, sqlite3.Error):
            logger.warning("Activity database %s is unreadable; starting empty.", self.path)
            return StoredState()

        current: Optional[Activity] = None
        if current_row is not None:
            try:
                current = row_to_activity(current_row)
            except (TypeError, ValueError):
                logger.warning("Discarding corrupt current activity in %s", self.path)
        return StoredState(current=current, history=self._decode_rows(history_rows))

    def _decode_rows(self, rows: Iterable[sqlite3.Row]) -> tuple[Activity, ...]:
        history: list[Activity] = []
        for row in rows:
            try:
                history.append(row_to_activity(row))
            except (TypeError, ValueError):
                logger.warning("Skipping unreadable activity row %s", row["id"])
        return tuple(history)

    def save(self, current: Optional[Activity], history: Sequence[Activity]) -> bool:
        try:
            self._ensure_parent()
            with database_connection(self.path) as conn:
                replace_state(conn, current, self._bounded(history))
        except (OSError, sqlite3.Error, TypeError, ValueError):
            logger.exception("Failed to save activity state to %s", self.path)
            return False
        return True


def open_adapter(
    backend: str, path: Path, max_history: int = DEFAULT_MAX_HISTORY
) -> PersistenceAdapter:
    """Build the persistence adapter registered under ``backend``."""
    if backend == "json":
        return JsonStateAdapter(path, max_history=max_history)
    if backend == "sqlite":
        return SqliteStateAdapter(path, max_history=max_history)
    raise ValueError(f"Unknown storage backend {backend!r}; expected one of {', '.join(BACKENDS)}")
