"""SQLite database layer for activities and the current-activity pointer."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import Activity


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

CURRENT_POINTER_KEY = "current_activity_id"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    enable_foreign_keys(conn)
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Group statements on an autocommit connection into one transaction."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY,
            text TEXT NOT NULL,
            started_at TEXT NOT NULL,
            ended_at TEXT,
            position INTEGER
        );

        CREATE INDEX IF NOT EXISTS idx_activities_position
            ON activities(position);

        CREATE TABLE IF NOT EXISTS state (
            key TEXT PRIMARY KEY,
            value TEXT REFERENCES activities(id) ON DELETE SET NULL
        );
        """
    )


def _format(value: Optional[datetime]) -> Optional[str]:
    return value.strftime(DATETIME_FMT) if value is not None else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.strptime(value, DATETIME_FMT) if value else None


def row_to_activity(row: sqlite3.Row) -> Activity:
    started_at = _parse(row["started_at"])
    if started_at is None:
        raise ValueError(f"Activity {row['id']} has no start time")
    return Activity(
        id=row["id"],
        text=row["text"],
        started_at=started_at,
        ended_at=_parse(row["ended_at"]),
    )


def replace_state(
    conn: sqlite3.Connection,
    current: Optional[Activity],
    history: Iterable[Activity],
) -> None:
    """Rewrite every stored activity and the current pointer atomically."""
    rows = [
        (
            activity.id,
            activity.text,
            _format(activity.started_at),
            _format(activity.ended_at),
            position,
        )
        for position, activity in enumerate(history)
    ]
    with transaction(conn):
        conn.execute("DELETE FROM activities")
        conn.executemany(
            """
            INSERT INTO activities (id, text, started_at, ended_at, position)
            VALUES (?, ?, ?, ?, ?)
            """,
            rows,
        )
        if current is not None:
            conn.execute(
                """
                INSERT OR REPLACE INTO activities (id, text, started_at, ended_at, position)
                VALUES (?, ?, ?, NULL, NULL)
                """,
                (current.id, current.text, _format(current.started_at)),
            )
        conn.execute(
            "INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)",
            (CURRENT_POINTER_KEY, current.id if current is not None else None),
        )


def fetch_current_row(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
    """Follow the current pointer into the activities table."""
    return conn.execute(
        """
        SELECT a.id, a.text, a.started_at, a.ended_at
        FROM state s
        JOIN activities a ON a.id = s.value
        WHERE s.key = ?
        """,
        (CURRENT_POINTER_KEY,),
    ).fetchone()


def fetch_history_rows(conn: sqlite3.Connection, limit: int) -> list[sqlite3.Row]:
    """Closed activities, most recent first."""
    return list(
        conn.execute(
            """
            SELECT id, text, started_at, ended_at
            FROM activities
            WHERE ended_at IS NOT NULL
            ORDER BY position IS NULL, position, ended_at DESC
            LIMIT ?
            """,
            (limit,),
        )
    )


def count_activities(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM activities").fetchone()[0])
