"""Domain models for recorded activity."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Optional


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class Activity:
    """A labeled span of time; open while ``ended_at`` is ``None``."""

    text: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Activity text must not be empty")
        if not self.id:
            raise ValueError("Activity id must not be empty")
        if self.ended_at is not None and self.ended_at < self.started_at:
            raise ValueError("Activity cannot end before it starts")

    @classmethod
    def begin(cls, text: str, at: datetime) -> "Activity":
        """Create a new open activity with a fresh identifier."""
        return cls(text=text.strip(), started_at=at)

    @property
    def is_closed(self) -> bool:
        return self.ended_at is not None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    def closed(self, at: datetime) -> "Activity":
        """Return a copy ended at ``at`` (never earlier than the start)."""
        if self.ended_at is not None:
            raise ValueError(f"Activity {self.id} is already closed")
        return replace(self, ended_at=max(at, self.started_at))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Activity":
        """Rebuild an activity from :meth:`to_dict` output.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` for malformed
        payloads so callers can treat them as corrupt.
        """
        if not isinstance(payload, dict):
            raise TypeError(f"Expected a mapping, got {type(payload).__name__}")
        text = payload["text"]
        if not isinstance(text, str):
            raise TypeError("Activity text must be a string")
        ended_raw = payload.get("ended_at")
        return cls(
            id=str(payload["id"]),
            text=text.strip(),
            started_at=datetime.fromisoformat(payload["started_at"]),
            ended_at=datetime.fromisoformat(ended_raw) if ended_raw else None,
        )
