"""Configuration models and helpers for the activity tracker."""

from __future__ import annotations

from dataclasses import dataclass

CURRENT_ACTIVITY_KEY = "whatimdoing_current"
ACTIVITY_HISTORY_KEY = "whatimdoing_history"


@dataclass(slots=True)
class TrackerSettings:
    """Limits and display budgets shared by the store and its views."""

    max_history_size: int = 500
    max_input_length: int = 100
    recent_limit: int = 5
    menu_label_length: int = 40
    # Terminal cells; the status title is fitted with TerminalMetrics.
    title_max_width: float = 30.0
    history_label_width: float = 48.0

    @classmethod
    def from_options(
        cls,
        max_history: int | None = None,
        max_input_length: int | None = None,
        recent_limit: int | None = None,
        title_width: float | None = None,
    ) -> "TrackerSettings":
        defaults = cls()
        settings = cls(
            max_history_size=max_history if max_history is not None else defaults.max_history_size,
            max_input_length=(
                max_input_length if max_input_length is not None else defaults.max_input_length
            ),
            recent_limit=recent_limit if recent_limit is not None else defaults.recent_limit,
            title_max_width=title_width if title_width is not None else defaults.title_max_width,
        )
        for name in ("max_history_size", "max_input_length", "recent_limit", "title_max_width"):
            if getattr(settings, name) <= 0:
                raise ValueError(f"{name} must be positive")
        return settings
