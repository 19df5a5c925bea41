"""View models for the status title, context menu, popover and history window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from .config import TrackerSettings
from .events import ACTIVITY_CHANGED
from .models import Activity
from .normalization import matches_query
from .reporting import count_label, group_by_day
from .store import ActivityStore
from .truncation import FontMetrics, TerminalMetrics, fit, truncate_by_count

NOT_SET_TITLE = "Not set"
NOT_SET_TOOLTIP = "Click to set your current activity"


class StatusTitlePresenter:
    """Keeps the status item title in sync with the current activity."""

    def __init__(
        self,
        store: ActivityStore,
        metrics: Optional[FontMetrics] = None,
        max_width: Optional[float] = None,
    ) -> None:
        self._store = store
        self._metrics = metrics or TerminalMetrics()
        self._max_width = max_width if max_width is not None else store.settings.title_max_width
        self.title = NOT_SET_TITLE
        self.tooltip = NOT_SET_TOOLTIP
        self._subscription = store.subscribe(self.refresh, ACTIVITY_CHANGED)
        self.refresh()

    def refresh(self) -> None:
        current = self._store.current_activity
        if current is None:
            self.title = NOT_SET_TITLE
            self.tooltip = NOT_SET_TOOLTIP
        else:
            self.title = fit(current.text, self._max_width, self._metrics)
            self.tooltip = current.text

    def close(self) -> None:
        self._subscription.cancel()


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Optional[str] = None
    payload: Optional[str] = None
    enabled: bool = True

    @property
    def is_separator(self) -> bool:
        return self.action == "separator"

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "action": self.action,
            "payload": self.payload,
            "enabled": self.enabled,
        }


SEPARATOR = MenuItem(label="", action="separator", enabled=False)


def build_context_menu(
    store: ActivityStore, settings: Optional[TrackerSettings] = None
) -> list[MenuItem]:
    """Entries for the right-click menu, top to bottom."""
    settings = settings or store.settings
    items: list[MenuItem] = []

    recent = store.recent_activities(settings.recent_limit)
    if recent:
        items.append(MenuItem(label="Recent Activities", enabled=False))
        for activity in recent:
            items.append(
                MenuItem(
                    label=truncate_by_count(activity.text, settings.menu_label_length),
                    action="start",
                    payload=activity.text,
                )
            )
        items.append(SEPARATOR)

    items.append(MenuItem(label="Set Activity…", action="set"))
    if store.current_activity is not None:
        items.append(MenuItem(label="Clear Current", action="clear"))
    items.append(SEPARATOR)
    items.append(MenuItem(label="Quit Whatimdoing", action="quit"))
    return items


def popover_suggestions(
    store: ActivityStore, query: Optional[str] = None, limit: Optional[int] = None
) -> list[Activity]:
    """Recent labels narrowed to the ones matching what has been typed so far."""
    recent = store.recent_activities(limit)
    return [activity for activity in recent if matches_query(activity.text, query)]


@dataclass(slots=True)
class HistoryView:
    current: Optional[Activity]
    groups: list[tuple[str, list[Activity]]]
    count_label: str
    can_clear: bool


def history_view(
    store: ActivityStore, today: date, search: Optional[str] = None
) -> HistoryView:
    activities = store.search_history(search)
    return HistoryView(
        current=store.current_activity,
        groups=group_by_day(activities, today),
        count_label=count_label(len(activities)),
        can_clear=bool(store.history),
    )
