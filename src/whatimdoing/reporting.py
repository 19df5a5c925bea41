"""Formatting helpers and console rendering for activity history."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from .models import Activity
from .truncation import TerminalMetrics, fit


def format_duration(duration: timedelta) -> str:
    minutes = int(duration.total_seconds()) // 60
    if minutes < 1:
        return "< 1m"
    if minutes < 60:
        return f"{minutes}m"
    hours, remainder = divmod(minutes, 60)
    return f"{hours}h {remainder}m"


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def time_ago(value: datetime, now: datetime) -> str:
    seconds = int((now - value).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def day_label(value: datetime, today: date) -> str:
    day = value.date()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{value:%b} {day.day}, {day.year}"


def time_range(activity: Activity) -> str:
    start = format_time(activity.started_at)
    if activity.ended_at is not None:
        return f"{start} – {format_time(activity.ended_at)}"
    return f"Started {start}"


def group_by_day(
    activities: Iterable[Activity], today: date
) -> list[tuple[str, list[Activity]]]:
    """Group by start day, keeping the order in which days first appear."""
    groups: dict[str, list[Activity]] = {}
    for activity in activities:
        groups.setdefault(day_label(activity.started_at, today), []).append(activity)
    return list(groups.items())


def count_label(count: int) -> str:
    return f"{count} {'activity' if count == 1 else 'activities'}"


class HistoryPrinter:
    """Render the history window in the console."""

    def __init__(self, width: float = 48.0) -> None:
        self.width = width
        self._metrics = TerminalMetrics()

    def print_current(self, current: Optional[Activity], now: datetime) -> None:
        if current is None:
            print("No activity set")
            return
        started = format_time(current.started_at)
        print(f"Current: {current.text} (started {started}, {time_ago(current.started_at, now)})")

    def print_history(self, activities: list[Activity], today: date) -> None:
        if not activities:
            print("No activities yet")
            print("Start tracking with `whatimdoing set <text>`")
            return

        for label, items in group_by_day(activities, today):
            print(label)
            print("-" * 40)
            for activity in items:
                text = fit(activity.text, self.width, self._metrics)
                duration = format_duration(activity.duration) if activity.duration is not None else ""
                print(f"  {text:<{int(self.width)}} {time_range(activity):<15} {duration:>8}")
            print()
        print(count_label(len(activities)))
