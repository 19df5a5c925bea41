"""
Pytest configuration and shared fixtures for whatimdoing tests.

Fixtures:
    clock: Controllable clock injected into stores
    settings: Default tracker settings
    memory_adapter: In-memory persistence adapter that counts saves
    json_path / sqlite_path: Storage locations under tmp_path
    store: ActivityStore backed by the in-memory adapter
"""

from datetime import datetime, timedelta

import pytest

from whatimdoing.config import TrackerSettings
from whatimdoing.storage import InMemoryStateAdapter
from whatimdoing.store import ActivityStore

START_TIME = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    """Returns a fixed time that tests move forward explicitly."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return TrackerSettings()


class CountingAdapter(InMemoryStateAdapter):
    """In-memory adapter that records how often it was asked to save."""

    def __init__(self, max_history: int = 500) -> None:
        super().__init__(max_history)
        self.save_count = 0

    def save(self, current, history):
        self.save_count += 1
        return super().save(current, history)


@pytest.fixture
def memory_adapter():
    return CountingAdapter()


@pytest.fixture
def json_path(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def sqlite_path(tmp_path):
    return tmp_path / "activity.sqlite3"


@pytest.fixture
def store(memory_adapter, settings, clock):
    return ActivityStore(memory_adapter, settings, clock=clock)
