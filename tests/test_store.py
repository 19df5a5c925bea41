"""
Unit tests for the ActivityStore state machine.

Covers starting, clearing and archiving activities, the history cap,
recent-activity deduplication and change notifications.
"""

import pytest

from whatimdoing.config import TrackerSettings
from whatimdoing.events import ACTIVITY_CHANGED, SHOW_HISTORY
from whatimdoing.models import Activity
from whatimdoing.storage import InMemoryStateAdapter, StoredState
from whatimdoing.store import ActivityStore


class FailingAdapter(InMemoryStateAdapter):
    def __init__(self) -> None:
        super().__init__()
        self.save_count = 0

    def save(self, current, history):
        self.save_count += 1
        return False


class TestStartActivity:
    """Test cases for starting activities."""

    def test_sets_current_activity(self, store, clock):
        """A trimmed label becomes the open current activity."""
        activity = store.start_activity("  writing spec  ")

        assert activity is store.current_activity
        assert store.current_activity.text == "writing spec"
        assert store.current_activity.ended_at is None
        assert store.current_activity.started_at == clock.now
        assert store.history == ()

    def test_archives_previous_activity(self, store, clock):
        """Starting a new activity closes the previous one at the head of history."""
        first = store.start_activity("writing spec")
        clock.advance(minutes=25)
        store.start_activity("reviewing PR")

        head = store.history[0]
        assert head.id == first.id
        assert head.text == "writing spec"
        assert head.ended_at == clock.now
        assert head.ended_at >= head.started_at
        assert store.current_activity.text == "reviewing PR"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_is_ignored(self, store, memory_adapter, text):
        """Blank input changes nothing, saves nothing and notifies nobody."""
        store.start_activity("focus")
        saves = memory_adapter.save_count
        calls = []
        store.subscribe(lambda: calls.append(1))

        assert store.start_activity(text) is None
        assert store.current_activity.text == "focus"
        assert store.history == ()
        assert memory_adapter.save_count == saves
        assert calls == []

    def test_ids_are_unique(self, store):
        """Every started activity receives its own identifier."""
        ids = {store.start_activity(f"task {n}").id for n in range(10)}
        assert len(ids) == 10

    def test_store_does_not_clip_long_labels(self, store):
        """Input length limits belong to the views, not the store."""
        text = "x" * 250
        assert store.start_activity(text).text == text


class TestClearCurrent:
    """Test cases for clearing the current activity."""

    def test_moves_current_to_history(self, store, clock):
        store.start_activity("writing spec")
        clock.advance(minutes=5)

        archived = store.clear_current()

        assert store.current_activity is None
        assert archived.text == "writing spec"
        assert store.history == (archived,)
        assert archived.duration.total_seconds() == 300

    def test_is_idempotent(self, store):
        """A second clear keeps state unchanged and does not fail."""
        store.start_activity("writing spec")
        store.clear_current()
        history = store.history

        assert store.clear_current() is None
        assert store.current_activity is None
        assert store.history == history

    def test_notifies_even_without_current(self, store):
        calls = []
        store.subscribe(lambda: calls.append(1))

        store.clear_current()

        assert calls == [1]


class TestScenario:
    def test_writing_then_reviewing_then_clear(self, store, clock):
        """History grows most-recent-first as activities are superseded."""
        store.start_activity("writing spec")
        clock.advance(minutes=30)
        store.start_activity("reviewing PR")

        assert [a.text for a in store.history] == ["writing spec"]
        assert all(a.is_closed for a in store.history)
        assert store.current_activity.text == "reviewing PR"

        clock.advance(minutes=10)
        store.clear_current()

        assert [a.text for a in store.history] == ["reviewing PR", "writing spec"]
        assert all(a.is_closed for a in store.history)
        assert store.current_activity is None


class TestHistoryCap:
    def test_history_never_exceeds_cap(self, clock):
        settings = TrackerSettings(max_history_size=3)
        store = ActivityStore(InMemoryStateAdapter(max_history=3), settings, clock=clock)

        for n in range(6):
            store.start_activity(f"task {n}")
            clock.advance(minutes=1)

        assert len(store.history) == 3
        # task 5 is current; the oldest archived entries were dropped.
        assert [a.text for a in store.history] == ["task 4", "task 3", "task 2"]

    def test_loaded_history_is_trimmed(self, clock):
        adapter = InMemoryStateAdapter()
        closed = [
            Activity.begin(f"old {n}", clock.now).closed(clock.now) for n in range(5)
        ]
        adapter.save(None, closed)

        store = ActivityStore(adapter, TrackerSettings(max_history_size=2), clock=clock)

        assert [a.text for a in store.history] == ["old 0", "old 1"]


class TestRecentActivities:
    def _record(self, store, clock, *labels):
        for label in labels:
            store.start_activity(label)
            clock.advance(minutes=1)
        store.clear_current()

    def test_deduplicates_by_text_keeping_most_recent(self, store, clock):
        self._record(store, clock, "email", "coding", "email", "lunch", "coding")

        recent = store.recent_activities(10)

        assert [a.text for a in recent] == ["coding", "lunch", "email"]
        assert recent[0].id == store.history[0].id

    def test_respects_limit(self, store, clock):
        self._record(store, clock, "a", "b", "c", "d", "e", "f")

        assert [a.text for a in store.recent_activities(2)] == ["f", "e"]
        assert store.recent_activities(0) == []
        assert len(store.recent_activities()) == store.settings.recent_limit

    def test_excludes_current_activity(self, store, clock):
        store.start_activity("only current")

        assert store.recent_activities(5) == []

    def test_is_read_only(self, store, clock, memory_adapter):
        self._record(store, clock, "a", "b")
        saves = memory_adapter.save_count

        store.recent_activities(5)

        assert memory_adapter.save_count == saves


class TestClearHistory:
    def test_keeps_current_activity(self, store, clock, memory_adapter):
        store.start_activity("a")
        store.start_activity("b")

        store.clear_history()

        assert store.history == ()
        assert store.current_activity.text == "b"
        assert memory_adapter.load().history == ()
        assert memory_adapter.load().current.text == "b"

    def test_notifies_observers(self, store):
        calls = []
        store.subscribe(lambda: calls.append(1))

        store.clear_history()

        assert calls == [1]


class TestSearchHistory:
    def test_case_insensitive_substring(self, store, clock):
        for label in ("Reviewing PR #42", "writing spec", "review notes"):
            store.start_activity(label)
            clock.advance(minutes=1)
        store.clear_current()

        assert [a.text for a in store.search_history("REVIEW")] == [
            "review notes",
            "Reviewing PR #42",
        ]
        assert len(store.search_history("  ")) == 3


class TestNotifications:
    def test_notification_follows_persistence(self, store, memory_adapter):
        """Observers see the state that has already been saved."""
        seen = []
        store.subscribe(lambda: seen.append(memory_adapter.load().current.text))

        store.start_activity("persisted first")

        assert seen == ["persisted first"]

    def test_unsubscribed_observer_is_not_called(self, store):
        calls = []
        subscription = store.subscribe(lambda: calls.append(1))
        subscription.cancel()

        store.start_activity("x")

        assert calls == []

    def test_history_window_request(self, store):
        calls = []
        store.subscribe(lambda: calls.append("history"), SHOW_HISTORY)
        store.subscribe(lambda: calls.append("changed"), ACTIVITY_CHANGED)

        store.request_history_window()

        assert calls == ["history"]


class TestPersistenceFailure:
    def test_store_keeps_working_in_memory(self, clock):
        adapter = FailingAdapter()
        store = ActivityStore(adapter, clock=clock)
        calls = []
        store.subscribe(lambda: calls.append(1))

        store.start_activity("a")
        store.start_activity("b")

        assert store.current_activity.text == "b"
        assert [a.text for a in store.history] == ["a"]
        assert calls == [1, 1]
        assert adapter.save_count == 2


class TestRestore:
    def test_closed_current_is_archived(self, clock):
        adapter = InMemoryStateAdapter()
        stale = Activity.begin("stale", clock.now).closed(clock.now)
        adapter._state = StoredState(current=stale, history=())

        store = ActivityStore(adapter, clock=clock)

        assert store.current_activity is None
        assert store.history == (stale,)

    def test_open_history_entries_are_dropped(self, clock):
        adapter = InMemoryStateAdapter()
        open_entry = Activity.begin("open", clock.now)
        closed_entry = Activity.begin("closed", clock.now).closed(clock.now)
        adapter._state = StoredState(history=(open_entry, closed_entry))

        store = ActivityStore(adapter, clock=clock)

        assert store.history == (closed_entry,)
