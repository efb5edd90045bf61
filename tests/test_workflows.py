"""Tests for the shared workflow layer."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from alltag.config import DATA_DIR, Config
from alltag.core.dates import CalendarDate
from alltag.core.errors import InvalidCalendarDate, MalformedInput, NotFound, ValidationError
from alltag.core.recurrence import Delete, Update
from alltag.core.tasks import TaskClass
from alltag.adapters.json_store import JsonTaskStore
from alltag.workflows import (
    classify_task,
    close_task,
    create_location,
    create_task,
    delete_location,
    get_store,
    list_tasks,
    location_overview,
    show_task,
    start_page,
)

USER = "alice"


@pytest.fixture
def store(tmp_path):
    return JsonTaskStore(tmp_path / "alltag.json")


@pytest.fixture
def now():
    return datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def home(store):
    return create_location(store, USER, "Home")


def add_classified(store, label, location_ids, now, due="2024-01-05", **kwargs):
    task = create_task(store, USER, label)
    kwargs.setdefault("task_class", "mental")
    kwargs.setdefault("initial_priority", 0)
    kwargs.setdefault("final_priority", 3)
    return classify_task(store, USER, task.id, due_at=due, location_ids=location_ids, now=now, **kwargs)


class TestGetStore:
    def test_uses_configured_path(self, tmp_path):
        store = get_store(Config(store_path=str(tmp_path / "tasks.json")))
        assert store.path == tmp_path / "tasks.json"

    def test_expands_user_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        store = get_store(Config(store_path="~/tasks.json"))
        assert store.path == Path(tmp_path) / "tasks.json"

    def test_falls_back_to_default(self):
        assert Config().resolved_store_path() == DATA_DIR / "alltag.json"


class TestClassifyTask:
    def test_classifies_and_links(self, store, home, now):
        task = add_classified(store, "Do taxes", [home.id], now)

        stored = store.get_task(USER, task.id)
        assert stored.classification.starts_at == CalendarDate(2024, 1, 1)
        assert stored.classification.due_at == CalendarDate(2024, 1, 5)
        assert [loc.id for loc in show_task(store, USER, task.id).locations] == [home.id]

    def test_requires_a_location(self, store, now):
        task = create_task(store, USER, "Do taxes")
        with pytest.raises(ValidationError, match="at least one location"):
            classify_task(
                store, USER, task.id, task_class="mental", initial_priority=0,
                final_priority=1, due_at="2024-01-05", location_ids=[], now=now,
            )
        assert store.get_task(USER, task.id).classification is None

    def test_rejects_foreign_location(self, store, now):
        theirs = store.add_location("bob", "Bob's place")
        task = create_task(store, USER, "Do taxes")
        with pytest.raises(ValidationError, match="invalid location ID"):
            classify_task(
                store, USER, task.id, task_class="mental", initial_priority=0,
                final_priority=1, due_at="2024-01-05", location_ids=[theirs.id], now=now,
            )

    def test_propagates_date_errors(self, store, home, now):
        task = create_task(store, USER, "Do taxes")
        with pytest.raises(MalformedInput):
            classify_task(
                store, USER, task.id, task_class="mental", initial_priority=0,
                final_priority=1, due_at="next week", location_ids=[home.id], now=now,
            )
        with pytest.raises(InvalidCalendarDate):
            classify_task(
                store, USER, task.id, task_class="mental", initial_priority=0,
                final_priority=1, due_at="2024-02-30", location_ids=[home.id], now=now,
            )

    def test_reclassification_moves_locations_and_keeps_start(self, store, home, now):
        office = create_location(store, USER, "Office")
        task = add_classified(store, "Do taxes", [home.id], now)

        later = datetime(2024, 1, 3, tzinfo=timezone.utc)
        classify_task(
            store, USER, task.id, task_class="physical", initial_priority=1,
            final_priority=2, due_at="2024-01-20", location_ids=[office.id], now=later,
        )

        details = show_task(store, USER, task.id)
        assert details.task.classification.starts_at == CalendarDate(2024, 1, 1)
        assert details.task.classification.task_class is TaskClass.PHYSICAL
        assert [loc.id for loc in details.locations] == [office.id]


class TestStartPage:
    def test_recommends_most_urgent_per_location(self, store, home, now):
        office = create_location(store, USER, "Office")
        relaxed = add_classified(store, "Read book", [home.id], now, due="2024-02-01")
        urgent = add_classified(store, "Pay bill", [home.id, office.id], now, due="2024-01-02")
        chores = add_classified(store, "Vacuum", [home.id], now, task_class="physical")
        fresh = create_task(store, USER, "Think about garden")

        later = datetime(2024, 1, 1, 18, 0, tzinfo=timezone.utc)
        page = start_page(store, USER, now=later)

        assert page.next_task_id(home.id, TaskClass.MENTAL) == urgent.id
        assert page.next_task_id(office.id, TaskClass.MENTAL) == urgent.id
        assert page.next_task_id(home.id, TaskClass.PHYSICAL) == chores.id
        assert page.next_task_id(office.id, TaskClass.PHYSICAL) is None
        assert page.unclassified_task.id == fresh.id
        assert relaxed.id not in page.recommendations.values()

    def test_no_tasks(self, store, home, now):
        page = start_page(store, USER, now=now)
        assert page.recommendations == {}
        assert page.unclassified_task is None
        assert page.locations == [home]

    def test_other_users_are_invisible(self, store, home, now):
        add_classified(store, "Pay bill", [home.id], now)
        page = start_page(store, "bob", now=now)
        assert page.locations == []
        assert page.recommendations == {}


class TestCloseTask:
    def test_one_shot_task_is_deleted(self, store, home, now):
        task = add_classified(store, "Pay bill", [home.id], now)

        change = close_task(store, USER, task.id, now=now)

        assert change == Delete(task.id)
        with pytest.raises(NotFound):
            store.get_task(USER, task.id)
        assert store.list_task_locations(USER) == []

    def test_recurring_task_respawns(self, store, home, now):
        task = add_classified(store, "Water plants", [home.id], now, recurrence_days=7)

        closed_at = datetime(2024, 1, 3, 20, 0, tzinfo=timezone.utc)
        change = close_task(store, USER, task.id, now=closed_at)

        assert isinstance(change, Update)
        stored = store.get_task(USER, task.id)
        assert stored.classification.starts_at == CalendarDate(2024, 1, 10)
        assert stored.classification.due_at == CalendarDate(2024, 1, 14)
        assert [loc.id for loc in show_task(store, USER, task.id).locations] == [home.id]

    def test_respawned_task_is_not_recommended_until_it_starts(self, store, home, now):
        task = add_classified(store, "Water plants", [home.id], now, recurrence_days=7)
        close_task(store, USER, task.id, now=now)

        assert start_page(store, USER, now=now).recommendations == {}
        in_a_week = datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc)
        assert start_page(store, USER, now=in_a_week).next_task_id(home.id, TaskClass.MENTAL) == task.id

    def test_missing_task(self, store, now):
        with pytest.raises(NotFound):
            close_task(store, USER, 99, now=now)


class TestLocations:
    def test_overview_in_display_order(self, store, home, now):
        soon = add_classified(store, "Due soon", [home.id], now, due="2024-01-02")
        later = add_classified(store, "Due later", [home.id], now, due="2024-03-01")
        elsewhere = add_classified(store, "Elsewhere", [create_location(store, USER, "Office").id], now)

        overview = location_overview(store, USER, home.id, now=datetime(2024, 1, 1, 12, tzinfo=timezone.utc))

        assert [t.id for t in overview.tasks] == [soon.id, later.id]
        assert elsewhere.id not in [t.id for t in overview.tasks]
        assert not overview.is_pending(soon)

    def test_overview_marks_pending_tasks(self, store, home, now):
        task = add_classified(store, "Water plants", [home.id], now, recurrence_days=3)
        close_task(store, USER, task.id, now=now)

        overview = location_overview(store, USER, home.id, now=now)

        assert overview.is_pending(overview.tasks[0])

    def test_delete_refused_while_tasks_attached(self, store, home, now):
        add_classified(store, "Pay bill", [home.id], now)
        with pytest.raises(ValidationError):
            delete_location(store, USER, home.id)
        assert store.list_locations(USER) == [home]

    def test_delete_empty_location(self, store, home):
        delete_location(store, USER, home.id)
        assert store.list_locations(USER) == []

    def test_delete_missing_location(self, store):
        with pytest.raises(NotFound):
            delete_location(store, USER, 5)


class TestListTasks:
    def test_unclassified_last(self, store, home, now):
        fresh = create_task(store, USER, "Unsorted")
        task = add_classified(store, "Pay bill", [home.id], now)
        assert [t.id for t in list_tasks(store, USER, now=now)] == [task.id, fresh.id]
