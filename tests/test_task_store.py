# tests/test_task_store.py

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from taskpilot.errors import StorageFailure, ValidationError
from taskpilot.storage.kv_store import KeyValueStore
from taskpilot.tasks.task_models import TaskFilter, TaskPriority, TaskStatus
from taskpilot.tasks.task_store import NEXT_ID_KEY, TASKS_KEY, TaskStore

from .fakes import FakeClock, MemoryKV


def test_ids_strictly_increase_even_after_delete(store: TaskStore) -> None:
    a = store.create("first")
    b = store.create("second")
    assert (a.id, b.id) == (1, 2)

    assert store.delete(b.id) is True
    c = store.create("third")

    assert c.id == 3
    assert store.next_id == 4


def test_create_defaults_and_parsing(store: TaskStore, clock: FakeClock) -> None:
    t = store.create("  buy milk  ", due_date="2025-01-20", priority="HIGH", tags="home")

    assert t.title == "buy milk"
    assert t.priority == TaskPriority.HIGH
    assert t.status == TaskStatus.PENDING
    assert t.due_date == datetime(2025, 1, 20, tzinfo=UTC)
    assert t.created_at == t.updated_at == clock.now
    assert t.tags == "home"


@pytest.mark.parametrize("title", [None, "", "   "])
def test_create_without_title_raises(store: TaskStore, title) -> None:
    with pytest.raises(ValidationError) as exc:
        store.create(title)
    assert exc.value.field == "title"
    assert store.count() == 0
    assert store.next_id == 1


def test_create_with_invalid_enum_raises(store: TaskStore) -> None:
    with pytest.raises(ValidationError) as exc:
        store.create("x", priority="urgent")
    assert exc.value.field == "priority"

    with pytest.raises(ValidationError) as exc:
        store.create("x", status="someday")
    assert exc.value.field == "status"


def test_list_is_newest_first_and_filters_keep_relative_order(store: TaskStore) -> None:
    a = store.create("a", priority="high")
    b = store.create("b")
    c = store.create("c", priority="high")
    store.update(a.id, {"status": "completed"})
    store.update(c.id, {"status": "completed"})

    assert [t.id for t in store.list()] == [c.id, b.id, a.id]

    done = store.list(TaskFilter(status=TaskStatus.COMPLETED))
    assert [t.id for t in done] == [c.id, a.id]
    assert all(t.status == TaskStatus.COMPLETED for t in done)

    high_pending = store.list(TaskFilter(status=TaskStatus.PENDING, priority=TaskPriority.HIGH))
    assert high_pending == []

    assert [t.id for t in store.list(limit=2)] == [c.id, b.id]


def test_update_priority_changes_only_priority_and_updated_at(store: TaskStore, clock: FakeClock) -> None:
    original = store.create("report", description="quarterly", due_date="2025-02-01", tags="work")
    before = original.to_dict()

    clock.advance(minutes=5)
    updated = store.update(original.id, {"priority": "high"})
    assert updated is not None
    after = updated.to_dict()

    changed = {k for k in before if before[k] != after[k]}
    assert changed == {"priority", "updated_at"}
    assert updated.updated_at == clock.now


def test_noop_update_still_rewrites_updated_at(store: TaskStore, clock: FakeClock) -> None:
    t = store.create("x")
    clock.advance(seconds=30)

    updated = store.update(t.id, {})
    assert updated is not None
    assert updated.updated_at == clock.now
    assert updated.updated_at > t.updated_at


def test_updated_at_never_precedes_created_at(store: TaskStore, clock: FakeClock) -> None:
    t = store.create("x")
    clock.advance(hours=-2)

    updated = store.update(t.id, {"status": "in_progress"})
    assert updated is not None
    assert updated.updated_at == t.created_at


def test_update_ignores_unknown_fields_and_rejects_bad_values(store: TaskStore) -> None:
    t = store.create("x")

    updated = store.update(t.id, {"id": 99, "created_at": "1999-01-01", "colour": "red", "tags": "a,b"})
    assert updated is not None
    assert updated.id == t.id
    assert updated.created_at == t.created_at
    assert updated.tags == "a,b"

    with pytest.raises(ValidationError):
        store.update(t.id, {"status": "finished"})
    assert store.get(t.id).status == TaskStatus.PENDING


def test_update_missing_returns_none(store: TaskStore) -> None:
    assert store.update(42, {"priority": "low"}) is None


def test_delete_missing_leaves_store_unchanged(storage: KeyValueStore, store: TaskStore) -> None:
    store.create("a")
    store.create("b")
    tasks_before = storage.get(TASKS_KEY)
    next_before = storage.get(NEXT_ID_KEY)

    assert store.delete(99) is False

    assert store.count() == 2
    assert store.next_id == 3
    assert storage.get(TASKS_KEY) == tasks_before
    assert storage.get(NEXT_ID_KEY) == next_before


def test_state_reloads_from_storage(storage: KeyValueStore, store: TaskStore, clock: FakeClock) -> None:
    store.create("a", due_date="2025-03-01T10:30:00Z")
    store.create("b")
    store.delete(2)

    reloaded = TaskStore(storage, clock=clock)
    assert [t.title for t in reloaded.list()] == ["a"]
    assert reloaded.get(1).due_date == datetime(2025, 3, 1, 10, 30, tzinfo=UTC)
    assert reloaded.next_id == 3


def test_counter_never_below_highest_stored_id() -> None:
    kv = MemoryKV()
    kv.data[TASKS_KEY] = [{"id": 7, "title": "legacy", "created_at": "2025-01-01T00:00:00+00:00"}]
    kv.data[NEXT_ID_KEY] = 2

    store = TaskStore(kv, clock=FakeClock())
    assert store.create("new").id == 8


def test_failed_commit_leaves_store_unchanged() -> None:
    kv = MemoryKV()
    store = TaskStore(kv, clock=FakeClock())
    t = store.create("keep me")

    kv.fail_writes = True
    with pytest.raises(StorageFailure):
        store.create("lost")
    with pytest.raises(StorageFailure):
        store.update(t.id, {"priority": "high"})
    with pytest.raises(StorageFailure):
        store.delete(t.id)

    assert store.count() == 1
    assert store.next_id == 2
    assert store.get(t.id).priority == TaskPriority.MEDIUM
