# src/taskpilot/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.ports import KeyValueRepo
from ..errors import ValidationError
from .task_models import Task, TaskFilter, TaskPriority, TaskStatus, parse_due_date, utc_now

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
NEXT_ID_KEY = "next_task_id"

# Fields a caller may change through update(); everything else is ignored.
UPDATABLE_FIELDS = frozenset(
    {"title", "description", "priority", "status", "due_date", "tags", "metadata"}
)


def _clean_title(raw: Any) -> str:
    title = str(raw).strip() if raw is not None else ""
    if not title:
        raise ValidationError("title", "title is required")
    return title


def coerce_priority(raw: Any) -> TaskPriority:
    if isinstance(raw, TaskPriority):
        return raw
    try:
        return TaskPriority(str(raw).strip().lower())
    except ValueError:
        raise ValidationError(
            "priority", f"must be one of {[p.value for p in TaskPriority]}, got {raw!r}"
        ) from None


def coerce_status(raw: Any) -> TaskStatus:
    if isinstance(raw, TaskStatus):
        return raw
    try:
        return TaskStatus(str(raw).strip().lower())
    except ValueError:
        raise ValidationError(
            "status", f"must be one of {[s.value for s in TaskStatus]}, got {raw!r}"
        ) from None


def _coerce_due_date(raw: Any) -> datetime | None:
    try:
        return parse_due_date(raw)
    except ValueError:
        raise ValidationError("due_date", f"not a valid date/time: {raw!r}") from None


class TaskStore:
    """
    Ordered task collection for one agent, persisted in a key-value store.

    Layout in storage:
    - "tasks": list of task dicts, most recent first
    - "next_task_id": monotonic id counter (never derived from len(tasks))

    Every mutation builds the new collection/counter first, commits both keys
    in one put_many(), and only then swaps the in-memory copy. A failed commit
    raises StorageFailure and leaves the store unchanged.

    Not thread-safe by itself: callers (TaskAgent) serialize access.
    """

    def __init__(self, storage: KeyValueRepo, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._storage = storage
        self._clock = clock

        raw_tasks = storage.get(TASKS_KEY, []) or []
        self._tasks: list[Task] = [Task.from_dict(t) for t in raw_tasks if isinstance(t, dict)]

        stored_next = storage.get(NEXT_ID_KEY, 1)
        highest = max((t.id for t in self._tasks), default=0)
        # Counter must never go below an id already handed out.
        self._next_id = max(int(stored_next or 1), highest + 1)

        logger.info("TaskStore ready tasks=%d next_id=%d", len(self._tasks), self._next_id)

    # ---- low-level helpers ----

    def _commit(self, tasks: list[Task], next_id: int) -> None:
        self._storage.put_many(
            {
                TASKS_KEY: [t.to_dict() for t in tasks],
                NEXT_ID_KEY: next_id,
            }
        )
        self._tasks = tasks
        self._next_id = next_id

    def _index_of(self, task_id: int) -> int | None:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    # ---- public API ----

    @property
    def next_id(self) -> int:
        return self._next_id

    def count(self) -> int:
        return len(self._tasks)

    def all(self) -> list[Task]:
        return list(self._tasks)

    def create(
        self,
        title: str | None,
        description: str | None = "",
        priority: TaskPriority | str | None = None,
        due_date: Any = None,
        tags: str | None = "",
        metadata: Any = None,
        status: TaskStatus | str | None = None,
    ) -> Task:
        clean_title = _clean_title(title)
        prio = coerce_priority(priority) if priority else TaskPriority.MEDIUM
        st = coerce_status(status) if status else TaskStatus.PENDING
        due = _coerce_due_date(due_date)

        now = self._clock()
        task = Task(
            id=self._next_id,
            title=clean_title,
            description=str(description or ""),
            priority=prio,
            status=st,
            due_date=due,
            tags=str(tags or ""),
            created_at=now,
            updated_at=now,
            metadata=metadata,
        )

        self._commit([task, *self._tasks], self._next_id + 1)
        logger.debug("Task created id=%s priority=%s due=%s", task.id, task.priority.value, task.due_date)
        return task

    def get(self, task_id: int) -> Task | None:
        i = self._index_of(int(task_id))
        return self._tasks[i] if i is not None else None

    def list(self, task_filter: TaskFilter | None = None, limit: int | None = None) -> list[Task]:
        f = task_filter or TaskFilter()
        out = [t for t in self._tasks if f.matches(t)]
        if limit is not None:
            out = out[: max(0, int(limit))]
        return out

    def update(self, task_id: int, fields: Mapping[str, Any]) -> Task | None:
        """
        Shallow-merge updatable fields into an existing task.

        Unknown fields are ignored. updated_at is rewritten on every call,
        including no-op updates.
        """
        i = self._index_of(int(task_id))
        if i is None:
            return None

        ignored = sorted(k for k in fields if k not in UPDATABLE_FIELDS)
        if ignored:
            logger.debug("Task update id=%s ignoring unknown fields %s", task_id, ignored)

        changes: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "title":
                changes["title"] = _clean_title(value)
            elif key == "priority":
                changes["priority"] = coerce_priority(value)
            elif key == "status":
                changes["status"] = coerce_status(value)
            elif key == "due_date":
                changes["due_date"] = _coerce_due_date(value)
            elif key in ("description", "tags"):
                changes[key] = str(value or "")
            elif key == "metadata":
                changes["metadata"] = value

        current = self._tasks[i]
        now = self._clock()
        # updated_at must not go behind created_at even with a skewed clock.
        updated = replace(current, **changes, updated_at=max(now, current.created_at))

        tasks = list(self._tasks)
        tasks[i] = updated
        self._commit(tasks, self._next_id)
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
        return updated

    def delete(self, task_id: int) -> bool:
        i = self._index_of(int(task_id))
        if i is None:
            return False
        tasks = list(self._tasks)
        del tasks[i]
        self._commit(tasks, self._next_id)
        logger.debug("Task deleted id=%s", task_id)
        return True
