# src/taskpilot/core/agent.py

"""
TaskAgent: the transport-agnostic boundary of one named task agent.

Wires the task store, conversation log, dialogue engine and workflows over a
single key-value namespace. All public operations run under one re-entrant
lock, so mutations of the store (and log appends) happen one at a time and
the log is ordered by completion.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from ..dialogue.engine import DialogueEngine
from ..errors import NotFound
from ..intent.resolver import IntentResolver
from ..memory.task_memory import TaskMemory
from ..tasks.conversation_log import ConversationLog
from ..tasks.task_models import ConversationEntry, TaskFilter, utc_now
from ..tasks.task_store import TaskStore, coerce_priority, coerce_status
from ..tasks.workflows import WorkflowResult, WorkflowRunner
from .ports import KeyValueRepo, TextGenerator

logger = logging.getLogger(__name__)


def _filter_from(raw: Mapping[str, Any] | TaskFilter | None) -> TaskFilter:
    if raw is None:
        return TaskFilter()
    if isinstance(raw, TaskFilter):
        return raw
    status = raw.get("status")
    priority = raw.get("priority")
    return TaskFilter(
        status=coerce_status(status) if status else None,
        priority=coerce_priority(priority) if priority else None,
    )


class TaskAgent:
    def __init__(
        self,
        storage: KeyValueRepo,
        generator: TextGenerator,
        *,
        task_memory: TaskMemory | None = None,
        clock: Callable[[], datetime] = utc_now,
        list_default_limit: int = 10,
        name: str = "main-agent",
    ) -> None:
        self.name = name
        self._lock = threading.RLock()
        self._clock = clock
        self._task_memory = task_memory

        self.store = TaskStore(storage, clock=clock)
        self.log = ConversationLog(storage, clock=clock)
        self.engine = DialogueEngine(
            self.store,
            self.log,
            IntentResolver(generator),
            generator,
            task_memory=task_memory,
            list_default_limit=list_default_limit,
        )
        self.workflows = WorkflowRunner(self.store, self.log, generator, clock=clock)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def chat(self, message: str, context: dict[str, Any] | None = None) -> dict[str, Any]:
        with self._lock:
            response = self.engine.handle(message, context)
        return {"response": response, "timestamp": self._clock().isoformat()}

    def list_tasks(self, task_filter: Mapping[str, Any] | TaskFilter | None = None) -> list[dict[str, Any]]:
        """Raises ValidationError for a status/priority outside its enumeration."""
        f = _filter_from(task_filter)
        with self._lock:
            return [t.to_dict() for t in self.store.list(f)]

    def get_task(self, task_id: int) -> dict[str, Any] | NotFound:
        with self._lock:
            task = self.store.get(task_id)
        return task.to_dict() if task is not None else NotFound(task_id)

    def create_task(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Raises ValidationError when the title is missing or a field is malformed."""
        with self._lock:
            task = self.store.create(
                fields.get("title"),
                description=fields.get("description") or "",
                priority=fields.get("priority"),
                due_date=fields.get("due_date"),
                tags=fields.get("tags") or "",
                metadata=fields.get("metadata"),
                status=fields.get("status"),
            )
            if self._task_memory is not None:
                self._task_memory.remember(task)
        return {"id": task.id, "message": "Task created successfully"}

    def update_task(self, task_id: int, fields: Mapping[str, Any]) -> dict[str, Any] | NotFound:
        with self._lock:
            task = self.store.update(task_id, fields)
            if task is not None and self._task_memory is not None:
                self._task_memory.remember(task)
        if task is None:
            return NotFound(task_id)
        return {"message": "Task updated successfully"}

    def delete_task(self, task_id: int) -> dict[str, Any] | NotFound:
        with self._lock:
            removed = self.store.delete(task_id)
            if removed and self._task_memory is not None:
                self._task_memory.forget(task_id)
        if not removed:
            return NotFound(task_id)
        return {"message": "Task deleted successfully"}

    def run_workflow(self, name: str) -> WorkflowResult:
        with self._lock:
            return self.workflows.run(name)

    def remind_task(self, task_id: int) -> WorkflowResult:
        with self._lock:
            return self.workflows.remind_task(task_id)

    def history(self, limit: int = 10) -> list[ConversationEntry]:
        with self._lock:
            return self.log.recent(limit)
