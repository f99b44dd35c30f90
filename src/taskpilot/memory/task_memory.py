# src/taskpilot/memory/task_memory.py

from __future__ import annotations

import logging

from ..core.ports import Embedder, VectorIndex
from ..llm.result import Ok
from ..tasks.task_models import Task
from .vector_index import VectorMatch

logger = logging.getLogger(__name__)


class TaskMemory:
    """
    Best-effort semantic enrichment of tasks.

    remember() (re)indexes a task after create/update, forget() drops it after
    delete. Both return whether the index was changed; a False never affects
    the task operation that already committed.
    """

    def __init__(self, embedder: Embedder, index: VectorIndex) -> None:
        self._embedder = embedder
        self._index = index

    def remember(self, task: Task) -> bool:
        text = f"{task.title} {task.description}".strip()
        embedded = self._embedder.embed(text)
        if not isinstance(embedded, Ok):
            logger.debug("Task %s not indexed: embedding unavailable (%s)", task.id, embedded.reason)
            return False

        stored = self._index.upsert(
            str(task.id),
            embedded.value,
            {
                "task_id": task.id,
                "title": task.title,
                "priority": task.priority.value,
                "status": task.status.value,
            },
        )
        if not isinstance(stored, Ok):
            logger.debug("Task %s not indexed: index unavailable (%s)", task.id, stored.reason)
            return False
        return True

    def forget(self, task_id: int) -> bool:
        removed = self._index.delete(str(task_id))
        if not isinstance(removed, Ok):
            logger.debug("Task %s not removed from index (%s)", task_id, removed.reason)
            return False
        return True

    def search(self, text: str, *, top_k: int = 5) -> list[VectorMatch]:
        """Tasks most similar to `text`; empty when a capability is unavailable."""
        embedded = self._embedder.embed(text)
        if not isinstance(embedded, Ok):
            logger.debug("Task search skipped: embedding unavailable (%s)", embedded.reason)
            return []
        found = self._index.query(embedded.value, top_k=top_k)
        if not isinstance(found, Ok):
            logger.debug("Task search skipped: index unavailable (%s)", found.reason)
            return []
        return found.value
