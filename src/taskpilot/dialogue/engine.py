# src/taskpilot/dialogue/engine.py

"""
Dialogue engine: message -> intent -> task operation -> response text.

Key invariants:
- every handle() call appends exactly one ConversationEntry (after the
  response is rendered),
- conversational problems (missing task id/title, unknown status word,
  invalid field values) become clarifying text, never exceptions,
- StorageFailure is the only error that propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..core.ports import TextGenerator
from ..errors import ValidationError
from ..intent.models import Intent, IntentType
from ..intent.resolver import IntentResolver
from ..llm.result import Ok
from ..memory.task_memory import TaskMemory
from ..tasks.conversation_log import ConversationLog
from ..tasks.scheduling import order_tasks
from ..tasks.task_models import Task, TaskFilter, TaskPriority, TaskStatus, parse_due_date
from ..tasks.task_store import TaskStore
from . import render

logger = logging.getLogger(__name__)

SUGGESTIONS_MAX_TOKENS = 200
SUGGESTIONS_TEMPERATURE = 0.7

SUGGESTIONS_PROMPT_TEMPLATE = (
    'Based on the user\'s task management context "{context}", provide 3-5 helpful '
    "suggestions for improving productivity and task management. Focus on actionable advice."
)

Handler = Callable[[dict[str, Any]], str]


def _task_id(params: dict[str, Any]) -> int | None:
    raw = params.get("task_id")
    if isinstance(raw, bool):
        return None
    try:
        n = int(raw)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


class DialogueEngine:
    def __init__(
        self,
        store: TaskStore,
        log: ConversationLog,
        resolver: IntentResolver,
        generator: TextGenerator,
        *,
        task_memory: TaskMemory | None = None,
        list_default_limit: int = 10,
    ) -> None:
        self._store = store
        self._log = log
        self._resolver = resolver
        self._generator = generator
        self._task_memory = task_memory
        self._list_default_limit = list_default_limit

        self._handlers: dict[IntentType, Handler] = {
            IntentType.CREATE_TASK: self._create_task,
            IntentType.LIST_TASKS: self._list_tasks,
            IntentType.UPDATE_TASK: self._update_task,
            IntentType.COMPLETE_TASK: self._complete_task,
            IntentType.DELETE_TASK: self._delete_task,
            IntentType.SCHEDULE_TASKS: self._schedule_tasks,
            IntentType.ANALYZE_PRODUCTIVITY: self._analyze_productivity,
            IntentType.GET_SUGGESTIONS: self._get_suggestions,
            IntentType.GENERAL: self._general,
        }

    def respond(self, intent: Intent) -> str:
        """Run one intent against the store and render the reply (no logging)."""
        handler = self._handlers.get(intent.type, self._general)
        try:
            return handler(dict(intent.parameters))
        except ValidationError as e:
            logger.info("Intent %s rejected: %s", intent.type.value, e)
            return f"I couldn't do that ({e.field}): {e.message}."

    def handle(self, message: str, context: dict[str, Any] | None = None) -> str:
        intent = self._resolver.resolve(message)
        logger.info("Intent resolved type=%s", intent.type.value)
        response = self.respond(intent)
        self._log.append(message, response, context)
        return response

    # ---- task memory (best-effort) ----

    def _remember(self, task: Task) -> None:
        if self._task_memory is not None:
            self._task_memory.remember(task)

    def _forget(self, task_id: int) -> None:
        if self._task_memory is not None:
            self._task_memory.forget(task_id)

    # ---- handlers ----

    def _create_task(self, params: dict[str, Any]) -> str:
        title = str(params.get("title") or "").strip()
        if not title:
            return "Please provide a task title."

        note = None
        due_raw = params.get("due_date")
        try:
            due = parse_due_date(due_raw)
        except ValueError:
            due = None
            note = f"(I couldn't understand the due date {due_raw!r}, so the task is unscheduled.)"

        task = self._store.create(
            title,
            description=params.get("description") or "",
            priority=params.get("priority"),
            due_date=due,
            tags=params.get("tags") or "",
        )
        self._remember(task)
        return render.render_created(task, note)

    def _list_tasks(self, params: dict[str, Any]) -> str:
        status = None
        priority = None

        raw_status = params.get("status")
        if raw_status:
            try:
                status = TaskStatus(str(raw_status).strip().lower())
            except ValueError:
                choices = ", ".join(s.value for s in TaskStatus)
                return f"I don't know the status {raw_status!r}. Try one of: {choices}."

        raw_priority = params.get("priority")
        if raw_priority:
            try:
                priority = TaskPriority(str(raw_priority).strip().lower())
            except ValueError:
                choices = ", ".join(p.value for p in TaskPriority)
                return f"I don't know the priority {raw_priority!r}. Try one of: {choices}."

        limit = params.get("limit")
        if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
            limit = self._list_default_limit

        tasks = self._store.list(TaskFilter(status=status, priority=priority), limit=limit)
        return render.render_task_list(tasks)

    def _update_task(self, params: dict[str, Any]) -> str:
        task_id = _task_id(params)
        if task_id is None:
            return "I need a task ID to update. For example: \"Update task 2 to high priority\"."
        fields = {k: v for k, v in params.items() if k != "task_id"}
        task = self._store.update(task_id, fields)
        if task is None:
            return f"Task #{task_id} not found."
        self._remember(task)
        return f"✅ Task #{task_id} has been updated successfully!"

    def _complete_task(self, params: dict[str, Any]) -> str:
        task_id = _task_id(params)
        if task_id is None:
            return "I need a task ID to mark as complete. For example: \"Mark task 1 as completed\"."
        task = self._store.update(task_id, {"status": TaskStatus.COMPLETED})
        if task is None:
            return f"Task #{task_id} not found."
        self._remember(task)
        return f"🎉 Great job! Task #{task_id} has been marked as completed!"

    def _delete_task(self, params: dict[str, Any]) -> str:
        task_id = _task_id(params)
        if task_id is None:
            return "I need a task ID to delete. For example: \"Delete task 3\"."
        if not self._store.delete(task_id):
            return f"Task #{task_id} not found."
        self._forget(task_id)
        return f"🗑️ Task #{task_id} has been deleted successfully."

    def _schedule_tasks(self, params: dict[str, Any]) -> str:
        pending = self._store.list(TaskFilter(status=TaskStatus.PENDING))
        return render.render_schedule(order_tasks(pending))

    def _analyze_productivity(self, params: dict[str, Any]) -> str:
        return render.render_productivity(render.productivity_stats(self._store.all()))

    def _get_suggestions(self, params: dict[str, Any]) -> str:
        context = str(params.get("context") or "general")
        result = self._generator.generate(
            SUGGESTIONS_PROMPT_TEMPLATE.format(context=context),
            max_tokens=SUGGESTIONS_MAX_TOKENS,
            temperature=SUGGESTIONS_TEMPERATURE,
        )
        if isinstance(result, Ok):
            return render.render_suggestions(result.value)
        logger.info("Suggestions unavailable (%s), using static tips", result.reason)
        return render.render_static_tips()

    def _general(self, params: dict[str, Any]) -> str:
        return render.HELP_TEXT
