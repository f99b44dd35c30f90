# src/taskpilot/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.state import AppState
from ..errors import NotFound
from ..tasks.task_models import TaskPriority, TaskStatus
from ..tasks.workflows import WORKFLOW_NAMES

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."
        return handler(state, parts[1:])

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(args: list[str]) -> int | None:
    if not args:
        return None
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        return None


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    mode = "ONLINE (LLM)" if state.online else "OFFLINE (rules only)"
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    agent = state.agent
    return (
        "Status:\n"
        f"  Agent: {agent.name}\n"
        f"  Mode: {mode}\n"
        f"  Tasks: {agent.store.count()}\n"
        f"  Conversation entries: {len(agent.log)}\n"
        f"  Models (priority -> fallback): {models}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                 -> all tasks (newest first)
    /tasks pending         -> filter by status
    /tasks high            -> filter by priority
    /tasks pending high    -> both
    """
    statuses = {s.value for s in TaskStatus}
    priorities = {p.value for p in TaskPriority}
    task_filter: dict[str, str] = {}
    for arg in args:
        a = arg.lower()
        if a in statuses:
            task_filter["status"] = a
        elif a in priorities:
            task_filter["priority"] = a
        else:
            return f"Unknown filter: {arg}. Use a status ({', '.join(sorted(statuses))}) or a priority."

    tasks = state.agent.list_tasks(task_filter)
    if not tasks:
        return "No tasks."
    lines = [f"Tasks ({len(tasks)}):"]
    for t in tasks:
        due = f" due {t['due_date'][:10]}" if t.get("due_date") else ""
        lines.append(f"  #{t['id']} [{t['status']}] ({t['priority']}) {t['title']}{due}")
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /task <id>"
    found = state.agent.get_task(task_id)
    if isinstance(found, NotFound):
        return f"Task #{task_id} not found."
    lines = [f"Task #{found['id']}:"]
    for key in ("title", "description", "priority", "status", "due_date", "tags", "created_at", "updated_at"):
        value = found.get(key)
        if value:
            lines.append(f"  {key}: {value}")
    return "\n".join(lines)


def cmd_delete(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /delete <id>"
    result = state.agent.delete_task(task_id)
    if isinstance(result, NotFound):
        return f"Task #{task_id} not found."
    return result["message"]


def cmd_workflow(state: AppState, args: list[str]) -> str:
    if not args or args[0] not in WORKFLOW_NAMES:
        return f"Usage: /workflow <{' | '.join(WORKFLOW_NAMES)}>"
    logger.debug("Workflow %s requested from console", args[0])
    result = state.agent.run_workflow(args[0])
    return result.message


def cmd_remind(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /remind <id>"
    result = state.agent.remind_task(task_id)
    if result.status == "not_found":
        return f"Task #{task_id} not found."
    return result.message


def cmd_history(state: AppState, args: list[str]) -> str:
    limit = _parse_id(args) or 5
    entries = state.agent.history(limit)
    if not entries:
        return "No conversation history yet."
    lines = []
    for e in entries:
        ts = e.created_at.strftime("%Y-%m-%d %H:%M")
        first_line = e.agent_response.splitlines()[0] if e.agent_response else ""
        lines.append(f"  [{e.id}] {ts} > {e.user_message}\n      < {first_line}")
    return "Recent conversation:\n" + "\n".join(lines)


def cmd_similar(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /similar <text>"
    if state.task_memory is None:
        return "Task memory is not configured."
    matches = state.task_memory.search(" ".join(args))
    if not matches:
        return "No similar tasks found (task memory may be offline)."
    lines = ["Similar tasks:"]
    for m in matches:
        lines.append(f"  #{m.metadata.get('task_id', m.item_id)} ({m.score:.2f}) {m.metadata.get('title', '')}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show agent status (mode/tasks/models).")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [status] [priority].", aliases=["ls"])
registry.register("task", cmd_task, help_text="Show one task: /task <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("workflow", cmd_workflow, help_text="Run a workflow now: /workflow <name>.")
registry.register("remind", cmd_remind, help_text="Log a reminder for one task: /remind <id>.")
registry.register("history", cmd_history, help_text="Show recent conversation: /history [n].")
registry.register("similar", cmd_similar, help_text="Find semantically similar tasks: /similar <text>.")
