# src/taskpilot/tasks/workflows.py

"""
Periodic workflows over the full task set.

Each argument-less workflow renders a report, appends exactly one synthesized
conversation entry (even when there is nothing to report) and returns a
WorkflowResult. Transport (cron, scheduler loop, CLI) is the caller's concern.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..core.ports import TextGenerator
from ..dialogue.render import format_due, priority_emoji, productivity_stats
from ..llm.result import Ok
from .conversation_log import ConversationLog
from .scheduling import DueBucket, due_bucket, is_stale, order_tasks
from .task_models import Task, TaskPriority, TaskStatus, utc_now
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DAILY_REMINDER = "daily_reminder"
PRODUCTIVITY_REPORT = "productivity_report"
AUTO_SCHEDULE = "auto_schedule"
PRIORITY_REVIEW = "priority_review"
TASK_REMINDER = "task_reminder"

WORKFLOW_NAMES = (DAILY_REMINDER, PRODUCTIVITY_REPORT, AUTO_SCHEDULE, PRIORITY_REVIEW)

DAILY_REMINDER_LIMIT = 10
REPORT_WINDOW_DAYS = 7
REVIEW_MIN_AGE_DAYS = 3
INSIGHTS_TASK_LIMIT = 10

INSIGHTS_PROMPT_TEMPLATE = """Analyze the following task data and provide 2-3 actionable productivity insights:

Tasks: {tasks}

Provide insights about:
1. Task completion patterns
2. Priority distribution effectiveness
3. Time management suggestions

Keep it concise and actionable."""

STATIC_INSIGHTS = (
    "• Focus on completing high-priority tasks first\n"
    "• Consider time-blocking for better focus\n"
    "• Regular breaks improve productivity"
)

_TRIGGER_LABELS = {
    DAILY_REMINDER: "Daily reminder",
    PRODUCTIVITY_REPORT: "Weekly report",
    AUTO_SCHEDULE: "Auto-scheduling",
    PRIORITY_REVIEW: "Priority review",
    TASK_REMINDER: "Task reminder",
}


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    workflow: str
    status: str  # "completed" | "not_found"
    entry_id: int | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow,
            "status": self.status,
            "entry_id": self.entry_id,
            "message": self.message,
        }


class WorkflowRunner:
    def __init__(
        self,
        store: TaskStore,
        log: ConversationLog,
        generator: TextGenerator,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._log = log
        self._generator = generator
        self._clock = clock

        self._builders: dict[str, Callable[[datetime], str]] = {
            DAILY_REMINDER: self._daily_reminder,
            PRODUCTIVITY_REPORT: self._productivity_report,
            AUTO_SCHEDULE: self._auto_schedule,
            PRIORITY_REVIEW: self._priority_review,
        }

    def _record(self, name: str, text: str, now: datetime, **extra: Any) -> WorkflowResult:
        context = {"type": name, "timestamp": now.isoformat(), **extra}
        entry = self._log.append(_TRIGGER_LABELS[name], text, context)
        logger.info("Workflow %s completed entry_id=%s", name, entry.id)
        return WorkflowResult(workflow=name, status="completed", entry_id=entry.id, message=text)

    def run(self, name: str) -> WorkflowResult:
        build = self._builders.get(name)
        if build is None:
            raise ValueError(f"Unknown workflow: {name!r}. Known: {', '.join(WORKFLOW_NAMES)}")
        logger.info("Starting workflow %s", name)
        now = self._clock()
        return self._record(name, build(now), now)

    def remind_task(self, task_id: int) -> WorkflowResult:
        task = self._store.get(task_id)
        if task is None:
            logger.info("Task reminder skipped: task %s not found", task_id)
            return WorkflowResult(
                workflow=TASK_REMINDER, status="not_found", entry_id=None, message="Task not found"
            )

        lines = ["⏰ **Task Reminder**", "", f"**{task.title}**"]
        if task.description:
            lines.append(task.description)
        lines.append(f"Priority: {task.priority.value}")
        lines.append(f"Due: {format_due(task.due_date) or 'unscheduled'}")
        lines.extend(["", "Don't forget to work on this task!"])
        return self._record(TASK_REMINDER, "\n".join(lines), self._clock(), task_id=task.id)

    # ---- builders ----

    def _daily_reminder(self, now: datetime) -> str:
        today = now.date()
        candidates = [
            t
            for t in self._store.all()
            if t.status == TaskStatus.PENDING or (t.due_date is not None and t.due_date.date() == today)
        ]
        tasks = order_tasks(candidates)[:DAILY_REMINDER_LIMIT]
        if not tasks:
            return "🌅 **Good morning!** You have no tasks for today. Enjoy your day!"

        parts = ["🌅 **Good morning! Here's your daily task overview:**", ""]
        for priority, heading in (
            (TaskPriority.HIGH, "🔴 **High Priority Tasks:**"),
            (TaskPriority.MEDIUM, "🟡 **Medium Priority Tasks:**"),
            (TaskPriority.LOW, "🟢 **Low Priority Tasks:**"),
        ):
            group = [t for t in tasks if t.priority == priority]
            if not group:
                continue
            parts.append(heading)
            parts.extend(f"• {t.title}" for t in group)
            parts.append("")
        parts.append("💡 **Tip:** Focus on high-priority tasks first, especially those with deadlines today!")
        return "\n".join(parts)

    def _insights(self, tasks: list[Task]) -> str:
        payload = json.dumps([t.to_dict() for t in tasks[:INSIGHTS_TASK_LIMIT]], ensure_ascii=False)
        result = self._generator.generate(
            INSIGHTS_PROMPT_TEMPLATE.format(tasks=payload),
            max_tokens=200,
            temperature=0.7,
        )
        if isinstance(result, Ok):
            return result.value
        logger.info("Productivity insights unavailable (%s), using static insights", result.reason)
        return STATIC_INSIGHTS

    def _productivity_report(self, now: datetime) -> str:
        cutoff = now - timedelta(days=REPORT_WINDOW_DAYS)
        tasks = [t for t in self._store.all() if t.created_at >= cutoff or t.updated_at >= cutoff]
        stats = productivity_stats(tasks)
        rate = stats.completion_rate

        def completed_with(priority: TaskPriority) -> int:
            return sum(1 for t in tasks if t.priority == priority and t.status == TaskStatus.COMPLETED)

        if rate >= 80:
            tier = "🎉 Excellent!"
            recommendations = [
                "• Outstanding performance! Keep up the great work!",
                "• Consider taking on more challenging tasks",
            ]
        elif rate >= 60:
            tier = "👍 Good!"
            recommendations = [
                "• Great progress! Consider optimizing your workflow",
                "• Try time-blocking techniques",
            ]
        else:
            tier = "💪 Keep improving!"
            recommendations = [
                "• Try breaking down large tasks into smaller ones",
                "• Set more realistic deadlines",
                "• Focus on one task at a time",
            ]

        parts = [
            "📊 **Weekly Productivity Report**",
            "",
            "📈 **Overall Performance**",
            f"• Total Tasks: {stats.total}",
            f"• Completed: {stats.completed} ({rate}%)",
            f"• Completion Rate: {tier}",
            "",
            "⚡ **Priority Breakdown**",
            f"• High Priority Completed: {completed_with(TaskPriority.HIGH)}",
            f"• Medium Priority Completed: {completed_with(TaskPriority.MEDIUM)}",
            f"• Low Priority Completed: {completed_with(TaskPriority.LOW)}",
            "",
            "🧠 **AI Insights**",
            self._insights(tasks),
            "",
            "🎯 **Recommendations**",
            *recommendations,
        ]
        return "\n".join(parts)

    def _auto_schedule(self, now: datetime) -> str:
        candidates = [
            t
            for t in self._store.all()
            if t.status == TaskStatus.PENDING and (t.due_date is None or t.due_date > now)
        ]
        if not candidates:
            return "🤖 **Auto-Scheduling Suggestions**\n\nNothing to schedule: no pending tasks ahead of you."

        parts = [
            "🤖 **Auto-Scheduling Suggestions**",
            "",
            "I've analyzed your pending tasks and here are my recommendations:",
            "",
        ]
        for i, task in enumerate(order_tasks(candidates), start=1):
            parts.append(f"{i}. {priority_emoji(task.priority)} **{task.title}**")
            if task.description:
                parts.append(f"   📄 {task.description}")
            parts.append(f"   ⚡ Priority: {task.priority.value}")
            if task.priority == TaskPriority.HIGH:
                parts.append("   💡 **Recommendation:** Schedule for today or tomorrow")
            elif task.priority == TaskPriority.MEDIUM:
                parts.append("   💡 **Recommendation:** Schedule within 3 days")
            else:
                parts.append("   💡 **Recommendation:** Schedule when you have free time")
            parts.append("")

        parts.extend(
            [
                "🎯 **Scheduling Tips:**",
                "• Block 2-3 hours for high-priority tasks",
                "• Use time-blocking techniques",
                "• Leave buffer time between tasks",
                "• Schedule breaks every 90 minutes",
            ]
        )
        return "\n".join(parts)

    def _priority_review(self, now: datetime) -> str:
        candidates = [
            t
            for t in self._store.all()
            if t.status == TaskStatus.PENDING and is_stale(t, now, older_than_days=REVIEW_MIN_AGE_DAYS)
        ]
        if not candidates:
            return "🔍 **Priority Review Suggestions**\n\nAll pending tasks are fresh; no priority changes needed."

        candidates.sort(key=lambda t: (t.priority.rank, t.created_at))

        parts = [
            "🔍 **Priority Review Suggestions**",
            "",
            "I've identified some tasks that might need priority adjustments:",
            "",
        ]
        for i, task in enumerate(candidates, start=1):
            parts.append(f"{i}. {priority_emoji(task.priority)} **{task.title}**")
            parts.append(f"   📅 Created: {task.created_at.strftime('%Y-%m-%d')}")
            parts.append(f"   ⚡ Current Priority: {task.priority.value}")
            if task.due_date is None:
                parts.append("   💡 **Suggestion:** Set a due date for better planning")
            else:
                bucket = due_bucket(task, now)
                if bucket == DueBucket.OVERDUE:
                    parts.append("   ⚠️ **OVERDUE** - Consider increasing priority")
                elif bucket == DueBucket.DUE_TOMORROW:
                    parts.append("   🔥 Due tomorrow - Consider high priority")
                elif bucket == DueBucket.DUE_SOON:
                    parts.append("   ⏰ Due soon - Consider medium priority")
            parts.append("")

        parts.extend(
            [
                "🎯 **Priority Guidelines:**",
                "• High: Urgent and important, needs immediate attention",
                "• Medium: Important but not urgent, can be scheduled",
                "• Low: Nice to have, can be done when time permits",
            ]
        )
        return "\n".join(parts)
