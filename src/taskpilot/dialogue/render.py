# src/taskpilot/dialogue/render.py

"""User-facing text for dialogue responses (Markdown-ish, emoji markers)."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from ..tasks.task_models import Task, TaskPriority, TaskStatus

STATUS_EMOJI = {
    TaskStatus.PENDING: "⏳",
    TaskStatus.IN_PROGRESS: "🔄",
    TaskStatus.COMPLETED: "✅",
    TaskStatus.CANCELLED: "❌",
}

PRIORITY_EMOJI = {
    TaskPriority.HIGH: "🔴",
    TaskPriority.MEDIUM: "🟡",
    TaskPriority.LOW: "🟢",
}

STATIC_TIPS = (
    "• Break large tasks into smaller chunks\n"
    "• Set realistic deadlines\n"
    "• Prioritize by importance and urgency\n"
    "• Take regular breaks\n"
    "• Review your task list daily"
)

HELP_TEXT = (
    "Hello! I can help you manage tasks. Try:\n\n"
    '• "Create a task to buy milk tomorrow"\n'
    '• "Show my pending tasks"\n'
    '• "Mark task 1 as completed"\n'
    '• "Update task 2 to high priority"\n'
    '• "Delete task 3"\n'
    '• "Schedule my tasks"\n'
    '• "Analyze my productivity"\n'
    '• "Suggest what I should work on"'
)


def format_due(dt: datetime | None) -> str:
    if dt is None:
        return ""
    if (dt.hour, dt.minute, dt.second) == (0, 0, 0):
        return dt.strftime("%Y-%m-%d")
    return dt.strftime("%Y-%m-%d %H:%M UTC")


def status_emoji(status: TaskStatus) -> str:
    return STATUS_EMOJI.get(status, "📝")


def priority_emoji(priority: TaskPriority) -> str:
    return PRIORITY_EMOJI.get(priority, "⚪")


def render_created(task: Task, note: str | None = None) -> str:
    lines = [
        "✅ Task created successfully!",
        "",
        f"**Task #{task.id}**",
        f"📝 Title: {task.title}",
    ]
    if task.description:
        lines.append(f"📄 Description: {task.description}")
    lines.append(f"⚡ Priority: {task.priority.value}")
    if task.due_date:
        lines.append(f"📅 Due: {format_due(task.due_date)}")
    if task.tags:
        lines.append(f"🏷️ Tags: {task.tags}")
    if note:
        lines.extend(["", note])
    return "\n".join(lines)


def render_task_list(tasks: Sequence[Task]) -> str:
    if not tasks:
        return "📋 You don't have any tasks matching those criteria."

    parts = [f"📋 **Your Tasks** ({len(tasks)})", ""]
    for i, task in enumerate(tasks, start=1):
        parts.append(f"{i}. {status_emoji(task.status)} **{task.title}**")
        if task.description:
            parts.append(f"   📄 {task.description}")
        parts.append(f"   {priority_emoji(task.priority)} Priority: {task.priority.value}")
        parts.append(f"   🏷️ Status: {task.status.value}")
        if task.due_date:
            parts.append(f"   📅 Due: {format_due(task.due_date)}")
        if task.tags:
            parts.append(f"   🏷️ Tags: {task.tags}")
        parts.append(f"   🆔 ID: {task.id}")
        parts.append("")
    return "\n".join(parts).rstrip() + "\n"


def render_schedule(tasks: Sequence[Task]) -> str:
    if not tasks:
        return "🎯 You don't have any pending tasks to schedule!"

    parts = ["📅 **Your Recommended Schedule**", ""]
    for i, task in enumerate(tasks, start=1):
        parts.append(f"{i}. {priority_emoji(task.priority)} **{task.title}** (#{task.id})")
        if task.due_date:
            parts.append(f"   📅 Due: {format_due(task.due_date)}")
        parts.append(f"   ⚡ Priority: {task.priority.value}")
        parts.append("")
    parts.append("💡 **Tip**: Focus on high-priority tasks first!")
    return "\n".join(parts)


@dataclass(frozen=True, slots=True)
class ProductivityStats:
    total: int
    completed: int
    pending: int
    high: int
    medium: int
    low: int

    @property
    def completion_rate(self) -> int:
        """Rounded percentage, 0 for an empty task set."""
        if self.total <= 0:
            return 0
        return math.floor(self.completed * 100 / self.total + 0.5)


def productivity_stats(tasks: Sequence[Task]) -> ProductivityStats:
    return ProductivityStats(
        total=len(tasks),
        completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
        pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
        high=sum(1 for t in tasks if t.priority == TaskPriority.HIGH),
        medium=sum(1 for t in tasks if t.priority == TaskPriority.MEDIUM),
        low=sum(1 for t in tasks if t.priority == TaskPriority.LOW),
    )


def productivity_verdict(rate: int) -> str:
    if rate >= 80:
        return "🎉 Excellent work! You're maintaining a great completion rate!"
    if rate >= 60:
        return "👍 Good progress! Consider focusing on completing pending tasks."
    return "💪 You can do it! Try breaking down large tasks into smaller ones."


def render_productivity(stats: ProductivityStats) -> str:
    return "\n".join(
        [
            "📊 **Productivity Analysis**",
            "",
            "📈 **Overall Stats**",
            f"• Total Tasks: {stats.total}",
            f"• Completed: {stats.completed} ({stats.completion_rate}%)",
            f"• Pending: {stats.pending}",
            "",
            "⚡ **Priority Breakdown**",
            f"• High Priority: {stats.high}",
            f"• Medium Priority: {stats.medium}",
            f"• Low Priority: {stats.low}",
            "",
            productivity_verdict(stats.completion_rate),
        ]
    )


def render_suggestions(text: str) -> str:
    return f"💡 **Smart Suggestions for You**\n\n{text}"


def render_static_tips() -> str:
    return f"💡 **General Productivity Tips**\n\n{STATIC_TIPS}"
