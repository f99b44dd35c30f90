# src/taskpilot/tasks/scheduling.py

"""
Scheduling advisor: pure ordering and due-date classification of tasks.

order_tasks() is a total, stable order:
  1. priority rank (high, medium, low)
  2. due date ascending, undated tasks last
  3. original store order for ties
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta
from enum import StrEnum

from .task_models import Task

_DAY_SECONDS = 86400.0


class DueBucket(StrEnum):
    OVERDUE = "overdue"
    DUE_TOMORROW = "due_tomorrow"
    DUE_SOON = "due_soon"


def _sort_key(task: Task) -> tuple[int, int, float]:
    if task.due_date is None:
        return (task.priority.rank, 1, 0.0)
    return (task.priority.rank, 0, task.due_date.timestamp())


def order_tasks(tasks: Iterable[Task]) -> list[Task]:
    # sorted() is stable, so ties keep store order.
    return sorted(tasks, key=_sort_key)


def days_until_due(task: Task, now: datetime) -> int | None:
    """Whole days until due, rounded up; None for unscheduled tasks."""
    if task.due_date is None:
        return None
    return math.ceil((task.due_date - now).total_seconds() / _DAY_SECONDS)


def due_bucket(task: Task, now: datetime) -> DueBucket | None:
    """
    overdue: due < now; due tomorrow: 0 <= days <= 1; due soon: 2..3 days.
    Anything further out (or undated) has no bucket.
    """
    if task.due_date is None:
        return None
    if task.due_date < now:
        return DueBucket.OVERDUE
    days = days_until_due(task, now)
    if days is None:
        return None
    if days <= 1:
        return DueBucket.DUE_TOMORROW
    if days <= 3:
        return DueBucket.DUE_SOON
    return None


def age_days(task: Task, now: datetime) -> float:
    return (now - task.created_at).total_seconds() / _DAY_SECONDS


def is_stale(task: Task, now: datetime, *, older_than_days: int = 3) -> bool:
    return task.created_at < now - timedelta(days=older_than_days)
