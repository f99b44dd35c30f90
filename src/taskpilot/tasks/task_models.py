# src/taskpilot/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from enum import StrEnum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Scheduling rank: lower comes first."""
        return _PRIORITY_RANK[self]

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


_PRIORITY_RANK = {
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def parse_due_date(value: Any) -> datetime | None:
    """
    Normalize a due date into an aware UTC datetime.

    Accepts None/"" (unscheduled), datetime, date, or an ISO-8601 string
    ("2025-01-31", "2025-01-31T09:00", "2025-01-31T09:00:00Z").
    Naive values are taken as UTC. Raises ValueError for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
        return dt if dt.tzinfo else dt.replace(tzinfo=UTC)
    raise ValueError(f"unsupported due date: {value!r}")


def _dt_to_str(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _str_to_dt(s: str | None) -> datetime | None:
    if not s:
        return None
    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


@dataclass(slots=True)
class Task:
    id: int
    title: str
    created_at: datetime
    updated_at: datetime

    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: datetime | None = None
    tags: str = ""
    metadata: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "due_date": _dt_to_str(self.due_date),
            "tags": self.tags,
            "created_at": _dt_to_str(self.created_at),
            "updated_at": _dt_to_str(self.updated_at),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        created_at = _str_to_dt(raw.get("created_at")) or utc_now()
        return cls(
            id=int(raw["id"]),
            title=str(raw.get("title") or ""),
            description=str(raw.get("description") or ""),
            priority=TaskPriority.from_db(raw.get("priority")),
            status=TaskStatus.from_db(raw.get("status")),
            due_date=_str_to_dt(raw.get("due_date")),
            tags=str(raw.get("tags") or ""),
            created_at=created_at,
            updated_at=_str_to_dt(raw.get("updated_at")) or created_at,
            metadata=raw.get("metadata"),
        )


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """Conjunction of optional constraints; None means "any"."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None

    def matches(self, task: Task) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        return True


@dataclass(slots=True)
class ConversationEntry:
    id: int
    user_message: str
    agent_response: str
    created_at: datetime
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_message": self.user_message,
            "agent_response": self.agent_response,
            "created_at": _dt_to_str(self.created_at),
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ConversationEntry:
        ctx = raw.get("context")
        return cls(
            id=int(raw["id"]),
            user_message=str(raw.get("user_message") or ""),
            agent_response=str(raw.get("agent_response") or ""),
            created_at=_str_to_dt(raw.get("created_at")) or utc_now(),
            context=ctx if isinstance(ctx, dict) else {},
        )
