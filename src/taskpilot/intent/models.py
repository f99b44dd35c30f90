# src/taskpilot/intent/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class IntentType(StrEnum):
    CREATE_TASK = "create_task"
    LIST_TASKS = "list_tasks"
    UPDATE_TASK = "update_task"
    COMPLETE_TASK = "complete_task"
    DELETE_TASK = "delete_task"
    SCHEDULE_TASKS = "schedule_tasks"
    ANALYZE_PRODUCTIVITY = "analyze_productivity"
    GET_SUGGESTIONS = "get_suggestions"
    GENERAL = "general"

    @classmethod
    def parse(cls, raw: Any) -> IntentType | None:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Intent:
    """Transient classification of one message; never persisted."""

    type: IntentType
    parameters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def general(cls) -> Intent:
        return cls(IntentType.GENERAL, {})
