# src/taskpilot/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..memory.task_memory import TaskMemory
from .agent import TaskAgent
from .ports import TextGenerator


@dataclass
class AppState:
    # Settings object (real Settings or a SimpleNamespace in tests).
    settings: Any

    agent: TaskAgent
    llm: TextGenerator
    task_memory: TaskMemory | None = None

    # True when real (networked) capabilities are wired in.
    online: bool = False
