# src/taskpilot/errors.py

"""
Error taxonomy shared by the store, the capabilities and the dialogue layer.

- ValidationError: a required field is missing/malformed at the store boundary.
- StorageFailure: the persistence layer failed to commit; the only error that
  should reach a transport as an internal failure.
- CapabilityUnavailable: raised inside capability adapters only; converted to
  an `Unavailable` result before it leaves the adapter.
- NotFound: a plain result value (never raised) for unknown task ids.
"""

from __future__ import annotations

from dataclasses import dataclass


class TaskpilotError(Exception):
    """Base class for taskpilot errors."""


class ValidationError(TaskpilotError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class StorageFailure(TaskpilotError):
    """Persistence layer failed to read or commit."""


class CapabilityUnavailable(TaskpilotError):
    """External capability (text generation, embeddings, vector index) failed."""


@dataclass(frozen=True, slots=True)
class NotFound:
    task_id: int

    @property
    def message(self) -> str:
        return "Task not found"
