# src/taskpilot/llm/result.py

"""
Result values returned by capability adapters.

Callers branch on isinstance(result, Ok) and run their documented fallback
on Unavailable; capability failures never travel as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Unavailable:
    reason: str


CapabilityResult = Union[Ok[T], Unavailable]
