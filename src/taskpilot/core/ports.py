# src/taskpilot/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers swappable and makes testing easier.
Capability ports return CapabilityResult values instead of raising.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from ..llm.result import CapabilityResult


class TextGenerator(Protocol):
    """Single-shot text generation (OpenAI-compatible chat completion)."""

    def generate(self, prompt: str, *, max_tokens: int, temperature: float) -> CapabilityResult[str]: ...


class Embedder(Protocol):
    """Text -> fixed-dimension vector."""

    @property
    def dimensions(self) -> int: ...

    def embed(self, text: str) -> CapabilityResult[list[float]]: ...


class VectorIndex(Protocol):
    def upsert(self, item_id: str, vector: list[float], metadata: dict[str, Any]) -> CapabilityResult[None]: ...

    def delete(self, item_id: str) -> CapabilityResult[None]: ...

    # Returns a ranked list of VectorMatch (kept as Any to avoid import coupling).
    def query(self, vector: list[float], *, top_k: int = 5) -> CapabilityResult[list[Any]]: ...


class KeyValueRepo(Protocol):
    """Key-addressed persistence with atomic multi-key write-back."""

    def get(self, key: str, default: Any = None) -> Any: ...
    def put(self, key: str, value: Any) -> None: ...
    def put_many(self, items: Mapping[str, Any]) -> None: ...
