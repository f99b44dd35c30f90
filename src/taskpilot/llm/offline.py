# src/taskpilot/llm/offline.py

from __future__ import annotations

from .result import CapabilityResult, Unavailable


class OfflineTextGenerator:
    """
    Offline stand-in used when no external API is configured.

    Always Unavailable, so intent resolution runs on rules and suggestions /
    insights use their static tips.
    """

    def generate(self, prompt: str, *, max_tokens: int, temperature: float) -> CapabilityResult[str]:
        return Unavailable("offline")


class OfflineEmbedder:
    def __init__(self, dimensions: int = 1024) -> None:
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> CapabilityResult[list[float]]:
        return Unavailable("offline")
