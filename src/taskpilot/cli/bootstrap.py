# src/taskpilot/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage, LLM, task memory).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.agent import TaskAgent
from ..core.ports import Embedder, TextGenerator
from ..core.state import AppState
from ..errors import CapabilityUnavailable
from ..llm.client import OpenAIEmbedder, OpenAITextGenerator
from ..llm.offline import OfflineEmbedder, OfflineTextGenerator
from ..memory.task_memory import TaskMemory
from ..memory.vector_index import ChromaVectorIndex
from ..storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_capabilities(settings) -> tuple[TextGenerator, Embedder, bool]:
    dims = int(getattr(settings, "embedding_dimensions", 1024))
    try:
        generator: TextGenerator = OpenAITextGenerator(settings)
    except CapabilityUnavailable as e:
        # Demos / local runs without external services.
        logger.info("LLM not configured (%s); running offline.", e)
        return OfflineTextGenerator(), OfflineEmbedder(dims), False

    embedder: Embedder = OfflineEmbedder(dims)
    if getattr(settings, "embedding_enabled", True):
        try:
            embedder = OpenAIEmbedder(settings)
        except CapabilityUnavailable as e:
            logger.info("Embeddings not configured (%s); task memory disabled.", e)
    return generator, embedder, True


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    generator, embedder, online = _build_capabilities(settings)

    agent_name = str(getattr(settings, "agent_name", "main-agent"))
    storage = KeyValueStore(settings.db_path, namespace=agent_name)
    task_memory: TaskMemory | None = None
    try:
        index = ChromaVectorIndex(settings.vector_dir, namespace=agent_name, dimensions=embedder.dimensions)
        task_memory = TaskMemory(embedder, index)
    except Exception:
        logger.warning("Vector index unavailable, task memory disabled.", exc_info=True)

    agent = TaskAgent(
        storage,
        generator,
        task_memory=task_memory,
        list_default_limit=int(getattr(settings, "list_default_limit", 10)),
        name=agent_name,
    )
    logger.info("Agent %s ready (online=%s, tasks=%d)", agent_name, online, agent.store.count())

    return AppState(
        settings=settings,
        agent=agent,
        llm=generator,
        task_memory=task_memory,
        online=online,
    )
