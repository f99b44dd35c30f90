# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskpilot.core.agent import TaskAgent
from taskpilot.core.state import AppState
from taskpilot.memory.task_memory import TaskMemory
from taskpilot.memory.vector_index import ChromaVectorIndex
from taskpilot.storage.kv_store import KeyValueStore
from taskpilot.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeEmbedder, FakeTextGenerator


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskpilot-test",
        agent_name="test-agent",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        db_path=tmp_path / "taskpilot.sqlite3",
        vector_dir=tmp_path / "vectors",
        log_dir=tmp_path,
        # LLM (never contacted in tests)
        llm_api_key=None,
        llm_base_url="",
        llm_models=["fake/model-a", "fake/model-b"],
        extra_headers={},
        embedding_enabled=False,
        embedding_dimensions=5,
        # Dialogue / workflows
        list_default_limit=10,
        workflows_enabled=False,
        workflow_poll_seconds=0.01,
        daily_reminder_interval_seconds=86400.0,
        productivity_report_interval_seconds=7 * 86400.0,
        auto_schedule_interval_seconds=86400.0,
        priority_review_interval_seconds=86400.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def generator() -> FakeTextGenerator:
    """Generator with nothing scripted: every call is Unavailable (offline)."""
    return FakeTextGenerator()


@pytest.fixture()
def storage(settings: SimpleNamespace) -> KeyValueStore:
    return KeyValueStore(settings.db_path, namespace=settings.agent_name)


@pytest.fixture()
def store(storage: KeyValueStore, clock: FakeClock) -> TaskStore:
    return TaskStore(storage, clock=clock)


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def task_memory(settings: SimpleNamespace, embedder: FakeEmbedder) -> TaskMemory:
    index = ChromaVectorIndex(settings.vector_dir, namespace=settings.agent_name, dimensions=embedder.dimensions)
    return TaskMemory(embedder, index)


@pytest.fixture()
def agent(
    storage: KeyValueStore,
    generator: FakeTextGenerator,
    task_memory: TaskMemory,
    clock: FakeClock,
) -> TaskAgent:
    """
    TaskAgent wired with deterministic fakes.

    NOTE: We keep the real SQLite KeyValueStore here because its
    persistence behavior is part of what we want to test.
    """
    return TaskAgent(storage, generator, task_memory=task_memory, clock=clock, name="test-agent")


@pytest.fixture()
def state(settings: SimpleNamespace, agent: TaskAgent, generator: FakeTextGenerator, task_memory: TaskMemory) -> AppState:
    return AppState(settings=settings, agent=agent, llm=generator, task_memory=task_memory, online=False)
