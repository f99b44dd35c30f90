# tests/test_task_memory.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from taskpilot.llm.result import Ok, Unavailable
from taskpilot.memory.task_memory import TaskMemory
from taskpilot.memory.vector_index import ChromaVectorIndex, collection_name
from taskpilot.tasks.task_models import Task, TaskPriority, TaskStatus

from .fakes import FakeEmbedder

NOW = datetime(2025, 1, 15, tzinfo=UTC)


def _task(task_id: int, title: str, description: str = "", **kw) -> Task:
    return Task(id=task_id, title=title, description=description, created_at=NOW, updated_at=NOW, **kw)


def _memory(tmp_path: Path, embedder: FakeEmbedder) -> TaskMemory:
    return TaskMemory(embedder, ChromaVectorIndex(tmp_path / "vectors", namespace="a", dimensions=embedder.dimensions))


def test_collection_names_are_chroma_safe() -> None:
    assert collection_name("main-agent") == "tasks_main-agent"
    assert collection_name("my agent/1") == "tasks_my_agent_1"
    assert len(collection_name("x" * 200)) == 63


def test_index_upsert_query_and_dimension_guard(tmp_path: Path) -> None:
    index = ChromaVectorIndex(tmp_path / "vectors", namespace="a", dimensions=3)

    assert index.query([1.0, 0.0, 0.0]) == Ok([])
    assert index.upsert("1", [1.0, 0.0, 0.0], {"title": "x"}) == Ok(None)
    assert index.upsert("2", [0.0, 1.0, 0.0], {"title": "y", "due": None}) == Ok(None)
    assert index.upsert("1", [0.9, 0.1, 0.0], {"title": "x2"}) == Ok(None)

    found = index.query([1.0, 0.0, 0.0], top_k=5)
    assert isinstance(found, Ok)
    assert [m.item_id for m in found.value] == ["1", "2"]
    assert found.value[0].metadata == {"title": "x2"}
    assert found.value[0].score > found.value[1].score

    assert isinstance(index.upsert("3", [1.0, 2.0], {}), Unavailable)
    assert isinstance(index.query([1.0], top_k=1), Unavailable)


def test_index_delete_removes_item(tmp_path: Path) -> None:
    index = ChromaVectorIndex(tmp_path / "vectors", namespace="a", dimensions=2)
    index.upsert("1", [1.0, 0.0], {})
    index.upsert("2", [0.0, 1.0], {})

    assert index.delete("1") == Ok(None)

    found = index.query([1.0, 0.0])
    assert isinstance(found, Ok)
    assert [m.item_id for m in found.value] == ["2"]


def test_index_namespaces_do_not_mix(tmp_path: Path) -> None:
    path = tmp_path / "vectors"
    ChromaVectorIndex(path, namespace="a", dimensions=2).upsert("1", [1.0, 0.0], {})
    found = ChromaVectorIndex(path, namespace="b", dimensions=2).query([1.0, 0.0])
    assert found == Ok([])


def test_index_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "vectors"
    ChromaVectorIndex(path, namespace="a", dimensions=2).upsert("7", [1.0, 0.0], {"title": "kept"})

    found = ChromaVectorIndex(path, namespace="a", dimensions=2).query([1.0, 0.0], top_k=1)
    assert isinstance(found, Ok)
    assert found.value[0].item_id == "7"


def test_remember_and_search(tmp_path: Path) -> None:
    embedder = FakeEmbedder()
    memory = _memory(tmp_path, embedder)

    assert memory.remember(_task(1, "buy milk", "and bread"))
    assert memory.remember(_task(2, "weekly report"))
    assert embedder.embedded[0] == "buy milk and bread"

    matches = memory.search("report", top_k=1)
    assert len(matches) == 1
    assert matches[0].metadata["task_id"] == 2
    assert matches[0].metadata["priority"] == TaskPriority.MEDIUM.value


def test_remember_again_replaces_metadata(tmp_path: Path) -> None:
    memory = _memory(tmp_path, FakeEmbedder())
    memory.remember(_task(1, "buy milk"))
    memory.remember(_task(1, "buy milk", status=TaskStatus.COMPLETED))

    matches = memory.search("milk")
    assert len(matches) == 1
    assert matches[0].metadata["status"] == "completed"


def test_forget_drops_task_from_search(tmp_path: Path) -> None:
    memory = _memory(tmp_path, FakeEmbedder())
    memory.remember(_task(1, "buy milk"))
    memory.remember(_task(2, "gym"))

    assert memory.forget(1) is True
    assert [m.metadata["task_id"] for m in memory.search("milk")] == [2]


def test_unavailable_embeddings_are_reported_not_raised(tmp_path: Path) -> None:
    embedder = FakeEmbedder(available=False)
    memory = _memory(tmp_path, embedder)

    assert memory.remember(_task(1, "buy milk")) is False
    assert memory.search("milk") == []
