# tests/test_dialogue_engine.py

from __future__ import annotations

import pytest

from taskpilot.dialogue import render
from taskpilot.dialogue.engine import DialogueEngine
from taskpilot.errors import StorageFailure
from taskpilot.intent.models import Intent, IntentType
from taskpilot.intent.resolver import IntentResolver
from taskpilot.tasks.conversation_log import ConversationLog
from taskpilot.tasks.task_models import TaskStatus
from taskpilot.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeTextGenerator, MemoryKV


def _engine(clock: FakeClock, generator: FakeTextGenerator | None = None, kv: MemoryKV | None = None):
    kv = kv or MemoryKV()
    gen = generator or FakeTextGenerator()
    store = TaskStore(kv, clock=clock)
    log = ConversationLog(kv, clock=clock)
    engine = DialogueEngine(store, log, IntentResolver(gen), gen)
    return engine, store, log, kv


def test_create_then_list_end_to_end(clock: FakeClock) -> None:
    engine, store, log, _ = _engine(clock)

    created = engine.handle("Create a task to buy milk", {"source": "test"})
    task = store.list()[0]
    assert "Task created successfully" in created
    assert f"Task #{task.id}" in created

    listed = engine.handle("Show my pending tasks")
    assert "buy milk" in listed
    assert f"ID: {task.id}" in listed

    assert [e.user_message for e in log.entries()] == ["Create a task to buy milk", "Show my pending tasks"]
    assert log.entries()[0].agent_response == created
    assert log.entries()[0].context == {"source": "test"}


def test_complete_twice_is_idempotent_and_rewrites_updated_at(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    engine.handle("Create a task to buy milk")

    clock.advance(minutes=1)
    first = engine.handle("Mark task 1 as completed")
    first_updated = store.get(1).updated_at

    clock.advance(minutes=1)
    second = engine.handle("Mark task 1 as completed")

    assert first == second == "🎉 Great job! Task #1 has been marked as completed!"
    assert store.get(1).status == TaskStatus.COMPLETED
    assert store.get(1).updated_at > first_updated


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("Mark it as done", "I need a task ID to mark as complete"),
        ("Delete the old stuff", "I need a task ID to delete"),
        ("Update the milk task", "I need a task ID to update"),
        ("Complete task 42", "Task #42 not found."),
        ("Delete task 42", "Task #42 not found."),
    ],
)
def test_missing_parameters_become_clarifying_prompts(clock: FakeClock, message: str, expected: str) -> None:
    engine, _, log, _ = _engine(clock)
    assert expected in engine.handle(message)
    assert len(log) == 1


def test_create_without_title_prompts(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    assert engine.respond(Intent(IntentType.CREATE_TASK, {"title": "  "})) == "Please provide a task title."
    assert store.count() == 0


def test_create_with_unreadable_due_date_is_unscheduled(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    reply = engine.respond(Intent(IntentType.CREATE_TASK, {"title": "gym", "due_date": "next blue moon"}))
    assert "couldn't understand the due date" in reply
    assert store.get(1).due_date is None


def test_invalid_values_are_rendered_not_raised(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    reply = engine.respond(Intent(IntentType.CREATE_TASK, {"title": "x", "priority": "urgent"}))
    assert reply.startswith("I couldn't do that (priority)")
    assert store.count() == 0

    reply = engine.respond(Intent(IntentType.LIST_TASKS, {"status": "someday"}))
    assert "I don't know the status 'someday'" in reply


def test_list_empty_and_limit(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    assert engine.respond(Intent(IntentType.LIST_TASKS, {})) == "📋 You don't have any tasks matching those criteria."

    for i in range(3):
        store.create(f"task {i}")
    reply = engine.respond(Intent(IntentType.LIST_TASKS, {"limit": 2}))
    assert "(2)" in reply
    assert "task 2" in reply and "task 0" not in reply


def test_update_applies_model_parameters(clock: FakeClock) -> None:
    gen = FakeTextGenerator([None, '{"type": "update_task", "parameters": {"task_id": 1, "status": "in_progress"}}'])
    engine, store, _, _ = _engine(clock, gen)
    engine.handle("Create a task to file taxes")

    reply = engine.handle("I've started on the taxes")
    assert reply == "✅ Task #1 has been updated successfully!"
    assert store.get(1).status == TaskStatus.IN_PROGRESS


def test_schedule_orders_pending_tasks(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    assert engine.respond(Intent(IntentType.SCHEDULE_TASKS, {})) == "🎯 You don't have any pending tasks to schedule!"

    store.create("later", priority="low", due_date="2025-01-20")
    store.create("far", priority="high", due_date="2025-01-25")
    store.create("soon", priority="high", due_date="2025-01-17")
    done = store.create("done already", priority="high")
    store.update(done.id, {"status": "completed"})

    reply = engine.respond(Intent(IntentType.SCHEDULE_TASKS, {}))
    assert reply.index("soon") < reply.index("far") < reply.index("later")
    assert "done already" not in reply


def test_analyze_productivity_rounds_half_up(clock: FakeClock) -> None:
    engine, store, _, _ = _engine(clock)
    for i in range(8):
        store.create(f"t{i}")
    for task_id in (1, 2, 3, 4, 5):
        store.update(task_id, {"status": "completed"})

    reply = engine.respond(Intent(IntentType.ANALYZE_PRODUCTIVITY, {}))
    # 5/8 = 62.5% -> 63
    assert "Completed: 5 (63%)" in reply
    assert "Good progress" in reply


def test_suggestions_use_model_then_static_tips(clock: FakeClock) -> None:
    gen = FakeTextGenerator(["1. Do the hard thing first."])
    engine, _, _, _ = _engine(clock, gen)

    assert engine.respond(Intent(IntentType.GET_SUGGESTIONS, {"context": "today"})) == render.render_suggestions(
        "1. Do the hard thing first."
    )
    assert "today" in gen.calls[0].prompt
    assert engine.respond(Intent(IntentType.GET_SUGGESTIONS, {})) == render.render_static_tips()


def test_general_returns_help(clock: FakeClock) -> None:
    engine, _, _, _ = _engine(clock)
    assert engine.handle("good morning") == render.HELP_TEXT


def test_storage_failure_propagates(clock: FakeClock) -> None:
    engine, store, log, kv = _engine(clock)
    kv.fail_writes = True
    with pytest.raises(StorageFailure):
        engine.handle("Create a task to buy milk")
    assert store.count() == 0
    assert len(log) == 0
