# tests/test_workflows.py

from __future__ import annotations

import pytest

from taskpilot.tasks.conversation_log import ConversationLog
from taskpilot.tasks.task_store import TaskStore
from taskpilot.tasks.workflows import (
    STATIC_INSIGHTS,
    WORKFLOW_NAMES,
    WorkflowRunner,
)

from .fakes import FakeClock, FakeTextGenerator, MemoryKV


def _runner(clock: FakeClock, generator: FakeTextGenerator | None = None):
    kv = MemoryKV()
    store = TaskStore(kv, clock=clock)
    log = ConversationLog(kv, clock=clock)
    return WorkflowRunner(store, log, generator or FakeTextGenerator(), clock=clock), store, log


@pytest.mark.parametrize("name", WORKFLOW_NAMES)
def test_every_workflow_appends_one_entry_even_when_empty(clock: FakeClock, name: str) -> None:
    runner, _, log = _runner(clock)

    result = runner.run(name)

    assert result.status == "completed"
    assert len(log) == 1
    entry = log.entries()[0]
    assert entry.id == result.entry_id
    assert entry.agent_response == result.message
    assert entry.context["type"] == name
    assert entry.context["timestamp"] == clock.now.isoformat()


def test_unknown_workflow_raises(clock: FakeClock) -> None:
    runner, _, log = _runner(clock)
    with pytest.raises(ValueError):
        runner.run("cleanup")
    assert len(log) == 0


def test_daily_reminder_groups_by_priority(clock: FakeClock) -> None:
    runner, store, log = _runner(clock)
    store.create("pay rent", priority="high")
    store.create("water plants", priority="low")
    done = store.create("old chore")
    store.update(done.id, {"status": "completed"})

    result = runner.run("daily_reminder")

    assert log.entries()[0].user_message == "Daily reminder"
    text = result.message
    assert text.index("High Priority") < text.index("pay rent") < text.index("Low Priority") < text.index("water plants")
    assert "Medium Priority" not in text
    assert "old chore" not in text


def test_productivity_report_uses_insights_or_static_fallback(clock: FakeClock) -> None:
    gen = FakeTextGenerator(["Insight: you finish high-priority work fast."])
    runner, store, _ = _runner(clock, gen)
    for i in range(4):
        store.create(f"t{i}", priority="high" if i < 2 else "low")
    for task_id in (1, 2, 3):
        store.update(task_id, {"status": "completed"})

    report = runner.run("productivity_report").message
    assert "Completed: 3 (75%)" in report
    assert "👍 Good!" in report
    assert "High Priority Completed: 2" in report
    assert "Low Priority Completed: 1" in report
    assert "Insight: you finish high-priority work fast." in report
    assert '"title": "t0"' in gen.calls[0].prompt

    fallback = runner.run("productivity_report").message
    assert STATIC_INSIGHTS in fallback


def test_productivity_report_window_excludes_old_untouched_tasks(clock: FakeClock) -> None:
    runner, store, _ = _runner(clock)
    store.create("ancient")
    clock.advance(days=10)
    store.create("fresh")

    report = runner.run("productivity_report").message
    assert "Total Tasks: 1" in report
    assert "Keep improving" in report


def test_auto_schedule_skips_past_due_and_orders(clock: FakeClock) -> None:
    runner, store, _ = _runner(clock)
    store.create("overdue thing", priority="high", due_date="2025-01-01")
    store.create("someday", priority="low")
    store.create("next week", priority="high", due_date="2025-01-22")
    store.create("routine", priority="medium")

    text = runner.run("auto_schedule").message
    assert "overdue thing" not in text
    assert text.index("next week") < text.index("routine") < text.index("someday")
    assert "Schedule for today or tomorrow" in text
    assert "Schedule within 3 days" in text
    assert "Schedule when you have free time" in text


def test_priority_review_flags_stale_tasks_with_buckets(clock: FakeClock) -> None:
    runner, store, _ = _runner(clock)
    store.create("no date", priority="low")
    store.create("late", due_date="2025-01-18T08:00:00Z")
    store.create("tomorrow", due_date="2025-01-19T20:00:00Z")
    store.create("soonish", due_date="2025-01-21T08:00:00Z")
    clock.advance(days=4)
    store.create("brand new")

    text = runner.run("priority_review").message
    assert "brand new" not in text
    assert "Set a due date for better planning" in text
    assert "OVERDUE" in text
    assert "Due tomorrow" in text
    assert "Due soon" in text
    # medium tasks listed before low ones
    assert text.index("late") < text.index("no date")


def test_remind_task(clock: FakeClock) -> None:
    runner, store, log = _runner(clock)
    store.create("call mom", description="her birthday", priority="high")

    result = runner.remind_task(1)
    assert result.status == "completed"
    assert "**call mom**" in result.message
    assert "her birthday" in result.message
    assert log.entries()[0].user_message == "Task reminder"
    assert log.entries()[0].context["task_id"] == 1

    missing = runner.remind_task(99)
    assert missing.status == "not_found"
    assert missing.entry_id is None
    assert len(log) == 1
