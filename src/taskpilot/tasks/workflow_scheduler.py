# src/taskpilot/tasks/workflow_scheduler.py

from __future__ import annotations

"""
Workflow scheduler.

A small polling loop that fires each periodic workflow (daily reminder,
productivity report, auto-schedule, priority review) on its own interval.

The workflow itself runs in a worker thread (it may wait on the LLM), so the
event loop stays responsive. A failed run is logged and retried on the next
interval; it never stops the loop.
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from .workflows import WORKFLOW_NAMES

logger = logging.getLogger(__name__)


class WorkflowTarget(Protocol):
    def run_workflow(self, name: str) -> Any: ...


@dataclass(slots=True, frozen=True)
class WorkflowSchedule:
    name: str
    interval_seconds: float
    run_at_start: bool = False


def schedules_from_settings(settings: Any) -> list[WorkflowSchedule]:
    """Build the default schedule set from Settings (or a test namespace)."""
    intervals = {
        "daily_reminder": float(getattr(settings, "daily_reminder_interval_seconds", 86400.0)),
        "productivity_report": float(getattr(settings, "productivity_report_interval_seconds", 7 * 86400.0)),
        "auto_schedule": float(getattr(settings, "auto_schedule_interval_seconds", 86400.0)),
        "priority_review": float(getattr(settings, "priority_review_interval_seconds", 86400.0)),
    }
    return [WorkflowSchedule(name=n, interval_seconds=intervals[n]) for n in WORKFLOW_NAMES]


async def run_workflow_scheduler(
        agent: WorkflowTarget,
        schedules: Iterable[WorkflowSchedule],
        *,
        poll_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Polling scheduler.

    Every poll_seconds:
    - find schedules whose next run time has passed
    - run the workflow via agent.run_workflow(name) in a worker thread
    - set the next run time to now + interval (also after a failure)

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(poll_seconds))
    plan = list(schedules)
    start = clock()
    next_run: dict[str, float] = {
        s.name: start if s.run_at_start else start + max(1.0, s.interval_seconds) for s in plan
    }
    logger.info("Workflow scheduler started: %s", ", ".join(s.name for s in plan) or "(nothing)")

    while True:
        now = clock()
        for schedule in plan:
            if next_run[schedule.name] > now:
                continue
            next_run[schedule.name] = now + max(1.0, schedule.interval_seconds)
            try:
                result = await asyncio.to_thread(agent.run_workflow, schedule.name)
                logger.info("Workflow %s -> %s", schedule.name, getattr(result, "status", "done"))
            except Exception:
                logger.exception("Workflow %s failed", schedule.name)

        await asyncio.sleep(sleep_s)


@dataclass(slots=True)
class WorkflowBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task[None]

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except RuntimeError:
            logger.debug("Workflow loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_workflows_in_background(
        agent: WorkflowTarget,
        schedules: Iterable[WorkflowSchedule],
        *,
        poll_seconds: float = 30.0,
) -> WorkflowBackgroundRunner | None:
    """
    Run the workflow scheduler on its own event loop in a daemon thread,
    so the blocking console REPL can run in parallel.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}
    plan = list(schedules)

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(run_workflow_scheduler(agent, plan, poll_seconds=poll_seconds))
        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            loop.run_until_complete(task)
        except asyncio.CancelledError:
            logger.info("Workflow scheduler stopped.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_default_executor())
                loop.close()

    t = threading.Thread(target=runner, name="workflow-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")
    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Task):
        logger.error("Workflow scheduler thread did not initialize properly.")
        return None

    logger.info("Workflow scheduler background thread started.")
    return WorkflowBackgroundRunner(thread=t, loop=loop, task=task)
