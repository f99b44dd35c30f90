# src/taskpilot/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the workflow scheduler in a background thread (optional),
- the console REPL in the main thread.
"""

from __future__ import annotations

import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.workflow_scheduler import (
    WorkflowBackgroundRunner,
    schedules_from_settings,
    start_workflows_in_background,
)

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "log_dir", None) or getattr(settings, "data_dir", ".local/taskpilot")
    log_file = setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s (log file %s)...", getattr(settings, "app_name", "taskpilot"), log_file)

    state = create_initial_state(settings=settings)

    workflow_runner: WorkflowBackgroundRunner | None = None
    if settings.workflows_enabled:
        workflow_runner = start_workflows_in_background(
            state.agent,
            schedules_from_settings(settings),
            poll_seconds=settings.workflow_poll_seconds,
        )

    def _handle_sigterm(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    try:
        signal.signal(signal.SIGTERM, _handle_sigterm)
    except (ValueError, OSError):
        # Not available on every platform / outside the main thread.
        logger.debug("SIGTERM handler not installed.", exc_info=True)

    try:
        run_console_loop(state)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        if workflow_runner is not None:
            workflow_runner.stop()
            workflow_runner.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
