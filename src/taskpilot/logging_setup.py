# src/taskpilot/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Console thresholds by logger prefix; the longest matching prefix wins.
# The workflow scheduler logs every tick from its background thread, which
# would interleave with the REPL prompt.
CONSOLE_LEVELS: dict[str, int] = {
    "taskpilot": logging.DEBUG,
    "taskpilot.tasks.workflow_scheduler": logging.WARNING,
    "taskpilot.memory": logging.WARNING,
    "py.warnings": logging.ERROR,
}
_THIRD_PARTY_CONSOLE_LEVEL = logging.ERROR

# Client libraries that log each request/heartbeat; capped at the source so the
# log file stays readable too.
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai", "chromadb")

LOG_FILE_NAME = "taskpilot.log"


def console_threshold(name: str) -> int:
    best = ""
    for prefix in CONSOLE_LEVELS:
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(best):
            best = prefix
    return CONSOLE_LEVELS[best] if best else _THIRD_PARTY_CONSOLE_LEVEL


class ConsoleFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_threshold(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskpilot",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet_level: int = logging.WARNING,
) -> Path:
    """
    Console (filtered by CONSOLE_LEVELS) plus a full log file under `log_dir`.

    Replaces existing root handlers, so calling it twice does not duplicate
    output. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(threadName)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(ConsoleFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    logging.captureWarnings(True)
    return log_file
