# src/taskpilot/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (without an API key the app runs on
  the deterministic offline capabilities).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKPILOT"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    agent_name: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    vector_dir: Path
    log_dir: Path

    # ---- LLM (OpenAI-compatible endpoint) ----
    llm_api_key: str | None
    llm_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float

    # ---- Embeddings / task memory ----
    embedding_enabled: bool
    embedding_model: str
    embedding_dimensions: int

    # ---- Dialogue ----
    list_default_limit: int

    # ---- Workflows ----
    workflows_enabled: bool
    workflow_poll_seconds: float
    daily_reminder_interval_seconds: float
    productivity_report_interval_seconds: float
    auto_schedule_interval_seconds: float
    priority_review_interval_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskpilot")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        agent_name = _env(_k("AGENT_NAME"), "main-agent").strip() or "main-agent"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskpilot"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskpilot.sqlite3")
        vector_dir = _env_path(_k("VECTOR_DIR"), data_dir / "vectors")
        log_dir = _env_path(_k("LOG_DIR"), data_dir)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENAI_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "meta-llama/llama-3.3-70b-instruct",
                "qwen/qwen-2.5-72b-instruct",
            ],
        )
        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 25.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            agent_name=agent_name,
            data_dir=data_dir,
            db_path=db_path,
            vector_dir=vector_dir,
            log_dir=log_dir,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_connect_timeout_seconds=connect_timeout,
            llm_read_timeout_seconds=read_timeout,
            embedding_enabled=_env_bool(_k("EMBEDDING_ENABLED"), True),
            embedding_model=_env(_k("EMBEDDING_MODEL"), "text-embedding-3-small"),
            embedding_dimensions=_env_int(_k("EMBEDDING_DIMENSIONS"), 1024),
            list_default_limit=_env_int(_k("LIST_DEFAULT_LIMIT"), 10),
            workflows_enabled=_env_bool(_k("WORKFLOWS_ENABLED"), False),
            workflow_poll_seconds=_env_float(_k("WORKFLOW_POLL_SECONDS"), 30.0),
            daily_reminder_interval_seconds=_env_float(_k("DAILY_REMINDER_INTERVAL_SECONDS"), 86400.0),
            productivity_report_interval_seconds=_env_float(
                _k("PRODUCTIVITY_REPORT_INTERVAL_SECONDS"), 7 * 86400.0
            ),
            auto_schedule_interval_seconds=_env_float(_k("AUTO_SCHEDULE_INTERVAL_SECONDS"), 86400.0),
            priority_review_interval_seconds=_env_float(_k("PRIORITY_REVIEW_INTERVAL_SECONDS"), 86400.0),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
