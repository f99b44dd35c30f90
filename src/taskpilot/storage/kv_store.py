# src/taskpilot/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..errors import StorageFailure

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    SQLite key-value store addressed by (namespace, key).

    One namespace = one agent instance (e.g. "main-agent"). Values are JSON.

    Guarantees:
    - put_many() writes all keys in a single transaction (all or nothing)
    - every sqlite/JSON failure surfaces as StorageFailure

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path, namespace: str = "main-agent") -> None:
        if not namespace or not namespace.strip():
            raise ValueError("namespace is required")
        self._db_path = Path(db_path)
        self._namespace = namespace.strip()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except (OSError, sqlite3.Error) as e:
            raise StorageFailure(f"cannot open store at {self._db_path}") from e
        logger.info("KeyValueStore ready db=%s namespace=%s", self._db_path, self._namespace)

    @property
    def namespace(self) -> str:
        return self._namespace

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageFailure(f"value for key {key!r} is not JSON-serializable") from e

    # ---- public API ----

    def get(self, key: str, default: Any = None) -> Any:
        try:
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT value FROM kv WHERE namespace = ? AND key = ?",
                    (self._namespace, key),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFailure(f"read failed for key {key!r}") from e

        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError as e:
            raise StorageFailure(f"corrupt JSON stored under key {key!r}") from e

    def put(self, key: str, value: Any) -> None:
        self.put_many({key: value})

    def put_many(self, items: Mapping[str, Any]) -> None:
        """Write all items atomically."""
        if not items:
            return
        now = time.time()
        rows = [(self._namespace, k, self._encode(k, v), now) for k, v in items.items()]

        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.executemany(
                        """
                        INSERT INTO kv(namespace, key, value, updated_at)
                        VALUES (?, ?, ?, ?)
                        ON CONFLICT(namespace, key)
                        DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                        """,
                        rows,
                    )
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFailure(f"commit failed for keys {sorted(items)}") from e

        logger.debug("KV commit namespace=%s keys=%s", self._namespace, sorted(items))

    def keys(self) -> list[str]:
        try:
            conn = self._get_conn()
            try:
                rows = conn.execute(
                    "SELECT key FROM kv WHERE namespace = ? ORDER BY key",
                    (self._namespace,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageFailure("listing keys failed") from e
        return [str(r["key"]) for r in rows]
