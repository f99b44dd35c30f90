# src/taskpilot/tasks/conversation_log.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..core.ports import KeyValueRepo
from .task_models import ConversationEntry, utc_now

logger = logging.getLogger(__name__)

CONVERSATIONS_KEY = "conversations"
NEXT_ENTRY_ID_KEY = "next_conversation_id"


class ConversationLog:
    """
    Append-only log of chat turns for one agent.

    Entries are numbered in append order and never pruned here.
    Same commit discipline as TaskStore: write first, then swap in memory.
    """

    def __init__(self, storage: KeyValueRepo, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._storage = storage
        self._clock = clock
        raw = storage.get(CONVERSATIONS_KEY, []) or []
        self._entries: list[ConversationEntry] = [
            ConversationEntry.from_dict(e) for e in raw if isinstance(e, dict)
        ]
        highest = max((e.id for e in self._entries), default=0)
        self._next_id = max(int(storage.get(NEXT_ENTRY_ID_KEY, 1) or 1), highest + 1)

    def __len__(self) -> int:
        return len(self._entries)

    def append(
        self,
        user_message: str,
        agent_response: str,
        context: dict[str, Any] | None = None,
    ) -> ConversationEntry:
        entry = ConversationEntry(
            id=self._next_id,
            user_message=str(user_message or ""),
            agent_response=str(agent_response or ""),
            created_at=self._clock(),
            context=dict(context or {}),
        )
        entries = [*self._entries, entry]
        self._storage.put_many(
            {
                CONVERSATIONS_KEY: [e.to_dict() for e in entries],
                NEXT_ENTRY_ID_KEY: entry.id + 1,
            }
        )
        self._entries = entries
        self._next_id = entry.id + 1
        logger.debug("Conversation entry appended id=%s", entry.id)
        return entry

    def entries(self) -> list[ConversationEntry]:
        return list(self._entries)

    def recent(self, limit: int = 10) -> list[ConversationEntry]:
        if limit <= 0:
            return []
        return self._entries[-limit:]
