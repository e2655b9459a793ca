"""In-memory conversation history, keyed by sender id.

History lives for the lifetime of the process only. Appends are guarded by
a thread lock; callers that need a whole chat turn to run without
interleaving take :meth:`ConversationStore.session_lock`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class ConversationStore:

    def __init__(
        self,
        max_messages: int = 50,
        verified_count: Callable[[], int] | None = None,
    ) -> None:
        self._max_messages = max_messages
        self._verified_count = verified_count
        self._lock = threading.Lock()
        self._sessions: dict[str, deque[ChatMessage]] = {}
        # Held only while a turn (or a waiter) references it.
        self._turn_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def add_message(self, session_id: str, role: Role, content: str) -> None:
        with self._lock:
            history = self._sessions.get(session_id)
            if history is None:
                history = deque(maxlen=self._max_messages)
                self._sessions[session_id] = history
            history.append(ChatMessage(role=role, content=content))

    def get_history(self, session_id: str, limit: int | None = None) -> list[ChatMessage]:
        """Return the most recent messages, oldest first."""
        with self._lock:
            messages = list(self._sessions.get(session_id, ()))
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return messages

    def clear_history(self, session_id: str) -> int:
        """Forget *session_id*'s history; returns how many messages were dropped."""
        with self._lock:
            history = self._sessions.pop(session_id, None)
        dropped = len(history) if history else 0
        logger.info("[sessions.clear] session=%s dropped=%d", session_id, dropped)
        return dropped

    def session_lock(self, session_id: str) -> asyncio.Lock:
        with self._lock:
            lock = self._turn_locks.get(session_id)
            if lock is None:
                lock = self._turn_locks[session_id] = asyncio.Lock()
            return lock

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            active = sum(1 for h in self._sessions.values() if h)
            total = sum(len(h) for h in self._sessions.values())
        stats: dict[str, Any] = {"active_sessions": active, "total_messages": total}
        if self._verified_count is not None:
            stats["verified_users"] = self._verified_count()
        return stats
