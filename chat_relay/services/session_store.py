"""
SESSION STORE MODULE
====================

Keeps the short conversation window for each session id. Callers only use
``get`` and ``put``; which backend sits behind them is decided once in
``build_session_store`` from the settings.

BACKENDS:
  InMemorySessionStore - dict in process memory. Sessions live until restart.
  RedisSessionStore    - JSON list per session in Redis, expiring after a TTL.

Both backends store at most ``max_turns`` turns: whatever is written is
trimmed to the most recent turns first, so memory use per session is bounded.
"""

import json
import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, List, Optional, Sequence, Tuple

import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError

from chat_relay.models import ChatMessage

logger = logging.getLogger("chat_relay")


def trim_history(turns: Sequence[ChatMessage], max_turns: int) -> List[ChatMessage]:
    """Return the last ``max_turns`` turns as a new list."""
    if max_turns <= 0:
        return []
    return list(turns[-max_turns:])


class SessionStore(ABC):
    """Interface for per-session conversation history."""

    def __init__(self, max_turns: int):
        self.max_turns = max_turns

    @abstractmethod
    async def get(self, session_id: str) -> List[ChatMessage]:
        """Stored turns for the session, oldest first. Empty list if unknown."""

    @abstractmethod
    async def put(self, session_id: str, turns: Sequence[ChatMessage]) -> None:
        """Insert or overwrite the session's history (trimmed to max_turns)."""

    async def close(self) -> None:
        """Release backend resources. Nothing to do for most backends."""


# ==============================================================================
# IN-MEMORY BACKEND
# ==============================================================================

class InMemorySessionStore(SessionStore):
    """
    Process-local store. Each write replaces the whole tuple under a lock, so
    readers never see a half-written history.
    """

    def __init__(self, max_turns: int):
        super().__init__(max_turns)
        self._sessions: Dict[str, Tuple[ChatMessage, ...]] = {}
        self._lock = Lock()

    async def get(self, session_id: str) -> List[ChatMessage]:
        with self._lock:
            return list(self._sessions.get(session_id, ()))

    async def put(self, session_id: str, turns: Sequence[ChatMessage]) -> None:
        trimmed = tuple(trim_history(turns, self.max_turns))
        with self._lock:
            self._sessions[session_id] = trimmed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


# ==============================================================================
# REDIS BACKEND
# ==============================================================================

class RedisSessionStore(SessionStore):
    """
    Sessions as JSON lists under ``<prefix><session_id>``, refreshed with a TTL
    on every write. Survives restarts and can be shared by several workers.
    """

    def __init__(
        self,
        redis_client,
        max_turns: int,
        ttl_seconds: int,
        key_prefix: str = "chat_relay:session:",
    ):
        super().__init__(max_turns)
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, max_turns: int, ttl_seconds: int) -> "RedisSessionStore":
        client = redis.from_url(redis_url, decode_responses=True)
        return cls(client, max_turns=max_turns, ttl_seconds=ttl_seconds)

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def get(self, session_id: str) -> List[ChatMessage]:
        raw = await self.redis.get(self._key(session_id))
        if not raw:
            return []
        try:
            items = json.loads(raw)
            return [ChatMessage.model_validate(item) for item in items]
        except (ValueError, TypeError, PydanticValidationError) as e:
            # A corrupt entry only costs this session its context.
            logger.warning("Discarding unreadable history for session %s: %s", session_id, e)
            return []

    async def put(self, session_id: str, turns: Sequence[ChatMessage]) -> None:
        trimmed = trim_history(turns, self.max_turns)
        payload = json.dumps([turn.model_dump() for turn in trimmed], ensure_ascii=False)
        await self.redis.setex(self._key(session_id), self.ttl_seconds, payload)

    async def close(self) -> None:
        await self.redis.aclose()


def build_session_store(
    max_turns: int,
    redis_url: Optional[str] = None,
    ttl_seconds: int = 86400,
) -> SessionStore:
    """Redis when a URL is configured, memory otherwise."""
    if redis_url:
        logger.info("Session store: Redis (ttl=%ss)", ttl_seconds)
        return RedisSessionStore.from_url(redis_url, max_turns=max_turns, ttl_seconds=ttl_seconds)
    logger.info("Session store: in memory (sessions are lost on restart)")
    return InMemorySessionStore(max_turns=max_turns)
