"""
Recent conversions, kept per session, newest first, capped at ``limit``.

Sessions are bounded too: the in-memory store evicts the least recently used
session past ``max_sessions``; Redis keys expire after ``ttl_seconds``.
"""

import json
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict, deque
from typing import Deque, List, Optional

from ..infra.redis_client import get_sync_redis
from ..settings import settings
from .unit_conversion import ConversionResult

DEFAULT_SESSION = "default"


class ConversionHistory(ABC):
    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit

    @abstractmethod
    def record(self, session_id: str, result: ConversionResult) -> None:
        """Insert ``result`` as the newest entry, dropping the oldest beyond the limit."""

    @abstractmethod
    def recent(self, session_id: str) -> List[dict]:
        """Return stored results, newest first."""

    @abstractmethod
    def clear(self, session_id: str) -> None:
        pass


class InMemoryHistory(ConversionHistory):
    def __init__(self, limit: int, max_sessions: int = 1000):
        super().__init__(limit)
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, Deque[dict]]" = OrderedDict()
        self._lock = threading.Lock()

    def record(self, session_id: str, result: ConversionResult) -> None:
        with self._lock:
            entries = self._sessions.get(session_id)
            if entries is None:
                entries = self._sessions[session_id] = deque(maxlen=self.limit)
            self._sessions.move_to_end(session_id)
            entries.appendleft(result.to_dict())
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)

    def recent(self, session_id: str) -> List[dict]:
        with self._lock:
            entries = self._sessions.get(session_id)
            if entries is None:
                return []
            self._sessions.move_to_end(session_id)
            return list(entries)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


class RedisHistory(ConversionHistory):
    def __init__(self, limit: int, ttl_seconds: int = 7 * 24 * 3600):
        super().__init__(limit)
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        self.ttl_seconds = ttl_seconds

    def _key(self, session_id: str) -> str:
        return f"unitconv:history:{session_id}"

    def record(self, session_id: str, result: ConversionResult) -> None:
        r = get_sync_redis()
        key = self._key(session_id)
        pipe = r.pipeline()
        pipe.lpush(key, json.dumps(result.to_dict()))
        pipe.ltrim(key, 0, self.limit - 1)
        pipe.expire(key, self.ttl_seconds)
        pipe.execute()

    def recent(self, session_id: str) -> List[dict]:
        r = get_sync_redis()
        return [json.loads(raw) for raw in r.lrange(self._key(session_id), 0, -1)]

    def clear(self, session_id: str) -> None:
        get_sync_redis().delete(self._key(session_id))


_history: Optional[ConversionHistory] = None

def get_history() -> ConversionHistory:
    """Return the configured history backend (creates on first use)."""
    global _history
    if _history is None:
        if settings.history_backend == "redis":
            _history = RedisHistory(settings.history_limit, ttl_seconds=settings.history_ttl_seconds)
        else:
            _history = InMemoryHistory(settings.history_limit, max_sessions=settings.history_max_sessions)
    return _history
