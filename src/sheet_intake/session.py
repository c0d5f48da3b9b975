from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional, Protocol

from . import logger as log
from .config import DEFAULT_SESSION_TTL_SECONDS

SESSION_KEY = "session_start"


class Cache(Protocol):
    def put(self, key: str, value: Any, ttl: float) -> None: ...

    def get(self, key: str) -> Any: ...

    def remove(self, key: str) -> None: ...


class MemoryCache:
    """In-process key/value cache with per-key expiry. Contents are lost on restart."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            now = self._clock()
            # expired keys that are never read again are only dropped here
            expired = [k for k, (_, exp) in self._data.items() if now > exp]
            for k in expired:
                del self._data[k]
            self._data[key] = (value, now + ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: str) -> Any:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._clock() > expires_at:
                del self._data[key]
                return None
            return value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SessionGuard:
    """Advisory per-user session timer for the form UI. Does not gate submissions."""

    def __init__(
        self,
        cache: Cache,
        *,
        ttl: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._cache = cache
        self.ttl = ttl
        self._clock = clock

    @staticmethod
    def _key(user: str) -> str:
        return f"{SESSION_KEY}:{user}"

    def start(self, user: str) -> None:
        self._cache.put(self._key(user), self._clock(), self.ttl)
        log.debug("Session started: user=%s", user)

    def check(self, user: str) -> bool:
        """Return True when the session is expired (or was never started)."""
        key = self._key(user)
        started: Optional[float] = self._cache.get(key)
        if started is None:
            return True
        if self._clock() - float(started) > self.ttl:
            self._cache.remove(key)
            log.debug("Session expired: user=%s", user)
            return True
        return False
