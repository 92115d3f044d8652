"""
In-process TTL cache for gateway GET responses.
Key: url + "?" + sorted query string. Writes invalidate by substring pattern.
"""
from __future__ import annotations

import threading
import time
import urllib.parse
from typing import Any, Callable, Mapping

from settings import GATEWAY_CACHE_TTL_S

DEFAULT_TTL_S = 600.0


def cache_key(url: str, params: Mapping[str, Any] | None = None) -> str:
    items = sorted((str(k), "" if v is None else str(v)) for k, v in (params or {}).items())
    return f"{url}?{urllib.parse.urlencode(items)}" if items else url


class ResponseCache:
    def __init__(self, ttl_s: float = DEFAULT_TTL_S, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_s, value)

    def invalidate(self, pattern: str) -> int:
        """Drop every key containing pattern; returns the number removed."""
        with self._lock:
            doomed = [k for k in self._entries if pattern in k]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


response_cache = ResponseCache(GATEWAY_CACHE_TTL_S)
