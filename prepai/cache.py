"""
Response cache for PrepAI.

Keeps successful model output for identical requests so repeated calls
do not spend provider quota.
"""

import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Optional


@dataclass
class _Entry:
    value: Any
    stored_at: float


class ResponseCache:
    """
    TTL cache keyed by request kind and parameters.

    Expired entries are dropped when read. Once ``max_size`` is reached the
    oldest entry is evicted. A ``ttl_seconds`` of 0 disables the cache.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        max_size: int = 1000,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock or time.time
        self._lock = Lock()
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0 and self.max_size > 0

    @staticmethod
    def make_key(kind: str, params: dict) -> str:
        return f"{kind}_{json.dumps(params, sort_keys=True, default=str)}"

    def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = _Entry(value=value, stored_at=self._clock())
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
