from __future__ import annotations

import time
from typing import Any, Callable

from cachetools import TTLCache

DEFAULT_TTL_SECONDS = 5 * 60

# cachetools drops an entry once its age reaches the ttl; entries stay fresh
# through age == ttl here, so the backing store keeps them slightly longer.
_BACKSTOP_GRACE_SECONDS = 1.0


class ResponseCache:
    """
    Short-lived memoization of API results keyed by request signature.

    An entry is fresh while its age is at most `ttl_seconds`. Expiry is lazy:
    a stale entry is dropped when it is next looked up. At most `maxsize`
    entries are held; when full, the least recently used one is evicted.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = float(ttl_seconds)
        self.maxsize = max(1, int(maxsize))
        self._timer = timer
        self._data: TTLCache[str, tuple[Any, float]] = TTLCache(
            maxsize=self.maxsize,
            ttl=self.ttl_seconds + _BACKSTOP_GRACE_SECONDS,
            timer=timer,
        )

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        entry = self._data.get(key)  # type: ignore[arg-type]
        return entry is not None and self._is_fresh(entry[1])

    def _is_fresh(self, stored_at: float) -> bool:
        return self._timer() - stored_at <= self.ttl_seconds

    def set(self, key: str, value: Any) -> None:
        self._data[key] = (value, self._timer())

    def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            self._data.expire()
            return None
        value, stored_at = entry
        if not self._is_fresh(stored_at):
            self._data.pop(key, None)
            self._data.expire()
            return None
        return value

    def clear(self) -> None:
        self._data.clear()

    def invalidate(self, pattern: str) -> int:
        """Drop every entry whose key contains `pattern`; returns how many were dropped."""
        doomed = [k for k in list(self._data.keys()) if pattern in k]
        for k in doomed:
            self._data.pop(k, None)
        return len(doomed)
