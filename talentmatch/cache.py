"""Short-lived current-user cache.

Authenticated endpoints resolve the caller from an access token, which costs a
round trip to the auth provider. Bursts of requests from the same browser
(page load fan-out) share one lookup through this cache.

Eviction is expire-then-size-cap: ``cachetools.TTLCache`` drops expired
entries first and only then evicts the least recently used live entry once
``maxsize`` is reached. Built once per process in the app lifespan and
handed to request handlers through ``app.state``.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Generic, TypeVar

from cachetools import TTLCache

from .metrics import USER_CACHE_TOTAL

V = TypeVar("V")


class UserCache(Generic[V]):
    def __init__(
        self,
        *,
        ttl_seconds: float = 3.0,
        max_entries: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._entries: TTLCache = TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=timer
        )

    def get(self, key: str) -> V | None:
        value = self._entries.get(key)
        USER_CACHE_TOTAL.labels(result="hit" if value is not None else "miss").inc()
        return value

    def put(self, key: str, value: V) -> None:
        self._entries[key] = value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def expire(self) -> None:
        """Drop expired entries now instead of on next access."""
        self._entries.expire()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
