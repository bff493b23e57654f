from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from cache.config import cache_cleanup_interval_s, cache_default_ttl_s, cache_max_entries


logger = logging.getLogger(__name__)

Validator = Callable[[Any], bool]

_COUNTERS = ("hits", "misses", "sets", "deletes", "evictions")


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    ttl: float
    last_accessed: float
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


@dataclass
class CacheStore:
    """
    In-process key/value cache with per-entry TTL, LRU eviction and in-flight request
    de-duplication.

    Notes:
    - Meant to run on one asyncio loop; the pending-request map is checked and set in
      one synchronous step, so there is no lock.
    - LRU order lives in `_access_order`; eviction pops its head instead of scanning.
    - `clock` is injectable so TTL behaviour can be tested without sleeping.
    """

    max_entries: int = field(default_factory=cache_max_entries)
    default_ttl: float = field(default_factory=cache_default_ttl_s)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _entries: dict[str, CacheEntry] = field(default_factory=dict, repr=False)
    _access_order: "OrderedDict[str, None]" = field(default_factory=OrderedDict, repr=False)
    _pending: "dict[str, asyncio.Task[Any]]" = field(default_factory=dict, repr=False)
    _counters: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(_COUNTERS, 0), repr=False
    )
    _cleanup_task: "asyncio.Task[None] | None" = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {self.max_entries}")

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def get(self, key: str, validator: Validator | None = None) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self._counters["misses"] += 1
            return None

        now = self.clock()
        if entry.is_expired(now):
            self._remove(key)
            self._counters["misses"] += 1
            return None

        if validator is not None and not validator(entry.value):
            # Reader and writer disagree on the value's shape; treat as a miss.
            logger.debug("Cache entry %s failed validation; evicting", key)
            self._remove(key)
            self._counters["misses"] += 1
            return None

        entry.last_accessed = now
        entry.access_count += 1
        self._access_order.move_to_end(key)
        self._counters["hits"] += 1
        return entry.value

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self.clock()):
            self._remove(key)
            return False
        return True

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        if key not in self._entries:
            while len(self._entries) >= self.max_entries:
                self._evict_lru()

        now = self.clock()
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            ttl=float(self.default_ttl if ttl is None else ttl),
            last_accessed=now,
        )
        self._access_order[key] = None
        self._access_order.move_to_end(key)
        self._counters["sets"] += 1

    def delete(self, key: str) -> bool:
        if key not in self._entries:
            return False
        self._remove(key)
        self._counters["deletes"] += 1
        return True

    def clear(self, pattern: str | None = None) -> int:
        """
        Drop every entry, or only keys matching a shell-style wildcard (e.g. "clustering:*").
        """
        if pattern is None:
            n = len(self._entries)
            self._entries.clear()
            self._access_order.clear()
            self._counters["deletes"] += n
            logger.info("Cache cleared (%d entries)", n)
            return n

        doomed = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
        for k in doomed:
            self._remove(k)
        self._counters["deletes"] += len(doomed)
        logger.info("Cache cleared %d entries matching %r", len(doomed), pattern)
        return len(doomed)

    def cleanup(self) -> int:
        now = self.clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in expired:
            self._remove(k)
        if expired:
            logger.info("Cache cleanup removed %d expired entries", len(expired))
        return len(expired)

    async def get_or_compute_deduplicated(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl: float | None = None,
        validator: Validator | None = None,
    ) -> Any:
        """
        Return the cached value for `key`, or join / start the single in-flight computation.

        Every concurrent caller awaits the same task. A failure reaches all of them and is
        not cached; the pending slot is freed either way so the next call retries.
        """
        cached = self.get(key, validator)
        if cached is not None:
            return cached

        pending = self._pending.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._compute_and_store(key, compute, ttl))
            self._pending[key] = pending
        # Shielded: one waiter being cancelled must not cancel the shared computation.
        return await asyncio.shield(pending)

    async def _compute_and_store(
        self, key: str, compute: Callable[[], Awaitable[Any]], ttl: float | None
    ) -> Any:
        try:
            value = await compute()
            self.set(key, value, ttl)
            return value
        finally:
            self._pending.pop(key, None)

    def pending_count(self) -> int:
        return len(self._pending)

    def start_cleanup(self, interval_s: float | None = None) -> None:
        """
        Start periodic expiry cleanup on the running event loop.
        """
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        interval = float(interval_s) if interval_s is not None else cache_cleanup_interval_s()
        loop = asyncio.get_running_loop()
        self._cleanup_task = loop.create_task(self._cleanup_loop(interval))

    def stop(self) -> None:
        task = self._cleanup_task
        if task is not None and not task.done():
            task.cancel()
        self._cleanup_task = None

    async def _cleanup_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            self.cleanup()

    def stats(self) -> dict[str, Any]:
        c = self._counters
        lookups = c["hits"] + c["misses"]
        return {
            **c,
            "size": len(self._entries),
            "maxSize": self.max_entries,
            "pending": len(self._pending),
            "hitRate": (c["hits"] / lookups) if lookups else 0.0,
        }

    def reset_stats(self) -> None:
        self._counters = dict.fromkeys(_COUNTERS, 0)

    def _evict_lru(self) -> None:
        oldest, _ = self._access_order.popitem(last=False)
        self._entries.pop(oldest, None)
        self._counters["evictions"] += 1
        logger.debug("Cache evicted least-recently-used key %s", oldest)

    def _remove(self, key: str) -> None:
        self._entries.pop(key, None)
        self._access_order.pop(key, None)
