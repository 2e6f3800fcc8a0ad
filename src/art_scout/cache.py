"""Response cache in front of the aggregator"""

import asyncio
import contextlib
import hashlib
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

from cachetools import TTLCache
from loguru import logger


def make_cache_key(action: str, limit: int, contracts: Iterable[str]) -> str:
    """Pure function of the logical query; contract order and case do not matter"""
    normalized = sorted({c.strip().lower() for c in contracts})
    digest = hashlib.sha256(",".join(normalized).encode("utf-8")).hexdigest()[:16]
    return f"{action}:{limit}:{digest}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    created_at: float


class ResponseCache:
    """Time-boxed memoization keyed by query shape.

    Entries are immutable once written. Reads check age against the TTL
    themselves; the periodic sweep only bounds memory. Writers are
    serialised per key, and ``invalidate_all`` drops everything, including
    results that were still being computed when it ran.
    """

    def __init__(
        self,
        ttl: float = 300,
        sweep_interval: float = 600,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl, timer=clock)
        self._lock = asyncio.Lock()
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._generation = 0
        self._sweeper: Optional[asyncio.Task] = None
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at < self.ttl

    def _key_lock(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        return lock

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Fresh entry for key, or None"""
        async with self._lock:
            entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry):
            return None
        return entry

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[Any]],
        force_refresh: bool = False,
        store_if: Callable[[Any], bool] = bool,
    ) -> Tuple[Any, bool]:
        """
        Return (payload, from_cache).

        On a miss, an expired entry or a forced refresh, ``compute_fn`` runs
        and its result is stored when ``store_if(result)`` is true.
        """
        if not force_refresh:
            entry = await self.get(key)
            if entry is not None:
                self.hits += 1
                logger.debug(f"Cache hit for {key}")
                return entry.payload, True

        async with self._key_lock(key):
            if not force_refresh:
                # Another writer may have filled it while we waited
                entry = await self.get(key)
                if entry is not None:
                    self.hits += 1
                    logger.debug(f"Cache hit for {key} after wait")
                    return entry.payload, True

            self.misses += 1
            generation = self._generation
            payload = await compute_fn()

            if store_if(payload):
                async with self._lock:
                    if generation == self._generation:
                        self._entries[key] = CacheEntry(key, payload, self._clock())
                    else:
                        logger.debug(f"Cache invalidated while computing {key}; not storing")
            return payload, False

    async def invalidate_all(self) -> None:
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generation += 1
        logger.info(f"Response cache invalidated ({count} entries dropped)")

    async def sweep(self) -> int:
        """Evict everything older than the TTL; returns the number evicted"""
        async with self._lock:
            expired = self._entries.expire()
            evicted = len(expired) if expired else 0
            for key in list(self._key_locks):
                if key not in self._entries and not self._key_locks[key].locked():
                    del self._key_locks[key]
        if evicted:
            logger.debug(f"Cache sweep evicted {evicted} entries")
        return evicted

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e!r}")

    def start(self) -> None:
        """Start the background sweep on the running loop"""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.debug(f"Cache sweeper started (every {self.sweep_interval}s)")

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
