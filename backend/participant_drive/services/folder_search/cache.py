"""In-memory two-tier cache for folder resolution.

``resolved`` maps a participant name (case-insensitive) to the folder that
matched it exactly. ``children`` maps a parent folder id to its complete
listing of child folders. Both tiers share one TTL and are bounded with
least-recently-accessed eviction.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Generic, Iterable, Optional, Sequence, Tuple, TypeVar

from .models import CacheStats, FolderRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_RESOLVED = 1000
DEFAULT_MAX_CHILDREN = 100
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


@dataclass
class CacheEntry(Generic[T]):
    value: T
    created_at: float
    last_accessed_at: float
    access_count: int = 0


def _valid_record(value: object) -> bool:
    return isinstance(value, FolderRecord)


def _valid_listing(value: object) -> bool:
    return isinstance(value, tuple) and all(isinstance(item, FolderRecord) for item in value)


class FolderCache:
    """Process-wide folder cache. Construct once and share by reference."""

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_resolved: Optional[int] = DEFAULT_MAX_RESOLVED,
        max_children: Optional[int] = DEFAULT_MAX_CHILDREN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = float(ttl_seconds)
        self._max_resolved = max_resolved
        self._max_children = max_children
        self._clock = clock
        self._resolved: OrderedDict[str, CacheEntry[FolderRecord]] = OrderedDict()
        self._children: OrderedDict[str, CacheEntry[Tuple[FolderRecord, ...]]] = OrderedDict()
        self._last_update: Optional[datetime] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @staticmethod
    def _name_key(name: str) -> str:
        return (name or "").strip().lower()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self._ttl

    def _read(
        self,
        store: OrderedDict[str, CacheEntry[T]],
        key: str,
        is_valid: Callable[[object], bool],
    ) -> Optional[T]:
        entry = store.get(key)
        if entry is None:
            return None

        now = self._clock()
        if self._is_expired(entry, now):
            del store[key]
            return None

        if not is_valid(entry.value):
            logger.warning("Dropping malformed folder cache entry", extra={"cache_key": key})
            del store[key]
            return None

        entry.access_count += 1
        entry.last_accessed_at = now
        store.move_to_end(key)
        return entry.value

    def _write(
        self,
        store: OrderedDict[str, CacheEntry[T]],
        key: str,
        value: T,
        capacity: Optional[int],
    ) -> None:
        now = self._clock()
        store[key] = CacheEntry(value=value, created_at=now, last_accessed_at=now)
        store.move_to_end(key)
        self._last_update = datetime.now(timezone.utc)
        self._enforce_capacity(store, capacity)

    def _enforce_capacity(self, store: OrderedDict[str, CacheEntry[T]], capacity: Optional[int]) -> int:
        if capacity is None or len(store) <= capacity:
            return 0

        # Reads and writes move keys to the end, so the front is least recently used.
        overflow = len(store) - capacity
        for _ in range(overflow):
            store.popitem(last=False)
        logger.debug("Evicted %s least recently used folder cache entries", overflow)
        return overflow

    # Resolved names ----------------------------------------------------
    def get_resolved(self, name: str) -> Optional[FolderRecord]:
        return self._read(self._resolved, self._name_key(name), _valid_record)

    def set_resolved(self, name: str, record: FolderRecord) -> None:
        self._write(self._resolved, self._name_key(name), record, self._max_resolved)

    # Children listings -------------------------------------------------
    def get_children(self, parent_id: str) -> Optional[Tuple[FolderRecord, ...]]:
        return self._read(self._children, parent_id, _valid_listing)

    def set_children(self, parent_id: str, records: Iterable[FolderRecord]) -> None:
        self._write(self._children, parent_id, tuple(records), self._max_children)

    # Maintenance -------------------------------------------------------
    def clear(self) -> None:
        self._resolved.clear()
        self._children.clear()

    def sweep_expired(self) -> int:
        """Drop expired entries from both tiers, then re-apply capacity limits."""

        now = self._clock()
        removed = 0
        for store in (self._resolved, self._children):
            expired_keys = [key for key, entry in store.items() if self._is_expired(entry, now)]
            for key in expired_keys:
                del store[key]
            removed += len(expired_keys)

        removed += self._enforce_capacity(self._resolved, self._max_resolved)
        removed += self._enforce_capacity(self._children, self._max_children)
        if removed:
            logger.debug("Folder cache sweep removed %s entries", removed)
        return removed

    def stats(self) -> CacheStats:
        now = self._clock()
        resolved_entries = list(self._resolved.values())
        children_entries = list(self._children.values())
        is_any_expired = any(
            self._is_expired(entry, now) for entry in resolved_entries + children_entries
        )
        return CacheStats(
            resolved_count=len(resolved_entries),
            children_count=len(children_entries),
            is_any_expired=is_any_expired,
            last_update=self._last_update,
            max_resolved=self._max_resolved,
            max_children=self._max_children,
            ttl_seconds=self._ttl,
            resolved_average_access=_average_access(resolved_entries),
            children_average_access=_average_access(children_entries),
        )


def _average_access(entries: Sequence[CacheEntry]) -> float:
    if not entries:
        return 0.0
    return sum(entry.access_count for entry in entries) / len(entries)


class FolderCacheSweeper:
    """Periodically calls :meth:`FolderCache.sweep_expired` on the running loop."""

    def __init__(self, cache: FolderCache, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        self._cache = cache
        self._interval = interval_seconds
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running or self._interval <= 0:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event))

    async def stop(self) -> None:
        if self._task is None or self._stop_event is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self._stop_event = None

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                self._cache.sweep_expired()
