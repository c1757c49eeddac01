"""Normalized object cache with TTL, explicit invalidation and LRU bound.

Architecture:
    Raw representations are stored under their request URL, and every
    embedded resource that carries a self link is also stored under its own
    self href. A lookup by href can therefore be answered from any earlier
    response that embedded the resource.

Staleness:
    An entry is stale once its time-to-live has elapsed or after an explicit
    invalidation. Stale entries are still returned by ``get``; the
    CachePolicy in use decides whether they may be served provisionally.

Concurrency:
    Every method is synchronous, so each call runs to completion on the
    event loop before any other coroutine can touch the same key.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from ..models import hal
from .telemetry import log_cache_invalidated


@dataclass
class CacheEntry:
    """One cached raw representation."""

    key: str
    raw: Any
    timestamp: float
    time_to_live: float
    resource_types: frozenset[str]
    invalidated: bool = False
    _clock: Callable[[], float] = time.monotonic

    @property
    def age(self) -> float:
        return self._clock() - self.timestamp

    @property
    def is_expired(self) -> bool:
        return self.age > self.time_to_live

    @property
    def is_stale(self) -> bool:
        return self.invalidated or self.is_expired


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.stale_hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits + self.stale_hits) / total


def collect_resource_types(raw: Any) -> frozenset[str]:
    """Type tags of a representation, or of the elements of a collection."""
    page = hal.embedded_page(raw)
    if page is not None:
        tags = (hal.resource_type(el) for el in page if isinstance(el, dict))
        return frozenset(tag for tag in tags if tag)
    if isinstance(raw, dict):
        tag = hal.resource_type(raw)
        return frozenset({tag}) if tag else frozenset()
    return frozenset()


class ObjectCache:
    """In-memory store of raw representations keyed by URL."""

    def __init__(
        self,
        *,
        time_to_live: float = 15 * 60.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._time_to_live = time_to_live
        self._max_entries = max_entries
        self._clock = clock
        self._stats = CacheStats()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        """Entry for ``key``, stale or not; None when absent."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return None
        self._entries.move_to_end(key)
        if entry.is_stale:
            self._stats.stale_hits += 1
        else:
            self._stats.hits += 1
        return entry

    def has_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_stale

    def put(
        self,
        key: str,
        raw: Any,
        resource_types: Iterable[str] | None = None,
        *,
        time_to_live: float | None = None,
    ) -> CacheEntry:
        """Store ``raw`` as-is under ``key``, replacing any previous entry."""
        if key not in self._entries and len(self._entries) >= self._max_entries:
            self._evict_oldest()
        entry = CacheEntry(
            key=key,
            raw=raw,
            timestamp=self._clock(),
            time_to_live=self._time_to_live if time_to_live is None else time_to_live,
            resource_types=frozenset(resource_types)
            if resource_types is not None
            else collect_resource_types(raw),
            _clock=self._clock,
        )
        self._entries[key] = entry
        self._entries.move_to_end(key)
        return entry

    def add_to_cache(self, raw: Any, key: str | None = None) -> list[str]:
        """Store a response and every embedded resource that has a self link.

        Returns the keys written, the primary key first.
        """
        written: list[str] = []
        primary = key or (hal.self_href(raw) if isinstance(raw, dict) else None)
        if primary is not None:
            self.put(primary, raw)
            written.append(primary)
        self._normalize_embedded(raw, written)
        return written

    def _normalize_embedded(self, raw: Any, written: list[str]) -> None:
        if isinstance(raw, list):
            for element in raw:
                self._normalize_one(element, written)
            return
        if not isinstance(raw, dict):
            return
        block = raw.get("_embedded")
        if not isinstance(block, dict):
            return
        for value in block.values():
            if isinstance(value, list):
                for element in value:
                    self._normalize_one(element, written)
            else:
                self._normalize_one(value, written)

    def _normalize_one(self, raw: Any, written: list[str]) -> None:
        if not isinstance(raw, dict):
            return
        href = hal.self_href(raw)
        if href is not None and href not in written:
            self.put(href, raw)
            written.append(href)
        self._normalize_embedded(raw, written)

    def invalidate(self, key: str) -> bool:
        """Mark ``key`` stale. Missing keys are ignored; repeated calls are no-ops."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.invalidated = True
        log_cache_invalidated(scope="key", target=key, entries=1)
        return True

    def invalidate_by_type(self, resource_type: str) -> int:
        """Mark stale every entry holding ``resource_type``, collections included."""
        count = 0
        for entry in self._entries.values():
            if resource_type in entry.resource_types:
                entry.invalidated = True
                count += 1
        log_cache_invalidated(scope="type", target=resource_type, entries=count)
        return count

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Mark stale ``prefix`` itself and every key below it (query or path)."""
        prefix = prefix.rstrip("/")
        count = 0
        for key, entry in self._entries.items():
            if key == prefix or key.startswith((f"{prefix}?", f"{prefix}/")):
                entry.invalidated = True
                count += 1
        log_cache_invalidated(scope="prefix", target=prefix, entries=count)
        return count

    def remove(self, key: str) -> bool:
        """Drop ``key`` entirely."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def _evict_oldest(self) -> None:
        """Evict the least recently used entry."""
        if not self._entries:
            return
        self._entries.popitem(last=False)
        self._stats.evictions += 1

    def get_stats(self) -> CacheStats:
        self._stats.size = len(self._entries)
        self._stats.max_size = self._max_entries
        return self._stats
