"""Library configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class CachePolicy(str, Enum):
    """How lookups treat a stale cache entry.

    STALE_WHILE_REVALIDATE: emit the stale value as a provisional Success,
        then refetch and emit the fresh result.
    STRICT_REFETCH: ignore the stale value and refetch before emitting.
    """

    STALE_WHILE_REVALIDATE = "stale-while-revalidate"
    STRICT_REFETCH = "strict-refetch"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DataConfig:
    """Settings for a DSpaceDataAPI instance.

    Attributes:
        base_url: REST API root, e.g. ``https://demo.dspace.org/server/api``
        request_timeout: Total transport timeout per request, in seconds
        time_to_live: Seconds before a cache entry becomes stale
        cache_policy: Stale entry handling, applied system-wide
        max_cache_entries: LRU bound for the object cache
        endpoints: Link path to href overrides; relative hrefs are joined
            to ``base_url``
    """

    base_url: str
    request_timeout: float = 30.0
    time_to_live: float = 15 * 60.0
    cache_policy: CachePolicy = CachePolicy.STALE_WHILE_REVALIDATE
    max_cache_entries: int = 1000
    endpoints: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be a non-empty string")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.time_to_live < 0:
            raise ValueError("time_to_live must be >= 0")
        if self.max_cache_entries < 1:
            raise ValueError("max_cache_entries must be >= 1")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
