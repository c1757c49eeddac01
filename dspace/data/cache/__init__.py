"""Cache layer: object cache, request tracking and remote data building."""

from .builder import RemoteDataBuildService
from .object_cache import CacheEntry, CacheStats, ObjectCache
from .request_tracker import RequestSnapshot, RequestTracker, TrackedRequest

__all__ = [
    "CacheEntry",
    "CacheStats",
    "ObjectCache",
    "RequestSnapshot",
    "RequestTracker",
    "TrackedRequest",
    "RemoteDataBuildService",
]
