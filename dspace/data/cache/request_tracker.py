"""Request tracking: deduplication and lifecycle of fetches per request key.

Architecture:
    A TrackedRequest is the unit of deduplication. Its key is the fully
    resolved request URL, query string included, so two lookups with the same
    resource and options share one transport call.

    Lifecycle (monotonic, recorded as a snapshot history):
        REQUEST_PENDING -> RESPONSE_PENDING -> SUCCESS | FAILED

    Every subscriber replays the history from the start and then waits for
    further transitions, so all subscribers of one request observe the same
    sequence.

Guarantees:
    - At most one in-flight TrackedRequest per key
    - A fresh cache entry answers without a transport call
    - After invalidation of a key the next lookup fetches again; a request
      still in flight for that key is detached and never writes to the cache
    - Failures are not retried; re-invoking the lookup fetches again
    - The transport call is cancelled only when its last subscriber leaves
      while it is still pending

See Also:
    - ObjectCache: receives successful responses
    - RemoteDataBuildService: turns request snapshots into RemoteData
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass
from time import perf_counter
from typing import Any

from ..core.exceptions import DataError
from ..core.remote_data import ErrorInfo, RequestState
from ..io.transport import RawResponse
from .object_cache import ObjectCache
from .telemetry import (
    log_request_cancelled,
    log_request_dispatched,
    log_request_reused,
    log_request_settled,
)

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[RawResponse]]

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

CANCELLED_ERROR = ErrorInfo(status_code=0, status_text="Cancelled", message="Request cancelled")


@dataclass(frozen=True)
class RequestSnapshot:
    """State of a tracked request at one point of its lifecycle.

    Attributes:
        key: Tracked request key
        state: Lifecycle state
        payload: Raw response payload (SUCCESS only)
        error: Failure details (FAILED only)
        status_code: HTTP status of the response, when one was received
    """

    key: str
    state: RequestState
    payload: Any = None
    error: ErrorInfo | None = None
    status_code: int | None = None


class TrackedRequest:
    """One logical fetch for a key, observable by any number of subscribers."""

    def __init__(
        self,
        key: str,
        href: str,
        method: str = "GET",
        *,
        initial: RequestSnapshot | None = None,
    ) -> None:
        self.key = key
        self.href = href
        self.method = method
        self._history: list[RequestSnapshot] = [
            initial or RequestSnapshot(key=key, state=RequestState.REQUEST_PENDING)
        ]
        self._changed = asyncio.Event()
        self._subscribers = 0
        self._task: asyncio.Task[None] | None = None
        self.superseded = False
        self._on_abandoned: Callable[[TrackedRequest], None] | None = None

    def __repr__(self) -> str:
        return f"TrackedRequest(key={self.key!r}, state={self.state.value})"

    @property
    def snapshot(self) -> RequestSnapshot:
        return self._history[-1]

    @property
    def state(self) -> RequestState:
        return self.snapshot.state

    @property
    def is_settled(self) -> bool:
        return self.state.is_terminal

    @property
    def history(self) -> tuple[RequestSnapshot, ...]:
        return tuple(self._history)

    @property
    def subscriber_count(self) -> int:
        return self._subscribers

    async def observe(self) -> AsyncIterator[RequestSnapshot]:
        """Replay the snapshot history, then follow new transitions until settled."""
        self._subscribers += 1
        try:
            index = 0
            while True:
                while index < len(self._history):
                    snapshot = self._history[index]
                    index += 1
                    yield snapshot
                    if snapshot.state.is_terminal:
                        return
                changed = self._changed
                await changed.wait()
        finally:
            self._subscribers -= 1
            if self._subscribers == 0 and not self.is_settled and self._on_abandoned:
                self._on_abandoned(self)

    async def wait_settled(self) -> RequestSnapshot:
        async with aclosing(self.observe()) as snapshots:
            async for snapshot in snapshots:
                if snapshot.state.is_terminal:
                    return snapshot
        return self.snapshot

    def _transition(self, snapshot: RequestSnapshot) -> None:
        if self.is_settled:
            raise RuntimeError(f"{self!r} is already settled")
        self._history.append(snapshot)
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    def _mark_dispatched(self) -> None:
        self._transition(RequestSnapshot(key=self.key, state=RequestState.RESPONSE_PENDING))

    def _succeed(self, payload: Any, status_code: int | None) -> None:
        self._transition(
            RequestSnapshot(
                key=self.key,
                state=RequestState.SUCCESS,
                payload=payload,
                status_code=status_code,
            )
        )

    def _fail(self, error: ErrorInfo) -> None:
        self._transition(
            RequestSnapshot(
                key=self.key,
                state=RequestState.FAILED,
                error=error,
                status_code=error.status_code or None,
            )
        )


class RequestTracker:
    """Registry of tracked requests, keyed by request URL."""

    def __init__(self, cache: ObjectCache) -> None:
        self._cache = cache
        self._requests: dict[str, TrackedRequest] = {}
        self._detached: set[TrackedRequest] = set()
        self._mutation_ids = itertools.count(1)

    def get(self, key: str) -> TrackedRequest | None:
        return self._requests.get(key)

    def is_pending(self, key: str) -> bool:
        tracked = self._requests.get(key)
        return tracked is not None and not tracked.is_settled

    def pending_keys(self) -> list[str]:
        return [key for key, tracked in self._requests.items() if not tracked.is_settled]

    def get_or_create(
        self,
        key: str,
        fetch_fn: FetchFn,
        *,
        href: str | None = None,
        method: str = "GET",
    ) -> TrackedRequest:
        """Return the live request for ``key`` or start a new one.

        GET lookups reuse a pending request, or answer from a fresh cache
        entry without a transport call. Mutating methods always start a new,
        uniquely keyed request. Must be called from a running event loop.
        """
        method = method.upper()
        href = href or key
        if method in MUTATING_METHODS:
            key = f"{method} {key} #{next(self._mutation_ids)}"
            return self._start(key, href, method, fetch_fn)

        existing = self._requests.get(key)
        if existing is not None and not existing.is_settled:
            log_request_reused(key=key, state=existing.state, from_cache=False)
            return existing

        entry = self._cache.get(key)
        if entry is not None and not entry.is_stale:
            tracked = TrackedRequest(
                key,
                href,
                method,
                initial=RequestSnapshot(key=key, state=RequestState.SUCCESS, payload=entry.raw),
            )
            self._requests[key] = tracked
            log_request_reused(key=key, state=tracked.state, from_cache=True)
            return tracked

        return self._start(key, href, method, fetch_fn)

    def _start(self, key: str, href: str, method: str, fetch_fn: FetchFn) -> TrackedRequest:
        tracked = TrackedRequest(key, href, method)
        tracked._on_abandoned = self._abandon
        self._requests[key] = tracked
        tracked._task = asyncio.create_task(self._execute(tracked, fetch_fn))
        return tracked

    async def _execute(self, tracked: TrackedRequest, fetch_fn: FetchFn) -> None:
        tracked._mark_dispatched()
        log_request_dispatched(key=tracked.key, method=tracked.method, href=tracked.href)
        started = perf_counter()
        try:
            response = await fetch_fn()
        except asyncio.CancelledError:
            if not tracked.is_settled:
                tracked._fail(CANCELLED_ERROR)
            raise
        except DataError as e:
            self._settle_failed(tracked, e.to_error_info(), started)
            return
        except Exception as e:
            logger.error(f"Unexpected error fetching {tracked.href}: {e}", exc_info=True)
            self._settle_failed(
                tracked,
                ErrorInfo(status_code=500, status_text="Internal Server Error", message=str(e)),
                started,
            )
            return

        if tracked.method in MUTATING_METHODS:
            self._requests.pop(tracked.key, None)
            if isinstance(response.payload, dict):
                self._cache.add_to_cache(response.payload)
        elif tracked.superseded:
            logger.debug(f"Response for {tracked.key} arrived after invalidation, not cached")
        elif response.payload is None:
            self._cache.put(tracked.key, None)
        else:
            self._cache.add_to_cache(response.payload, key=tracked.key)
        tracked._succeed(response.payload, response.status_code)
        log_request_settled(
            key=tracked.key,
            state=RequestState.SUCCESS,
            latency_ms=(perf_counter() - started) * 1000.0,
        )

    def _settle_failed(self, tracked: TrackedRequest, error: ErrorInfo, started: float) -> None:
        if tracked.method in MUTATING_METHODS:
            self._requests.pop(tracked.key, None)
        tracked._fail(error)
        log_request_settled(
            key=tracked.key,
            state=RequestState.FAILED,
            latency_ms=(perf_counter() - started) * 1000.0,
            error=error,
        )

    def _abandon(self, tracked: TrackedRequest) -> None:
        """Cancel a pending request that lost its last subscriber."""
        if self._requests.get(tracked.key) is tracked:
            del self._requests[tracked.key]
        if tracked._task is not None and not tracked._task.done():
            tracked._task.cancel()
        if not tracked.is_settled:
            tracked._fail(CANCELLED_ERROR)
        log_request_cancelled(key=tracked.key)

    def invalidate(self, key: str) -> None:
        """Force the next lookup of ``key`` to fetch again.

        A request still pending for ``key`` is detached: its subscribers get
        its result, but the response is not written to the cache, since it
        may predate the change that caused the invalidation.
        """
        self._cache.invalidate(key)
        self._detach(key)

    def remove(self, key: str) -> None:
        """Forget ``key`` entirely, e.g. after the resource was deleted."""
        self._cache.remove(key)
        self._detach(key)

    def _detach(self, key: str) -> None:
        tracked = self._requests.pop(key, None)
        if tracked is None or tracked.is_settled:
            return
        tracked.superseded = True
        if tracked._task is not None and not tracked._task.done():
            self._detached.add(tracked)
            tracked._task.add_done_callback(lambda _: self._detached.discard(tracked))

    def invalidate_by_type(self, resource_type: str) -> int:
        return self._cache.invalidate_by_type(resource_type)

    def invalidate_by_prefix(self, prefix: str) -> int:
        for key in [key for key in self._requests if key.startswith(prefix)]:
            self._detach(key)
        return self._cache.invalidate_by_prefix(prefix)

    async def cancel_all(self) -> None:
        """Cancel every pending transport call (used on shutdown)."""
        pending = [tracked for tracked in self._requests.values() if not tracked.is_settled]
        pending.extend(tracked for tracked in self._detached if not tracked.is_settled)
        tasks = []
        for tracked in pending:
            if tracked._task is not None and not tracked._task.done():
                tracked._task.cancel()
                tasks.append(tracked._task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        # A task cancelled before its first step never reaches _execute's handler
        for tracked in pending:
            if not tracked.is_settled:
                tracked._fail(CANCELLED_ERROR)
            log_request_cancelled(key=tracked.key)
        self._requests.clear()
        self._detached.clear()
