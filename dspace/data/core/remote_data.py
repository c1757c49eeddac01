"""Remote data wrapper: the asynchronous-state envelope returned by every lookup.

Architecture:
    A lookup is observed as an ordered sequence of immutable snapshots. Each
    snapshot is one of three variants:

    - Pending: request not yet dispatched (REQUEST_PENDING) or awaiting the
      response or nested links (RESPONSE_PENDING)
    - Success: payload may be present, never an error
    - Failed: error present, never a payload

    Variants carry only the fields valid for them, so an invalid combination
    such as "succeeded with an error" cannot be constructed.

Consumer contract:
    Never read ``payload`` without checking ``has_succeeded``. A missing
    payload is not an error by itself; it also occurs while pending and for
    an empty successful lookup.

See Also:
    - RemoteDataBuildService: produces RemoteDataStream instances
    - TrackedRequest: lifecycle source for the snapshots
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class RequestState(str, Enum):
    """Lifecycle state of a request or of a snapshot."""

    REQUEST_PENDING = "RequestPending"
    RESPONSE_PENDING = "ResponsePending"
    SUCCESS = "Success"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.SUCCESS, RequestState.FAILED)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ErrorInfo:
    """Failure description sufficient for a UI to render a generic error state."""

    status_code: int
    status_text: str
    message: str


class RemoteData(Generic[T]):
    """Common surface of the Pending, Success and Failed variants."""

    __slots__ = ()

    state: RequestState

    @property
    def is_request_pending(self) -> bool:
        return self.state is RequestState.REQUEST_PENDING

    @property
    def is_response_pending(self) -> bool:
        return self.state is RequestState.RESPONSE_PENDING

    @property
    def is_loading(self) -> bool:
        return not self.state.is_terminal

    @property
    def has_succeeded(self) -> bool:
        return self.state is RequestState.SUCCESS

    @property
    def has_failed(self) -> bool:
        return self.state is RequestState.FAILED

    @staticmethod
    def pending(state: RequestState = RequestState.REQUEST_PENDING) -> Pending[Any]:
        return Pending(state)

    @staticmethod
    def success(payload: U | None, *, is_stale: bool = False) -> Success[U]:
        return Success(payload, is_stale=is_stale)

    @staticmethod
    def failed(error: ErrorInfo) -> Failed[Any]:
        return Failed(error)

    def map(self, fn: Callable[[T], U]) -> RemoteData[U]:
        """Apply ``fn`` to a successful, non-empty payload."""
        return self  # type: ignore[return-value]


@dataclass(frozen=True)
class Pending(RemoteData[T]):
    """Lookup in flight."""

    state: RequestState = RequestState.REQUEST_PENDING

    def __post_init__(self) -> None:
        if self.state.is_terminal:
            raise ValueError(f"Pending snapshot cannot have terminal state {self.state}")

    @property
    def payload(self) -> None:
        return None

    @property
    def error(self) -> None:
        return None


@dataclass(frozen=True)
class Success(RemoteData[T]):
    """Lookup settled successfully.

    ``is_stale`` marks a provisional value served from an expired or
    invalidated cache entry while a refresh is in flight.
    """

    state: ClassVar[RequestState] = RequestState.SUCCESS

    payload: T | None = None
    is_stale: bool = False

    @property
    def error(self) -> None:
        return None

    def map(self, fn: Callable[[T], U]) -> RemoteData[U]:
        if self.payload is None:
            return Success(None, is_stale=self.is_stale)
        return Success(fn(self.payload), is_stale=self.is_stale)


@dataclass(frozen=True)
class Failed(RemoteData[T]):
    """Lookup settled with an error."""

    state: ClassVar[RequestState] = RequestState.FAILED

    error: ErrorInfo

    @property
    def payload(self) -> None:
        return None


class RemoteDataStream(Generic[T]):
    """Cold, replay-per-subscriber sequence of RemoteData snapshots.

    Nothing happens until the stream is iterated; every ``async for`` runs the
    producer again, so subscribers never share an iterator. Deduplication of
    the underlying transport call happens one layer down, in RequestTracker.

    Example:
        >>> stream = service.find_by_href(href)
        >>> async for rd in stream:
        ...     if rd.has_succeeded:
        ...         render(rd.payload)
    """

    def __init__(self, producer: Callable[[], AsyncIterator[RemoteData[T]]]) -> None:
        self._producer = producer

    def __aiter__(self) -> AsyncIterator[RemoteData[T]]:
        return self._producer().__aiter__()

    @classmethod
    def of(cls, *snapshots: RemoteData[T]) -> RemoteDataStream[T]:
        """Stream that replays fixed snapshots."""

        async def produce() -> AsyncIterator[RemoteData[T]]:
            for snapshot in snapshots:
                yield snapshot

        return cls(produce)

    def map(self, fn: Callable[[T], U]) -> RemoteDataStream[U]:
        """Stream whose successful payloads are transformed by ``fn``."""

        async def produce() -> AsyncIterator[RemoteData[U]]:
            async with aclosing(self.__aiter__()) as snapshots:
                async for snapshot in snapshots:
                    yield snapshot.map(fn)

        return RemoteDataStream(produce)

    def transform(
        self, fn: Callable[[RemoteData[T]], RemoteData[U]]
    ) -> RemoteDataStream[U]:
        """Stream whose snapshots are replaced by ``fn(snapshot)``."""

        async def produce() -> AsyncIterator[RemoteData[U]]:
            async with aclosing(self.__aiter__()) as snapshots:
                async for snapshot in snapshots:
                    yield fn(snapshot)

        return RemoteDataStream(produce)

    def flat_map(
        self, fn: Callable[[RemoteData[T]], RemoteDataStream[U]]
    ) -> RemoteDataStream[U]:
        """Stream that emits, for each snapshot, every snapshot of ``fn(snapshot)``.

        Inner streams run one after another: the inner stream of a snapshot
        completes before the next outer snapshot is handled.
        """

        async def produce() -> AsyncIterator[RemoteData[U]]:
            async with aclosing(self.__aiter__()) as snapshots:
                async for snapshot in snapshots:
                    async with aclosing(fn(snapshot).__aiter__()) as inner:
                        async for inner_snapshot in inner:
                            yield inner_snapshot

        return RemoteDataStream(produce)

    async def collect(self) -> list[RemoteData[T]]:
        """Run the stream to completion and return every snapshot."""
        return [snapshot async for snapshot in self]

    async def last(self) -> RemoteData[T]:
        """Run the stream to completion and return the final snapshot."""
        final: RemoteData[T] | None = None
        async for snapshot in self:
            final = snapshot
        if final is None:
            raise ValueError("Stream completed without emitting a snapshot")
        return final

    async def first_settled(self, *, include_stale: bool = False) -> RemoteData[T]:
        """Return the first terminal snapshot and stop observing.

        Stale provisional values are skipped unless ``include_stale`` is set.
        """
        async with aclosing(self.__aiter__()) as snapshots:
            async for snapshot in snapshots:
                if not snapshot.state.is_terminal:
                    continue
                if isinstance(snapshot, Success) and snapshot.is_stale and not include_stale:
                    continue
                return snapshot
        raise ValueError("Stream completed without a settled snapshot")
