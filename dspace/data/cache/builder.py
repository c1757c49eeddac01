"""Remote data builder: tracked requests + object cache + link following.

Architecture:
    RemoteDataBuildService turns one request into a RemoteDataStream. It holds
    no state of its own; the RequestTracker and ObjectCache own everything
    shared.

Snapshot sequence for one subscription:
    1. Stale-while-revalidate only: a provisional Success(is_stale=True)
       composed from the stale cache entry. Pending snapshots are suppressed
       after it.
    2. Pending snapshots mirroring the tracked request (REQUEST_PENDING,
       RESPONSE_PENDING), consecutive duplicates dropped.
    3. A RESPONSE_PENDING snapshot while links are being resolved.
    4. Exactly one terminal snapshot: Success or Failed.

Link resolution:
    For every FollowLinkConfig the relation is looked up on the raw payload
    (on every page element for collections):
    - ``_embedded`` relation: composed in place from the inline resource
    - ``_links`` relation: resolved through its own tracked request, with the
      descriptor's nested links applied recursively
    - absent relation: skipped
    The links of one payload are resolved concurrently. A failed link fails
    the whole composite (LinkResolutionError); callers needing partial
    success request the link separately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from contextlib import aclosing
from typing import Any

from pydantic import ValidationError

from ..core.config import CachePolicy
from ..core.exceptions import DataError, LinkResolutionError
from ..core.links import FollowLinkConfig
from ..core.remote_data import (
    ErrorInfo,
    Failed,
    Pending,
    RemoteData,
    RemoteDataStream,
    RequestState,
    Success,
)
from ..io.transport import RawResponse, Transport
from ..models import hal
from ..models.hal import HALResource
from ..models.paginated_list import PageInfo, PaginatedList
from ..models.registry import ResourceTypeRegistry
from .object_cache import ObjectCache
from .request_tracker import RequestTracker, TrackedRequest

logger = logging.getLogger(__name__)


class RemoteDataBuildService:
    """Builds RemoteDataStreams from hrefs, resolving links recursively."""

    def __init__(
        self,
        tracker: RequestTracker,
        cache: ObjectCache,
        transport: Transport,
        registry: ResourceTypeRegistry,
        *,
        policy: CachePolicy = CachePolicy.STALE_WHILE_REVALIDATE,
    ) -> None:
        self._tracker = tracker
        self._cache = cache
        self._transport = transport
        self._registry = registry
        self._policy = policy

    @property
    def policy(self) -> CachePolicy:
        return self._policy

    def build_from_href(
        self,
        href: str,
        links_to_follow: Sequence[FollowLinkConfig] = (),
        *,
        model: type[HALResource] | None = None,
    ) -> RemoteDataStream[Any]:
        """Stream for a single resource at ``href``."""
        return self._lookup(href, tuple(links_to_follow), as_list=False, model=model)

    def build_list_from_href(
        self,
        href: str,
        links_to_follow: Sequence[FollowLinkConfig] = (),
        *,
        model: type[HALResource] | None = None,
    ) -> RemoteDataStream[PaginatedList[Any]]:
        """Stream for a collection at ``href``; links apply to every element."""
        return self._lookup(href, tuple(links_to_follow), as_list=True, model=model)

    def build_from_request(
        self,
        href: str,
        method: str,
        body: Any = None,
        *,
        model: type[HALResource] | None = None,
        on_success: Callable[[RawResponse], None] | None = None,
    ) -> RemoteDataStream[Any]:
        """Stream for a mutating request.

        The request is sent when the stream is first iterated; later
        subscribers observe the same request instead of sending it again.
        ``on_success`` runs before the response is written to the cache.
        """
        tracked: TrackedRequest | None = None

        async def fetch() -> RawResponse:
            response = await self._transport.fetch(href, method, body)
            if on_success is not None:
                on_success(response)
            return response

        async def produce() -> AsyncIterator[RemoteData[Any]]:
            nonlocal tracked
            if tracked is None:
                tracked = self._tracker.get_or_create(href, fetch, href=href, method=method)
            observed = self._observe(tracked, (), as_list=False, model=model)
            async with aclosing(observed) as snapshots:
                async for snapshot in snapshots:
                    yield snapshot

        return RemoteDataStream(produce)

    def aggregate(self, streams: Iterable[RemoteDataStream[Any]]) -> RemoteDataStream[list[Any]]:
        """Combine streams into one that succeeds with every payload, in order.

        The first failure (in input order) fails the aggregate.
        """
        streams = list(streams)

        async def produce() -> AsyncIterator[RemoteData[list[Any]]]:
            yield Pending(RequestState.REQUEST_PENDING)
            finals = await asyncio.gather(*(stream.last() for stream in streams))
            for final in finals:
                if final.has_failed:
                    yield Failed(final.error)
                    return
            yield Success([final.payload for final in finals])

        return RemoteDataStream(produce)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _lookup(
        self,
        href: str,
        links: tuple[FollowLinkConfig, ...],
        *,
        as_list: bool | None,
        model: type[HALResource] | None,
    ) -> RemoteDataStream[Any]:
        async def fetch() -> RawResponse:
            return await self._transport.fetch(href)

        async def produce() -> AsyncIterator[RemoteData[Any]]:
            provisional = None
            if self._policy is CachePolicy.STALE_WHILE_REVALIDATE:
                provisional = await self._provisional(href, links, as_list=as_list, model=model)
                if provisional is not None:
                    yield provisional
            tracked = self._tracker.get_or_create(href, fetch, href=href)
            observed = self._observe(
                tracked, links, as_list=as_list, model=model, quiet=provisional is not None
            )
            async with aclosing(observed) as snapshots:
                async for snapshot in snapshots:
                    yield snapshot

        return RemoteDataStream(produce)

    async def _provisional(
        self,
        href: str,
        links: tuple[FollowLinkConfig, ...],
        *,
        as_list: bool | None,
        model: type[HALResource] | None,
    ) -> Success[Any] | None:
        entry = self._cache.get(href)
        if entry is None or not entry.is_stale:
            return None
        try:
            payload = await self._compose(
                entry.raw, links, as_list=as_list, model=model, provisional=True
            )
        except (DataError, ValidationError) as e:
            logger.debug(f"Stale entry for {href} not usable as provisional value: {e}")
            return None
        return Success(payload, is_stale=True)

    async def _observe(
        self,
        tracked: TrackedRequest,
        links: tuple[FollowLinkConfig, ...],
        *,
        as_list: bool | None,
        model: type[HALResource] | None,
        quiet: bool = False,
    ) -> AsyncIterator[RemoteData[Any]]:
        last_pending: RequestState | None = None
        async with aclosing(tracked.observe()) as snapshots:
            async for snapshot in snapshots:
                if not snapshot.state.is_terminal:
                    if not quiet and snapshot.state is not last_pending:
                        last_pending = snapshot.state
                        yield Pending(snapshot.state)
                    continue

                if snapshot.state is RequestState.FAILED:
                    yield Failed(snapshot.error)
                    return

                if links and not quiet and last_pending is not RequestState.RESPONSE_PENDING:
                    yield Pending(RequestState.RESPONSE_PENDING)
                try:
                    payload = await self._compose(
                        snapshot.payload, links, as_list=as_list, model=model
                    )
                except DataError as e:
                    logger.error(f"Composing {tracked.href} failed: {e}")
                    yield Failed(e.to_error_info())
                    return
                except ValidationError as e:
                    logger.error(f"Response of {tracked.href} does not match its model: {e}")
                    yield Failed(
                        ErrorInfo(
                            status_code=500,
                            status_text="Invalid Response",
                            message=f"Response of {tracked.href} could not be parsed",
                        )
                    )
                    return
                yield Success(payload)
                return

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    async def _compose(
        self,
        raw: Any,
        links: tuple[FollowLinkConfig, ...],
        *,
        as_list: bool | None,
        model: type[HALResource] | None,
        provisional: bool = False,
    ) -> Any:
        if raw is None:
            return None
        if as_list is None:
            as_list = hal.is_collection(raw)
        if not as_list:
            return await self._compose_resource(raw, links, model, provisional)

        elements = [el for el in (hal.embedded_page(raw) or []) if isinstance(el, dict)]
        page = await _gather_all(
            self._compose_resource(el, links, model, provisional) for el in elements
        )
        block = raw.get("page") if isinstance(raw, dict) else None
        return PaginatedList(
            page=list(page),
            page_info=PageInfo.from_rest(block, len(elements)),
            self_href=hal.self_href(raw) if isinstance(raw, dict) else None,
        )

    async def _compose_resource(
        self,
        raw: dict[str, Any],
        links: tuple[FollowLinkConfig, ...],
        model: type[HALResource] | None,
        provisional: bool,
    ) -> HALResource:
        resource = self._registry.parse(raw, fallback=model)
        if not links:
            return resource
        results = await _gather_all(self._follow(raw, link, provisional) for link in links)
        followed = {
            link.name: value for link, (found, value) in zip(links, results, strict=True) if found
        }
        if not followed:
            return resource
        return resource.model_copy(update={"followed": {**resource.followed, **followed}})

    async def _follow(
        self, raw: dict[str, Any], link: FollowLinkConfig, provisional: bool
    ) -> tuple[bool, Any]:
        """Resolve one relation. Returns ``(found, payload)``.

        Raises:
            LinkResolutionError: If the nested lookup fails
        """
        inline = hal.embedded(raw, link.name)
        if inline is not None:
            return True, await self._compose(
                inline, link.links_to_follow, as_list=None, model=None, provisional=provisional
            )

        href = hal.link_href(raw, link.name)
        if href is None:
            return False, None

        stream = self._lookup(href, link.links_to_follow, as_list=None, model=None)
        if provisional:
            final = await stream.first_settled(include_stale=True)
        else:
            final = await stream.last()
        if final.has_failed:
            raise LinkResolutionError(link.name, final.error)
        return True, final.payload


async def _gather_all(aws: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await ``aws`` concurrently; the first failure cancels the others."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
