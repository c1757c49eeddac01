"""Shared fixtures for unit tests.

StubTransport stands in for the REST API: routes are registered per method
and URL, every call is recorded, and an optional gate holds responses back
so tests can observe in-flight requests.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from dspace.data.api import DEFAULT_ENDPOINTS
from dspace.data.cache import ObjectCache, RemoteDataBuildService, RequestTracker
from dspace.data.core import CachePolicy, TransportError
from dspace.data.endpoints import HALEndpointService
from dspace.data.io import RawResponse
from dspace.data.models import default_registry
from dspace.data.services import BitstreamDataService, BundleDataService, ItemDataService

API = "https://dspace.test/server/api"

_REASONS = {200: "OK", 201: "Created", 204: "No Content"}


class StubTransport:
    """In-memory Transport keyed by (method, url)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], RawResponse | Exception] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.gates: dict[tuple[str, str] | None, asyncio.Event] = {}
        self.closed = False

    def on(self, url: str, payload: Any, *, method: str = "GET", status: int = 200) -> None:
        self.routes[(method, url)] = RawResponse(
            status_code=status,
            status_text=_REASONS.get(status, str(status)),
            payload=payload,
            href=url,
        )

    def fail(
        self,
        url: str,
        status_code: int = 404,
        message: str = "Not Found",
        *,
        method: str = "GET",
    ) -> None:
        self.routes[(method, url)] = TransportError(message, status_code=status_code)

    def hold(self, url: str | None = None, *, method: str = "GET") -> asyncio.Event:
        """Block fetches until the returned event is set.

        With ``url`` only that route is held, otherwise every fetch is.
        """
        gate = asyncio.Event()
        self.gates[(method, url) if url else None] = gate
        return gate

    def count(self, url: str, method: str = "GET") -> int:
        return sum(1 for m, u, _ in self.calls if m == method and u == url)

    async def fetch(self, url: str, method: str = "GET", body: Any = None) -> RawResponse:
        method = method.upper()
        self.calls.append((method, url, body))
        gate = self.gates.get((method, url)) or self.gates.get(None)
        if gate is not None:
            await gate.wait()
        route = self.routes.get((method, url))
        if route is None:
            raise TransportError(f"No route for {method} {url}", status_code=404)
        if isinstance(route, Exception):
            raise route
        return route

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RawFactory:
    """Builders for raw HAL representations as served by the REST API."""

    api = API

    @staticmethod
    def item_href(uuid: str) -> str:
        return f"{API}/core/items/{uuid}"

    @staticmethod
    def bundle_href(uuid: str) -> str:
        return f"{API}/core/bundles/{uuid}"

    @staticmethod
    def bitstream_href(uuid: str) -> str:
        return f"{API}/core/bitstreams/{uuid}"

    @classmethod
    def item(cls, uuid: str = "item-1", name: str = "Test item", **extra: Any) -> dict[str, Any]:
        href = cls.item_href(uuid)
        raw = {
            "type": "item",
            "id": uuid,
            "uuid": uuid,
            "name": name,
            "handle": f"123456789/{uuid}",
            "inArchive": True,
            "metadata": {"dc.title": [{"value": name, "language": None}]},
            "_links": {
                "self": {"href": href},
                "bundles": {"href": f"{href}/bundles"},
                "thumbnail": {"href": f"{href}/thumbnail"},
                "owningCollection": {"href": f"{href}/owningCollection"},
            },
        }
        raw.update(extra)
        return raw

    @classmethod
    def bundle(cls, uuid: str = "bundle-1", name: str = "ORIGINAL") -> dict[str, Any]:
        href = cls.bundle_href(uuid)
        return {
            "type": "bundle",
            "id": uuid,
            "uuid": uuid,
            "name": name,
            "_links": {
                "self": {"href": href},
                "bitstreams": {"href": f"{href}/bitstreams"},
                "primaryBitstream": {"href": f"{href}/primaryBitstream"},
                "item": {"href": f"{href}/item"},
            },
        }

    @classmethod
    def bitstream(cls, uuid: str = "bitstream-1", name: str = "file.pdf") -> dict[str, Any]:
        href = cls.bitstream_href(uuid)
        return {
            "type": "bitstream",
            "id": uuid,
            "uuid": uuid,
            "name": name,
            "sizeBytes": 1024,
            "sequenceId": 1,
            "checkSum": {"checkSumAlgorithm": "MD5", "value": "abc123"},
            "_links": {
                "self": {"href": href},
                "content": {"href": f"{href}/content"},
                "bundle": {"href": f"{href}/bundle"},
                "format": {"href": f"{href}/format"},
            },
        }

    @staticmethod
    def page(
        href: str,
        relation: str,
        elements: list[dict[str, Any]],
        *,
        number: int = 0,
        size: int = 20,
        total: int | None = None,
    ) -> dict[str, Any]:
        total = len(elements) if total is None else total
        return {
            "_embedded": {relation: elements},
            "_links": {"self": {"href": href}},
            "page": {
                "size": size,
                "totalElements": total,
                "totalPages": -(-total // size) if size else 0,
                "number": number,
            },
        }


@pytest.fixture
def raw() -> type[RawFactory]:
    return RawFactory


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ObjectCache:
    return ObjectCache(time_to_live=60.0, max_entries=100, clock=clock)


@pytest.fixture
def tracker(cache: ObjectCache) -> RequestTracker:
    return RequestTracker(cache)


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def builder(tracker, cache, transport, registry) -> RemoteDataBuildService:
    return RemoteDataBuildService(tracker, cache, transport, registry)


@pytest.fixture
def strict_builder(tracker, cache, transport, registry) -> RemoteDataBuildService:
    return RemoteDataBuildService(
        tracker, cache, transport, registry, policy=CachePolicy.STRICT_REFETCH
    )


@pytest.fixture
def endpoints() -> HALEndpointService:
    return HALEndpointService(API, DEFAULT_ENDPOINTS)


@pytest.fixture
def service_deps(builder, tracker, endpoints, registry) -> dict[str, Any]:
    return {
        "builder": builder,
        "tracker": tracker,
        "endpoints": endpoints,
        "registry": registry,
    }


@pytest.fixture
def item_service(service_deps) -> ItemDataService:
    return ItemDataService(**service_deps)


@pytest.fixture
def bundle_service(service_deps) -> BundleDataService:
    return BundleDataService(**service_deps)


@pytest.fixture
def bitstream_service(service_deps, bundle_service) -> BitstreamDataService:
    return BitstreamDataService(bundle_service=bundle_service, **service_deps)
