"""DSpaceDataAPI: composition root of the data-access layer.

Architecture:
    Every collaborator is built once here and handed to the services that
    need it. There is no service locator: the object graph is explicit and a
    test can replace any piece (usually the transport) by passing it in.

    DataConfig
        -> ObjectCache, RequestTracker
        -> HALEndpointService (default link paths + config overrides)
        -> RemoteDataBuildService (transport, registry, cache policy)
        -> ItemDataService, BundleDataService, BitstreamDataService

Design Decisions:
    - One cache and one tracker per API instance, shared by all services,
      so deduplication works across resource types and link following
    - Transport injection keeps tests free of network access
    - The instance only closes a transport it created itself
    - Context manager pattern ensures pending requests are cancelled

See Also:
    - RemoteDataBuildService: how streams are produced
    - DataService: the operations every resource client offers
"""

from __future__ import annotations

import logging
from typing import Any

from .cache import ObjectCache, RemoteDataBuildService, RequestTracker
from .core.config import DataConfig
from .endpoints import HALEndpointService
from .io import RESTTransport, Transport
from .models import default_registry
from .services import BitstreamDataService, BundleDataService, DataService, ItemDataService

logger = logging.getLogger(__name__)

# Link paths of the root endpoints, relative to the REST API root.
DEFAULT_ENDPOINTS: dict[str, str] = {
    "items": "core/items",
    "bundles": "core/bundles",
    "bitstreams": "core/bitstreams",
}


class DSpaceDataAPI:
    """High-level entry point wiring cache, tracker and resource clients.

    Example:
        >>> config = DataConfig(base_url="https://demo.dspace.org/server/api")
        >>> async with DSpaceDataAPI(config) as api:
        ...     item = (await api.items.find_by_id(uuid).last()).payload
        ...     thumbnail = await api.bitstreams.get_thumbnail_for(item).last()
    """

    def __init__(self, config: DataConfig, transport: Transport | None = None) -> None:
        """Initialize the API.

        Args:
            config: Library settings
            transport: Optional Transport (creates a RESTTransport if not provided)
        """
        self.config = config
        self._owns_transport = transport is None
        self.transport: Transport = transport or RESTTransport(
            config.base_url, timeout=config.request_timeout
        )

        self.cache = ObjectCache(
            time_to_live=config.time_to_live, max_entries=config.max_cache_entries
        )
        self.tracker = RequestTracker(self.cache)
        self.endpoints = HALEndpointService(
            config.base_url, {**DEFAULT_ENDPOINTS, **dict(config.endpoints)}
        )
        self.registry = default_registry()
        self.builder = RemoteDataBuildService(
            self.tracker,
            self.cache,
            self.transport,
            self.registry,
            policy=config.cache_policy,
        )

        shared: dict[str, Any] = {
            "builder": self.builder,
            "tracker": self.tracker,
            "endpoints": self.endpoints,
            "registry": self.registry,
        }
        self.items = ItemDataService(**shared)
        self.bundles = BundleDataService(**shared)
        self.bitstreams = BitstreamDataService(bundle_service=self.bundles, **shared)

        self._services: dict[str, DataService[Any]] = {
            ItemDataService.resource_type: self.items,
            BundleDataService.resource_type: self.bundles,
            BitstreamDataService.resource_type: self.bitstreams,
        }
        self._closed = False

    def service_for(self, type_tag: str) -> DataService[Any]:
        """Client responsible for resources of ``type_tag``.

        Raises:
            KeyError: If no client handles the type
        """
        try:
            return self._services[type_tag]
        except KeyError:
            raise KeyError(f"No data service registered for resource type '{type_tag}'") from None

    async def discover(self) -> list[str]:
        """Load the endpoint map from the REST API root document.

        Raises:
            TransportError: If the root document cannot be fetched
        """
        return await self.endpoints.discover(self.transport)

    async def close(self) -> None:
        """Cancel pending requests and release the transport."""
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing DSpaceDataAPI")
        await self.tracker.cancel_all()
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self) -> DSpaceDataAPI:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
