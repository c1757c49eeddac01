"""Generic resource client built on RemoteDataBuildService.

Architecture:
    DataService is the reusable base of every resource-specific client. A
    subclass supplies its ``link_path`` (root endpoint relation), its model
    class and its resource type tag; all lookups and mutations are
    implemented here on top of the builder.

Error contract:
    Lookups never raise at runtime; transport failures, 404s included,
    surface as a Failed snapshot. Only configuration faults raise
    synchronously: an unknown link path (EndpointNotFoundError) or a
    FollowLinkConfig naming an undeclared relation (LinkDefinitionError).

Cache busting:
    Every mutation invalidates the affected cache entries once it succeeds:
    the resource's own href and every entry holding its resource type, which
    covers the collections known to contain it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from ..cache.builder import RemoteDataBuildService
from ..cache.request_tracker import RequestTracker
from ..core.links import FollowLinkConfig, validate_links
from ..core.options import FindListOptions
from ..core.remote_data import RemoteDataStream
from ..endpoints.hal_endpoint import HALEndpointService, add_query
from ..io.transport import RawResponse
from ..models.hal import HALResource
from ..models.paginated_list import PaginatedList
from ..models.registry import ResourceTypeRegistry

T = TypeVar("T", bound=HALResource)


class DataService(Generic[T]):
    """Lookups, pagination and mutations for one resource type."""

    link_path: ClassVar[str] = ""
    resource_type: ClassVar[str] = ""
    model: ClassVar[type[HALResource]] = HALResource

    def __init__(
        self,
        *,
        builder: RemoteDataBuildService,
        tracker: RequestTracker,
        endpoints: HALEndpointService,
        registry: ResourceTypeRegistry,
    ) -> None:
        self._builder = builder
        self._tracker = tracker
        self._endpoints = endpoints
        self._registry = registry

    # ------------------------------------------------------------------
    # Hrefs
    # ------------------------------------------------------------------

    def get_browse_endpoint(self) -> str:
        """Root endpoint of this resource type."""
        return self._endpoints.resolve(self.link_path)

    def get_find_all_href(
        self, options: FindListOptions | None = None, endpoint: str | None = None
    ) -> str:
        href = endpoint or self.get_browse_endpoint()
        return add_query(href, options.to_query() if options else None)

    def get_id_href(self, resource_id: str | int, endpoint: str | None = None) -> str:
        return f"{endpoint or self.get_browse_endpoint()}/{resource_id}"

    def get_search_href(
        self, search_method: str, options: FindListOptions | None = None
    ) -> str:
        href = f"{self._endpoints.resolve(self.link_path, 'search')}/{search_method}"
        return add_query(href, options.to_query() if options else None)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_href(self, href: str, *links_to_follow: FollowLinkConfig) -> RemoteDataStream[T]:
        """Single resource at ``href``."""
        self._check_links(links_to_follow)
        return self._builder.build_from_href(href, links_to_follow, model=self.model)

    def find_by_id(
        self, resource_id: str | int, *links_to_follow: FollowLinkConfig
    ) -> RemoteDataStream[T]:
        return self.find_by_href(self.get_id_href(resource_id), *links_to_follow)

    def find_all(
        self,
        options: FindListOptions | None = None,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[PaginatedList[T]]:
        """One page of the root collection of this resource type."""
        return self.find_all_by_href(self.get_browse_endpoint(), options, *links_to_follow)

    def find_all_by_href(
        self,
        href: str,
        options: FindListOptions | None = None,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[PaginatedList[T]]:
        """One page of the collection at ``href``, ``options`` sent as query parameters."""
        self._check_links(links_to_follow)
        return self._builder.build_list_from_href(
            self.get_find_all_href(options, endpoint=href), links_to_follow, model=self.model
        )

    def search_by(
        self,
        search_method: str,
        options: FindListOptions | None = None,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[PaginatedList[T]]:
        """Collection returned by ``<endpoint>/search/<search_method>``."""
        self._check_links(links_to_follow)
        return self._builder.build_list_from_href(
            self.get_search_href(search_method, options), links_to_follow, model=self.model
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self, obj: T | Mapping[str, Any], params: Mapping[str, str] | None = None
    ) -> RemoteDataStream[T]:
        """POST a new resource to the root endpoint."""
        endpoint = self.get_browse_endpoint()

        def bust(_: RawResponse) -> None:
            self._tracker.invalidate_by_prefix(endpoint)
            self._invalidate_type()

        return self._builder.build_from_request(
            add_query(endpoint, params),
            "POST",
            self._serialize(obj),
            model=self.model,
            on_success=bust,
        )

    def update(self, obj: T) -> RemoteDataStream[T]:
        """PUT the full representation to the resource's self href."""
        href = self._require_self_href(obj)
        return self._builder.build_from_request(
            href,
            "PUT",
            self._serialize(obj),
            model=self.model,
            on_success=lambda _: self._bust_resource(href),
        )

    def patch(self, obj: T, operations: Sequence[Mapping[str, Any]]) -> RemoteDataStream[T]:
        """Send JSON Patch ``operations`` to the resource's self href."""
        href = self._require_self_href(obj)
        return self._builder.build_from_request(
            href,
            "PATCH",
            [dict(op) for op in operations],
            model=self.model,
            on_success=lambda _: self._bust_resource(href),
        )

    def delete(self, resource_id: str | int) -> RemoteDataStream[None]:
        return self.delete_by_href(self.get_id_href(resource_id))

    def delete_by_href(self, href: str) -> RemoteDataStream[None]:
        """DELETE the resource at ``href``; it is dropped from the cache on success."""

        def bust(_: RawResponse) -> None:
            self._tracker.remove(href)
            self._invalidate_type()

        return self._builder.build_from_request(href, "DELETE", on_success=bust)

    # ------------------------------------------------------------------
    # Cache busting
    # ------------------------------------------------------------------

    def invalidate(self, href: str) -> None:
        """Force the next lookup of ``href`` to refetch."""
        self._tracker.invalidate(href)

    def invalidate_by_type(self) -> int:
        """Mark stale every cached entry of this resource type."""
        return self._invalidate_type()

    def _invalidate_type(self) -> int:
        if not self.resource_type:
            return 0
        return self._tracker.invalidate_by_type(self.resource_type)

    def _bust_resource(self, href: str) -> None:
        self._tracker.invalidate(href)
        self._invalidate_type()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_links(self, links: Sequence[FollowLinkConfig]) -> None:
        if links:
            validate_links(self.model, links, self._registry)

    @staticmethod
    def _require_self_href(obj: HALResource) -> str:
        href = obj.self_href
        if href is None:
            raise ValueError(f"{type(obj).__name__} has no self link")
        return href

    @staticmethod
    def _serialize(obj: HALResource | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(obj, HALResource):
            return obj.model_dump(by_alias=True, exclude_none=True, exclude={"links"})
        return dict(obj)
