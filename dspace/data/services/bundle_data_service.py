"""Bundle lookups."""

from __future__ import annotations

from ..core.exceptions import NotFoundError
from ..core.links import FollowLinkConfig
from ..core.options import MAX_ELEMENTS_PER_PAGE, FindListOptions
from ..core.remote_data import Failed, RemoteData, RemoteDataStream, Success
from ..models import Bundle, Item, PaginatedList
from .data_service import DataService


class BundleDataService(DataService[Bundle]):
    """A service to retrieve Bundles from the REST API."""

    link_path = "bundles"
    resource_type = "bundle"
    model = Bundle

    def find_all_by_item(
        self,
        item: Item,
        options: FindListOptions | None = None,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[PaginatedList[Bundle]]:
        """Bundles of ``item``, via its ``bundles`` relation."""
        href = item.link_href("bundles")
        if href is None:
            return RemoteDataStream.of(
                Failed(NotFoundError(f"Item {item.uuid} has no bundles link").to_error_info())
            )
        return self.find_all_by_href(href, options, *links_to_follow)

    def find_by_item_and_name(
        self,
        item: Item,
        bundle_name: str,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[Bundle]:
        """The bundle of ``item`` named ``bundle_name``.

        Fails with 404 when the item has no such bundle. Pending and failed
        snapshots of the bundle list are passed through unchanged.
        """

        def pick(rd: RemoteData[PaginatedList[Bundle]]) -> RemoteData[Bundle]:
            if not (rd.has_succeeded and rd.payload is not None):
                return rd  # type: ignore[return-value]
            for bundle in rd.payload.page:
                if bundle.name == bundle_name:
                    return Success(bundle, is_stale=rd.is_stale)
            return Failed(
                NotFoundError(f"The bundle with name {bundle_name} was not found.").to_error_info()
            )

        options = FindListOptions(elements_per_page=MAX_ELEMENTS_PER_PAGE)
        return self.find_all_by_item(item, options, *links_to_follow).transform(pick)
