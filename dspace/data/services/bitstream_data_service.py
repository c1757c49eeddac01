"""Bitstream lookups, including thumbnail resolution."""

from __future__ import annotations

from typing import Any

from ..core.exceptions import NotFoundError
from ..core.links import FollowLinkConfig
from ..core.options import MAX_ELEMENTS_PER_PAGE, FindListOptions
from ..core.remote_data import Failed, RemoteData, RemoteDataStream, Success
from ..models import Bitstream, Bundle, Item, PaginatedList
from .bundle_data_service import BundleDataService
from .data_service import DataService

THUMBNAIL_BUNDLE = "THUMBNAIL"


class BitstreamDataService(DataService[Bitstream]):
    """A service to retrieve Bitstreams from the REST API."""

    link_path = "bitstreams"
    resource_type = "bitstream"
    model = Bitstream

    def __init__(self, *, bundle_service: BundleDataService, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._bundle_service = bundle_service

    def find_all_by_bundle(
        self,
        bundle: Bundle,
        options: FindListOptions | None = None,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[PaginatedList[Bitstream]]:
        """Retrieves the Bitstreams in a given bundle."""
        href = bundle.link_href("bitstreams")
        if href is None:
            error = NotFoundError(f"Bundle {bundle.name} has no bitstreams link")
            return RemoteDataStream.of(Failed(error.to_error_info()))
        return self.find_all_by_href(href, options, *links_to_follow)

    # TODO: switch to the item's own "thumbnail" relation once every supported
    # server version exposes it.
    def get_thumbnail_for(self, item: Item) -> RemoteDataStream[Bitstream]:
        """The first bitstream in the item's THUMBNAIL bundle.

        An empty THUMBNAIL bundle succeeds without a payload; a missing
        bundle mirrors the bundle lookup's own Failed snapshot.
        """

        def first_bitstream(bundle_rd: RemoteData[Bundle]) -> RemoteDataStream[Bitstream]:
            if not (bundle_rd.has_succeeded and bundle_rd.payload is not None):
                return RemoteDataStream.of(bundle_rd)  # type: ignore[arg-type]
            options = FindListOptions(elements_per_page=1)
            return self.find_all_by_bundle(bundle_rd.payload, options).transform(_first_of_page)

        return self._bundle_service.find_by_item_and_name(item, THUMBNAIL_BUNDLE).flat_map(
            first_bitstream
        )

    def get_matching_thumbnail(
        self, item: Item, bitstream_in_original: Bitstream
    ) -> RemoteDataStream[Bitstream]:
        """The thumbnail whose name starts with the original bitstream's name.

        The item is technically redundant, but is available in all current
        use cases and saves a lookup of the original's bundle and item.
        """
        original_name = bitstream_in_original.name or ""

        def pick(rd: RemoteData[PaginatedList[Bitstream]]) -> RemoteData[Bitstream]:
            if not (rd.has_succeeded and rd.payload is not None):
                return rd  # type: ignore[return-value]
            for thumbnail in rd.payload.page:
                if (thumbnail.name or "").startswith(original_name):
                    return Success(thumbnail, is_stale=rd.is_stale)
            return Failed(NotFoundError("No matching thumbnail found").to_error_info())

        def matching(bundle_rd: RemoteData[Bundle]) -> RemoteDataStream[Bitstream]:
            if not (bundle_rd.has_succeeded and bundle_rd.payload is not None):
                return RemoteDataStream.of(bundle_rd)  # type: ignore[arg-type]
            options = FindListOptions(elements_per_page=MAX_ELEMENTS_PER_PAGE)
            return self.find_all_by_bundle(bundle_rd.payload, options).transform(pick)

        return self._bundle_service.find_by_item_and_name(item, THUMBNAIL_BUNDLE).flat_map(
            matching
        )

    def find_all_by_item_and_bundle_name(
        self,
        item: Item,
        bundle_name: str,
        options: FindListOptions | None = None,
        *links_to_follow: FollowLinkConfig,
    ) -> RemoteDataStream[PaginatedList[Bitstream]]:
        """All bitstreams in the bundle of ``item`` named ``bundle_name``."""

        def in_bundle(bundle_rd: RemoteData[Bundle]) -> RemoteDataStream[PaginatedList[Bitstream]]:
            if not (bundle_rd.has_succeeded and bundle_rd.payload is not None):
                return RemoteDataStream.of(bundle_rd)  # type: ignore[arg-type]
            return self.find_all_by_bundle(bundle_rd.payload, options, *links_to_follow)

        return self._bundle_service.find_by_item_and_name(item, bundle_name).flat_map(in_bundle)


def _first_of_page(rd: RemoteData[PaginatedList[Bitstream]]) -> RemoteData[Bitstream]:
    if not (rd.has_succeeded and rd.payload is not None):
        return rd  # type: ignore[return-value]
    return Success(rd.payload.first, is_stale=rd.is_stale)
