"""Unit tests for BitstreamDataService, thumbnail resolution in particular."""

from __future__ import annotations

import asyncio

import pytest

from dspace.data.core import MAX_ELEMENTS_PER_PAGE, RequestState
from dspace.data.models import Bitstream, Bundle, Item


@pytest.fixture
def item(raw):
    return Item.model_validate(raw.item("i1"))


@pytest.fixture
def thumbnail_bundle(raw):
    return raw.bundle("tb", "THUMBNAIL")


def _bundles_href(raw):
    return f"{raw.item_href('i1')}/bundles?page=0&size={MAX_ELEMENTS_PER_PAGE}"


def _bitstreams_href(raw, bundle_uuid, size):
    return f"{raw.bundle_href(bundle_uuid)}/bitstreams?page=0&size={size}"


def _serve_bundles(transport, raw, *bundles):
    href = _bundles_href(raw)
    transport.on(href, raw.page(href, "bundles", list(bundles)))


def _serve_bitstreams(transport, raw, bundle_uuid, size, *bitstreams):
    href = _bitstreams_href(raw, bundle_uuid, size)
    transport.on(href, raw.page(href, "bitstreams", list(bitstreams), size=size))


class TestFindAllByBundle:
    """Test listing the bitstreams of a bundle."""

    @pytest.mark.asyncio
    async def test_lists_bitstreams(self, bitstream_service, transport, raw):
        href = f"{raw.bundle_href('b1')}/bitstreams"
        transport.on(href, raw.page(href, "bitstreams", [raw.bitstream("f1")]))

        final = await bitstream_service.find_all_by_bundle(
            Bundle.model_validate(raw.bundle("b1"))
        ).last()

        assert isinstance(final.payload.first, Bitstream)
        assert final.payload.first.uuid == "f1"

    @pytest.mark.asyncio
    async def test_bundle_without_bitstreams_link(self, bitstream_service):
        final = await bitstream_service.find_all_by_bundle(Bundle(name="ORIGINAL")).last()
        assert final.has_failed
        assert final.error.status_code == 404

    @pytest.mark.asyncio
    async def test_find_all_by_item_and_bundle_name(self, bitstream_service, transport, raw, item):
        _serve_bundles(transport, raw, raw.bundle("ob", "ORIGINAL"))
        href = f"{raw.bundle_href('ob')}/bitstreams"
        transport.on(href, raw.page(href, "bitstreams", [raw.bitstream("f1"), raw.bitstream("f2")]))

        final = await bitstream_service.find_all_by_item_and_bundle_name(item, "ORIGINAL").last()

        assert [b.uuid for b in final.payload.page] == ["f1", "f2"]


class TestGetThumbnailFor:
    """Test thumbnail lookup through the THUMBNAIL bundle."""

    @pytest.mark.asyncio
    async def test_first_bitstream_of_thumbnail_bundle(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, raw.bundle("ob", "ORIGINAL"), thumbnail_bundle)
        _serve_bitstreams(transport, raw, "tb", 1, raw.bitstream("t1", "file.pdf.jpg"))

        snapshots = await bitstream_service.get_thumbnail_for(item).collect()

        final = snapshots[-1]
        assert final.has_succeeded
        assert isinstance(final.payload, Bitstream)
        assert final.payload.uuid == "t1"
        assert all(rd.is_loading for rd in snapshots[:-1])
        assert snapshots[0].state is RequestState.REQUEST_PENDING

    @pytest.mark.asyncio
    async def test_empty_thumbnail_bundle(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, thumbnail_bundle)
        _serve_bitstreams(transport, raw, "tb", 1)

        final = await bitstream_service.get_thumbnail_for(item).last()

        assert final.has_succeeded
        assert final.payload is None

    @pytest.mark.asyncio
    async def test_no_thumbnail_bundle(self, bitstream_service, transport, raw, item):
        _serve_bundles(transport, raw, raw.bundle("ob", "ORIGINAL"))

        final = await bitstream_service.get_thumbnail_for(item).last()

        assert final.has_failed
        assert final.error.status_code == 404
        assert final.error.message == "The bundle with name THUMBNAIL was not found."

    @pytest.mark.asyncio
    async def test_bundle_lookup_failure_is_mirrored(self, bitstream_service, transport, raw, item):
        transport.fail(_bundles_href(raw), 500, "Internal error")

        final = await bitstream_service.get_thumbnail_for(item).last()

        assert final.has_failed
        assert final.error.status_code == 500

    @pytest.mark.asyncio
    async def test_bitstream_lookup_failure(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, thumbnail_bundle)
        transport.fail(_bitstreams_href(raw, "tb", 1), 503, "down")

        final = await bitstream_service.get_thumbnail_for(item).last()

        assert final.has_failed
        assert final.error.status_code == 503

    @pytest.mark.asyncio
    async def test_cached_thumbnail_settles_immediately(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, thumbnail_bundle)
        _serve_bitstreams(transport, raw, "tb", 1, raw.bitstream("t1"))
        await bitstream_service.get_thumbnail_for(item).last()

        snapshots = await bitstream_service.get_thumbnail_for(item).collect()

        assert len(snapshots) == 1
        assert snapshots[0].payload.uuid == "t1"
        assert transport.count(_bundles_href(raw)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_lookups_share_requests(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, thumbnail_bundle)
        _serve_bitstreams(transport, raw, "tb", 1, raw.bitstream("t1"))
        gate = transport.hold()

        tasks = [
            asyncio.create_task(bitstream_service.get_thumbnail_for(item).last()) for _ in range(3)
        ]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert {rd.payload.uuid for rd in results} == {"t1"}
        assert transport.count(_bundles_href(raw)) == 1
        assert transport.count(_bitstreams_href(raw, "tb", 1)) == 1


class TestGetMatchingThumbnail:
    """Test thumbnail selection by the original bitstream's name."""

    @pytest.mark.asyncio
    async def test_name_prefix_match(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, thumbnail_bundle)
        _serve_bitstreams(
            transport,
            raw,
            "tb",
            MAX_ELEMENTS_PER_PAGE,
            raw.bitstream("t1", "cover.png.jpg"),
            raw.bitstream("t2", "file.pdf.jpg"),
        )
        original = Bitstream.model_validate(raw.bitstream("o1", "file.pdf"))

        final = await bitstream_service.get_matching_thumbnail(item, original).last()

        assert final.has_succeeded
        assert final.payload.uuid == "t2"

    @pytest.mark.asyncio
    async def test_no_match(self, bitstream_service, transport, raw, item, thumbnail_bundle):
        _serve_bundles(transport, raw, thumbnail_bundle)
        _serve_bitstreams(
            transport, raw, "tb", MAX_ELEMENTS_PER_PAGE, raw.bitstream("t1", "cover.png.jpg")
        )
        original = Bitstream.model_validate(raw.bitstream("o1", "file.pdf"))

        final = await bitstream_service.get_matching_thumbnail(item, original).last()

        assert final.has_failed
        assert final.error.status_code == 404
        assert final.error.status_text == "Not Found"
        assert final.error.message == "No matching thumbnail found"

    @pytest.mark.asyncio
    async def test_unnamed_original_matches_first_thumbnail(
        self, bitstream_service, transport, raw, item, thumbnail_bundle
    ):
        _serve_bundles(transport, raw, thumbnail_bundle)
        _serve_bitstreams(
            transport,
            raw,
            "tb",
            MAX_ELEMENTS_PER_PAGE,
            raw.bitstream("t1", "cover.png.jpg"),
            raw.bitstream("t2", "file.pdf.jpg"),
        )
        original = Bitstream.model_validate(raw.bitstream("o1", ""))

        final = await bitstream_service.get_matching_thumbnail(item, original).last()

        assert final.has_succeeded
        assert final.payload.uuid == "t1"

    @pytest.mark.asyncio
    async def test_missing_thumbnail_bundle(self, bitstream_service, transport, raw, item):
        _serve_bundles(transport, raw)
        original = Bitstream.model_validate(raw.bitstream("o1", "file.pdf"))

        final = await bitstream_service.get_matching_thumbnail(item, original).last()

        assert final.has_failed
        assert final.error.message == "The bundle with name THUMBNAIL was not found."
