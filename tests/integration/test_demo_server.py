"""Integration tests against a live DSpace REST API."""

import os

import pytest

from dspace.data import DataConfig, DSpaceDataAPI, FindListOptions, Item

pytestmark = pytest.mark.skipif(
    os.environ.get("RUN_DSPACE_NETWORK_TESTS") != "1",
    reason="Requires network access to a DSpace server",
)


class TestDemoServerIntegration:
    """Test discovery, listing and thumbnail lookup on a live server."""

    @pytest.mark.asyncio
    async def test_discover_links(self, base_url):
        async with DSpaceDataAPI(DataConfig(base_url=base_url)) as api:
            discovered = await api.discover()

            assert len(discovered) > 0
            assert api.items.get_browse_endpoint().startswith("http")

    @pytest.mark.asyncio
    async def test_first_item_page(self, base_url):
        async with DSpaceDataAPI(DataConfig(base_url=base_url)) as api:
            await api.discover()
            final = await api.items.find_all(FindListOptions(elements_per_page=1)).last()

            assert final.has_succeeded, final.error
            assert final.payload.page_info.elements_per_page == 1
            assert len(final.payload.page) <= 1
            for item in final.payload.page:
                assert isinstance(item, Item)
                assert item.uuid

    @pytest.mark.asyncio
    async def test_thumbnail_lookup_settles(self, base_url):
        async with DSpaceDataAPI(DataConfig(base_url=base_url)) as api:
            listing = await api.items.find_all(FindListOptions(elements_per_page=1)).last()
            if not listing.has_succeeded or listing.payload.first is None:
                pytest.skip("Server has no readable items")

            thumbnail = await api.bitstreams.get_thumbnail_for(listing.payload.first).last()

            # Items without a THUMBNAIL bundle report 404 instead of raising
            assert thumbnail.has_succeeded or thumbnail.error.status_code == 404
