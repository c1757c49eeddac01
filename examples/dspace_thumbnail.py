#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio

from dspace.data import DataConfig, DSpaceDataAPI, FindListOptions


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="List DSpace items and resolve their thumbnails")
    p.add_argument("base_url", nargs="?", default="https://demo.dspace.org/server/api")
    p.add_argument("limit", nargs="?", type=int, default=5)
    p.add_argument("--ttl", type=float, default=60.0, help="cache time-to-live in seconds")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    config = DataConfig(base_url=args.base_url, time_to_live=args.ttl)

    async with DSpaceDataAPI(config) as api:
        await api.discover()
        listing = await api.items.find_all(FindListOptions(elements_per_page=args.limit)).last()
        if not listing.has_succeeded:
            print(f"Listing failed: {listing.error.status_code} {listing.error.message}")
            return

        print("=" * 78)
        print(f"Server     : {args.base_url}")
        print(f"Items      : {listing.payload.total_elements}")
        print("=" * 78)
        print(f"{'Item':36} | {'Thumbnail':25} | {'Size':>10}")
        print("-" * 78)
        lookups = [api.bitstreams.get_thumbnail_for(item).last() for item in listing.payload.page]
        for item, thumb in zip(listing.payload.page, await asyncio.gather(*lookups)):
            if thumb.has_succeeded and thumb.payload is not None:
                name, size = thumb.payload.name or "-", thumb.payload.size_bytes or 0
            elif thumb.has_succeeded:
                name, size = "(empty bundle)", 0
            else:
                name, size = f"({thumb.error.status_code})", 0
            print(f"{item.uuid:36} | {name[:25]:25} | {size:>10}")
        print("=" * 78)
        stats = api.cache.get_stats()
        print(f"Cache      : {stats.size} entries, {stats.hits} hits, {stats.misses} misses")


if __name__ == "__main__":
    asyncio.run(main())
