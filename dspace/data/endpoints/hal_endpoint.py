"""Endpoint resolver mapping link paths and relations to request URLs.

Architecture:
    The REST API publishes its endpoint map as the ``_links`` block of the
    root document. HALEndpointService keeps that map as a link-path table
    (``"bitstreams" -> "<base>/core/bitstreams"``), either registered
    explicitly at startup or loaded with ``discover()``.

    Hypermedia relations found on a payload are not resolved here; their
    href is read straight from the payload with ``link_href``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..core.exceptions import EndpointNotFoundError
from ..models import hal

if TYPE_CHECKING:
    from ..io.transport import Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointSpec:
    """A registered endpoint.

    Attributes:
        link_path: Root relation name, e.g. ``bitstreams``
        href: Absolute endpoint URL
        relations: Relation segments allowed below the endpoint (empty means
            any segment is accepted)
    """

    link_path: str
    href: str
    relations: frozenset[str] = frozenset()


class HALEndpointService:
    """Resolves link paths to absolute endpoint URLs."""

    def __init__(self, base_url: str, endpoints: Mapping[str, str] | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._endpoints: dict[str, EndpointSpec] = {}
        for link_path, href in (endpoints or {}).items():
            self.register(link_path, href)

    def register(self, link_path: str, href: str, relations: Iterable[str] = ()) -> None:
        """Register or replace an endpoint. Relative hrefs are joined to base_url."""
        if not link_path:
            raise ValueError("link_path must be a non-empty string")
        if not href.startswith("http"):
            href = f"{self.base_url}/{href.lstrip('/')}"
        self._endpoints[link_path] = EndpointSpec(
            link_path=link_path,
            href=href.rstrip("/"),
            relations=frozenset(relations),
        )

    def has(self, link_path: str) -> bool:
        return link_path in self._endpoints

    def link_paths(self) -> list[str]:
        return sorted(self._endpoints)

    def resolve(self, link_path: str, relation: str | None = None) -> str:
        """Absolute URL for a link path, optionally followed by a relation segment.

        Raises:
            EndpointNotFoundError: If the link path is unknown, or the
                relation is not one the endpoint declares
        """
        spec = self._endpoints.get(link_path)
        if spec is None:
            raise EndpointNotFoundError(link_path)
        if relation is None:
            return spec.href
        if spec.relations and relation not in spec.relations:
            raise EndpointNotFoundError(link_path, relation)
        return f"{spec.href}/{relation.strip('/')}"

    async def discover(self, transport: Transport) -> list[str]:
        """Load the root document and register every root relation.

        Explicitly declared relations of already-registered endpoints are
        kept. Returns the link paths found.

        Raises:
            TransportError: If the root document cannot be fetched
        """
        response = await transport.fetch(self.base_url)
        links = (response.payload or {}).get("_links", {})
        found: list[str] = []
        for link_path in links:
            if link_path in ("self", "curies"):
                continue
            href = hal.link_href(response.payload, link_path)
            if href is None:
                continue
            previous = self._endpoints.get(link_path)
            self.register(link_path, href, previous.relations if previous else ())
            found.append(link_path)
        logger.info(
            "endpoints_discovered",
            extra={"base_url": self.base_url, "endpoint_count": len(found)},
        )
        return found

    @staticmethod
    def link_href(raw: Mapping[str, Any], relation: str) -> str | None:
        """Href of a hypermedia relation on a raw representation."""
        return hal.link_href(raw, relation)


def add_query(href: str, query: Mapping[str, str] | None) -> str:
    """Merge ``query`` into ``href``, parameters sorted by name.

    Sorting makes the result usable as a request key: the same resource and
    options always produce the same string.
    """
    if not query:
        return href
    parts = urlsplit(href)
    merged = dict(parse_qsl(parts.query, keep_blank_values=True))
    merged.update(query)
    return urlunsplit(parts._replace(query=urlencode(sorted(merged.items()), safe=",")))
