"""HAL resource base model and raw-representation helpers.

A raw representation is the decoded JSON document as returned by the REST
API. It carries a ``type`` tag, a ``_links`` mapping of relation name to
href, and optionally an ``_embedded`` mapping of relation name to inline
resource. A collection representation has no type tag; its elements live in
``_embedded`` as a list, alongside a ``page`` block.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

RawRepresentation = dict[str, Any]


class HALLink(BaseModel):
    """One entry of a ``_links`` block."""

    href: str
    templated: bool = False
    name: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class HALResource(BaseModel):
    """Base model for every typed resource.

    Subclasses declare the relations they expose in ``relations`` (relation
    name to target type tag). FollowLinkConfig validation uses that table.
    Resolved relations are stored in ``followed`` by the builder; cached raw
    data is never mutated.
    """

    relations: ClassVar[dict[str, str]] = {}

    type: str | None = None
    id: str | int | None = None
    links: dict[str, HALLink | list[HALLink]] = Field(default_factory=dict, alias="_links")
    followed: dict[str, Any] = Field(default_factory=dict, exclude=True)

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def self_href(self) -> str | None:
        return self.link_href("self")

    def link_href(self, relation: str) -> str | None:
        """Href of a relation, with any URI template stripped."""
        link = self.links.get(relation)
        if isinstance(link, list):
            link = link[0] if link else None
        if link is None:
            return None
        return _strip_template(link.href)

    def get_followed(self, relation: str) -> Any:
        """Resolved payload of a followed relation, or None if not followed."""
        return self.followed.get(relation)


def _strip_template(href: str) -> str:
    brace = href.find("{")
    return href if brace < 0 else href[:brace]


def resource_type(raw: Mapping[str, Any]) -> str | None:
    value = raw.get("type")
    return value if isinstance(value, str) else None


def link_href(raw: Mapping[str, Any], relation: str) -> str | None:
    """Href of ``relation`` in a raw representation's ``_links`` block."""
    links = raw.get("_links")
    if not isinstance(links, Mapping):
        return None
    link = links.get(relation)
    if isinstance(link, list):
        link = link[0] if link else None
    if not isinstance(link, Mapping) or not isinstance(link.get("href"), str):
        return None
    return _strip_template(link["href"])


def self_href(raw: Mapping[str, Any]) -> str | None:
    return link_href(raw, "self")


def embedded(raw: Mapping[str, Any], relation: str) -> Any:
    """Inline resource embedded under ``relation``, or None."""
    block = raw.get("_embedded")
    if not isinstance(block, Mapping):
        return None
    return block.get(relation)


def embedded_page(raw: Any) -> list[RawRepresentation] | None:
    """Element list of a collection representation, None for a single resource."""
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, Mapping):
        return None
    if "page" not in raw and resource_type(raw) is not None:
        return None
    block = raw.get("_embedded")
    if isinstance(block, Mapping):
        for value in block.values():
            if isinstance(value, list):
                return value
    return [] if "page" in raw else None


def is_collection(raw: Any) -> bool:
    return embedded_page(raw) is not None
