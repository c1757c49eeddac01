"""Link descriptors: hypermedia relations to resolve alongside a primary fetch."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import LinkDefinitionError

if TYPE_CHECKING:
    from ..models.hal import HALResource
    from ..models.registry import ResourceTypeRegistry


@dataclass(frozen=True)
class FollowLinkConfig:
    """One relation to resolve, with the relations to resolve on its target.

    Attributes:
        name: Relation name as it appears under ``_links`` / ``_embedded``
        links_to_follow: Nested descriptors applied to the resolved target
    """

    name: str
    links_to_follow: tuple[FollowLinkConfig, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("FollowLinkConfig name must be a non-empty string")


def follow_link(name: str, *links_to_follow: FollowLinkConfig) -> FollowLinkConfig:
    """Build a FollowLinkConfig.

    Example:
        >>> follow_link("bundles", follow_link("bitstreams"))
    """
    return FollowLinkConfig(name=name, links_to_follow=tuple(links_to_follow))


def validate_links(
    model: type[HALResource],
    links: Iterable[FollowLinkConfig],
    registry: ResourceTypeRegistry,
) -> None:
    """Check every descriptor against the relations its model declares.

    Nested descriptors are checked against the target model of the relation.
    When the target type is not registered, nested checks stop there.

    Raises:
        LinkDefinitionError: If a relation is not declared on the model
    """
    for link in links:
        target_type = model.relations.get(link.name)
        if target_type is None:
            raise LinkDefinitionError(model.__name__, link.name)
        if link.links_to_follow:
            target_model = registry.get(target_type)
            if target_model is not None:
                validate_links(target_model, link.links_to_follow, registry)
