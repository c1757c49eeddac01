"""Explicit mapping from resource type tag to model class."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .dspace_object import Bitstream, Bundle, Item
from .hal import HALResource, resource_type


class ResourceTypeRegistry:
    """Static type-tag to model lookup, built once at startup.

    Unknown tags parse into ``default`` so a foreign resource embedded in a
    known one never breaks a lookup.
    """

    def __init__(
        self,
        models: Mapping[str, type[HALResource]] | None = None,
        *,
        default: type[HALResource] = HALResource,
    ) -> None:
        self._models: dict[str, type[HALResource]] = dict(models or {})
        self._default = default

    def get(self, type_tag: str) -> type[HALResource] | None:
        return self._models.get(type_tag)

    def types(self) -> list[str]:
        return sorted(self._models)

    def parse(
        self, raw: Mapping[str, Any], fallback: type[HALResource] | None = None
    ) -> HALResource:
        """Validate a raw representation into its model.

        The ``type`` tag wins; ``fallback`` (then the registry default) is
        used when the tag is missing or unknown.
        """
        tag = resource_type(raw)
        model = (self._models.get(tag) if tag else None) or fallback or self._default
        return model.model_validate(raw)


def default_registry() -> ResourceTypeRegistry:
    return ResourceTypeRegistry(
        {
            "item": Item,
            "bundle": Bundle,
            "bitstream": Bitstream,
        }
    )
