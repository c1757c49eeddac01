"""Data models for DSpace REST resources.

Architecture:
    Resources are Pydantic v2 models, frozen so that a payload handed to one
    subscriber cannot be changed under another. Raw representations stay in
    the object cache as plain dicts; models are projections built per
    snapshot.
"""

from .dspace_object import Bitstream, Bundle, CheckSum, DSpaceObject, Item, MetadataValue
from .hal import HALLink, HALResource, RawRepresentation
from .paginated_list import PageInfo, PaginatedList
from .registry import ResourceTypeRegistry, default_registry

__all__ = [
    "HALLink",
    "HALResource",
    "RawRepresentation",
    "DSpaceObject",
    "MetadataValue",
    "Item",
    "Bundle",
    "Bitstream",
    "CheckSum",
    "PageInfo",
    "PaginatedList",
    "ResourceTypeRegistry",
    "default_registry",
]
