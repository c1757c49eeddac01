"""DSpace Data - cached, deduplicated access to a DSpace HAL REST API."""

from .api import DSpaceDataAPI
from .cache import (
    CacheEntry,
    CacheStats,
    ObjectCache,
    RemoteDataBuildService,
    RequestTracker,
    TrackedRequest,
)
from .core import (
    MAX_ELEMENTS_PER_PAGE,
    CachePolicy,
    DataConfig,
    DataError,
    EndpointNotFoundError,
    ErrorInfo,
    Failed,
    FindListOptions,
    FollowLinkConfig,
    LinkDefinitionError,
    LinkResolutionError,
    NotFoundError,
    Pending,
    RemoteData,
    RemoteDataStream,
    RequestState,
    SortDirection,
    SortOptions,
    Success,
    TransportError,
    follow_link,
)
from .endpoints import HALEndpointService
from .io import RawResponse, RESTTransport, Transport
from .models import (
    Bitstream,
    Bundle,
    DSpaceObject,
    HALResource,
    Item,
    PageInfo,
    PaginatedList,
    ResourceTypeRegistry,
)
from .services import BitstreamDataService, BundleDataService, DataService, ItemDataService

__version__ = "0.1.0"

__all__ = [
    # API
    "DSpaceDataAPI",
    "DataConfig",
    "CachePolicy",
    # Remote data
    "RemoteData",
    "RemoteDataStream",
    "RequestState",
    "Pending",
    "Success",
    "Failed",
    "ErrorInfo",
    # Links & options
    "FollowLinkConfig",
    "follow_link",
    "FindListOptions",
    "SortOptions",
    "SortDirection",
    "MAX_ELEMENTS_PER_PAGE",
    # Models
    "HALResource",
    "DSpaceObject",
    "Item",
    "Bundle",
    "Bitstream",
    "PageInfo",
    "PaginatedList",
    "ResourceTypeRegistry",
    # Cache
    "ObjectCache",
    "CacheEntry",
    "CacheStats",
    "RequestTracker",
    "TrackedRequest",
    "RemoteDataBuildService",
    # Transport & endpoints
    "Transport",
    "RESTTransport",
    "RawResponse",
    "HALEndpointService",
    # Services
    "DataService",
    "ItemDataService",
    "BundleDataService",
    "BitstreamDataService",
    # Exceptions
    "DataError",
    "TransportError",
    "NotFoundError",
    "EndpointNotFoundError",
    "LinkDefinitionError",
    "LinkResolutionError",
]
