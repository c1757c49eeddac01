"""Core components."""

from .config import CachePolicy, DataConfig
from .exceptions import (
    DataError,
    EndpointNotFoundError,
    LinkDefinitionError,
    LinkResolutionError,
    NotFoundError,
    TransportError,
)
from .links import FollowLinkConfig, follow_link, validate_links
from .options import MAX_ELEMENTS_PER_PAGE, FindListOptions, SortDirection, SortOptions
from .remote_data import (
    ErrorInfo,
    Failed,
    Pending,
    RemoteData,
    RemoteDataStream,
    RequestState,
    Success,
)

__all__ = [
    "CachePolicy",
    "DataConfig",
    # Exceptions
    "DataError",
    "TransportError",
    "NotFoundError",
    "EndpointNotFoundError",
    "LinkDefinitionError",
    "LinkResolutionError",
    # Links & options
    "FollowLinkConfig",
    "follow_link",
    "validate_links",
    "FindListOptions",
    "SortDirection",
    "SortOptions",
    "MAX_ELEMENTS_PER_PAGE",
    # Remote data
    "ErrorInfo",
    "RequestState",
    "RemoteData",
    "Pending",
    "Success",
    "Failed",
    "RemoteDataStream",
]
