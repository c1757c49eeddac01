"""I/O layer: HTTP client and the transport boundary."""

from .http import HTTPClient
from .transport import RawResponse, RESTTransport, Transport

__all__ = [
    "HTTPClient",
    "RawResponse",
    "RESTTransport",
    "Transport",
]
