"""Custom exception hierarchy.

Runtime failures (TransportError, NotFoundError, LinkResolutionError) are
recovered into a Failed RemoteData snapshot by the cache layer. Configuration
faults (EndpointNotFoundError, LinkDefinitionError) indicate a coding bug and
propagate to the caller.
"""

from __future__ import annotations

from .remote_data import ErrorInfo


class DataError(Exception):
    """Base exception for all library errors."""

    status_code: int = 500
    status_text: str = "Internal Server Error"

    def to_error_info(self) -> ErrorInfo:
        """Convert to the ErrorInfo carried by a Failed snapshot."""
        return ErrorInfo(
            status_code=self.status_code,
            status_text=self.status_text,
            message=str(self),
        )


class TransportError(DataError):
    """Network or HTTP-level failure reported by the transport.

    A status code of 0 means no response was received (connection refused,
    timeout, DNS failure).
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        status_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        if status_text is None:
            status_text = "Network Error" if status_code == 0 else str(status_code)
        self.status_text = status_text


class NotFoundError(DataError):
    """A logically expected related resource is absent."""

    status_code = 404
    status_text = "Not Found"


class EndpointNotFoundError(DataError):
    """Link path or relation is unknown to the endpoint resolver."""

    def __init__(self, link_path: str, relation: str | None = None) -> None:
        if relation is None:
            message = f"No endpoint registered for link path '{link_path}'"
        else:
            message = f"Endpoint '{link_path}' has no relation '{relation}'"
        super().__init__(message)
        self.link_path = link_path
        self.relation = relation


class LinkDefinitionError(DataError):
    """A FollowLinkConfig names a relation the model does not declare."""

    def __init__(self, model_name: str, relation: str) -> None:
        super().__init__(f"{model_name} declares no relation named '{relation}'")
        self.model_name = model_name
        self.relation = relation


class LinkResolutionError(DataError):
    """A nested link fetch failed while composing a payload."""

    def __init__(self, relation: str, cause: ErrorInfo) -> None:
        super().__init__(f"Failed to resolve link '{relation}': {cause.message}")
        self.relation = relation
        self.cause = cause
        self.status_code = cause.status_code
        self.status_text = cause.status_text
