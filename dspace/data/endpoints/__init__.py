"""Endpoint resolution."""

from .hal_endpoint import EndpointSpec, HALEndpointService, add_query

__all__ = ["EndpointSpec", "HALEndpointService", "add_query"]
