"""Transport boundary between the cache layer and HTTP.

The cache layer depends only on the ``Transport`` protocol; RESTTransport is
the aiohttp-backed implementation used by default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from .http import HTTPClient, ResponseHook


@dataclass(frozen=True)
class RawResponse:
    """Decoded transport response.

    Attributes:
        status_code: HTTP status
        status_text: HTTP reason phrase
        payload: Decoded JSON body, None when empty
        href: Absolute URL that was requested
    """

    status_code: int
    status_text: str
    payload: Any
    href: str


class Transport(Protocol):
    """Protocol for the fetch collaborator.

    Implementations raise TransportError for non-2xx responses and for
    connection-level failures; they never return an error response.
    """

    async def fetch(self, url: str, method: str = "GET", body: Any = None) -> RawResponse:
        ...

    async def close(self) -> None:
        ...


class RESTTransport:
    """Transport over HTTPClient."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._http = HTTPClient(base_url=base_url, timeout=timeout, headers=headers)

    def add_response_hook(self, hook: ResponseHook) -> None:
        self._http.add_response_hook(hook)

    async def fetch(self, url: str, method: str = "GET", body: Any = None) -> RawResponse:
        status, reason, payload = await self._http.request(method.upper(), url, json=body)
        return RawResponse(status_code=status, status_text=reason, payload=payload, href=url)

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> RESTTransport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
