"""HTTP client helper."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from ..core.exceptions import TransportError

logger = logging.getLogger(__name__)

ResponseHook = Callable[[aiohttp.ClientResponse], Awaitable[None] | None]


class HTTPClient:
    """Async HTTP client wrapper.

    Non-2xx responses and connection failures are raised as TransportError so
    that callers only ever deal with the library's exception hierarchy.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"Accept": "application/hal+json, application/json", **(headers or {})}
        self._session: aiohttp.ClientSession | None = None
        self._response_hooks: list[ResponseHook] = []

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=self._headers)
        return self._session

    def add_response_hook(self, hook: ResponseHook) -> None:
        """Register a callback invoked with every response before it is decoded."""
        self._response_hooks.append(hook)

    def _absolute(self, url: str) -> str:
        # If base_url is set and url is relative, combine them
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"
        return url

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[int, str, Any]:
        """Send a request and return ``(status, reason, decoded_body)``.

        The body is None for empty responses and for non-JSON content.

        Raises:
            TransportError: On a non-2xx status or when no response arrives
        """
        url = self._absolute(url)
        try:
            async with self.session.request(
                method, url, params=params, json=json, headers=headers
            ) as response:
                for hook in self._response_hooks:
                    result = hook(response)
                    if result is not None:
                        await result
                reason = response.reason or ""
                if response.status >= 400:
                    detail = await self._error_detail(response)
                    raise TransportError(
                        detail or f"{method} {url} failed with {response.status} {reason}",
                        status_code=response.status,
                        status_text=reason or str(response.status),
                    )
                body = await self._decode(response)
                return response.status, reason, body
        except TransportError:
            raise
        except TimeoutError as e:
            logger.error(f"Request timed out: {method} {url}")
            raise TransportError(f"{method} {url} timed out", status_code=0) from e
        except aiohttp.ClientError as e:
            logger.error(f"Request failed: {method} {url}: {e}")
            raise TransportError(f"{method} {url} failed: {e}", status_code=0) from e

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET request."""
        _, _, body = await self.request("GET", url, params=params, headers=headers)
        return body

    async def post(
        self,
        url: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST request."""
        _, _, body = await self.request("POST", url, json=json, headers=headers)
        return body

    @staticmethod
    async def _decode(response: aiohttp.ClientResponse) -> Any:
        if response.status == 204 or response.content_length == 0:
            return None
        if "json" not in (response.content_type or ""):
            return None
        return await response.json(content_type=None)

    @staticmethod
    async def _error_detail(response: aiohttp.ClientResponse) -> str | None:
        # DSpace error bodies carry a "message" field
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return None
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"]
        return None

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
