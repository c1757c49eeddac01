"""Structured logging for request tracking and cache operations.

This module provides telemetry hooks for the cache layer, emitting
structured logs for observability.
"""

from __future__ import annotations

import logging

from ..core.remote_data import ErrorInfo, RequestState

logger = logging.getLogger(__name__)


def log_request_dispatched(*, key: str, method: str, href: str) -> None:
    """Log a transport call being issued for a tracked request.

    Args:
        key: Tracked request key
        method: HTTP method
        href: Absolute request URL
    """
    logger.info(
        "request_dispatched",
        extra={"request_key": key, "method": method, "href": href},
    )


def log_request_settled(
    *,
    key: str,
    state: RequestState,
    latency_ms: float | None = None,
    error: ErrorInfo | None = None,
) -> None:
    """Log a tracked request reaching a terminal state.

    Args:
        key: Tracked request key
        state: SUCCESS or FAILED
        latency_ms: Transport latency in milliseconds (optional)
        error: Failure details when state is FAILED
    """
    extra = {
        "request_key": key,
        "state": state.value,
        "latency_ms": latency_ms,
        "status_code": error.status_code if error else None,
        "error_message": error.message if error else None,
    }
    if error is None:
        logger.info("request_settled", extra=extra)
    else:
        logger.error("request_failed", extra=extra)


def log_request_reused(*, key: str, state: RequestState, from_cache: bool) -> None:
    """Log a lookup served by an existing tracked request or a cache entry.

    Args:
        key: Tracked request key
        state: State of the reused request
        from_cache: True when a fresh cache entry answered without a fetch
    """
    logger.debug(
        "request_reused",
        extra={"request_key": key, "state": state.value, "from_cache": from_cache},
    )


def log_request_cancelled(*, key: str) -> None:
    """Log a pending transport call cancelled after its last subscriber left."""
    logger.info("request_cancelled", extra={"request_key": key})


def log_cache_invalidated(*, scope: str, target: str, entries: int) -> None:
    """Log cache invalidation.

    Args:
        scope: "key", "type" or "prefix"
        target: The key, type tag or prefix that was invalidated
        entries: Number of entries marked stale
    """
    logger.debug(
        "cache_invalidated",
        extra={"scope": scope, "target": target, "entries": entries},
    )
