"""Bounded retry with explicit transient-error contracts.

Only rate limits and deadline expiry are considered transient. There is no
backoff: callers that want pacing wrap pipelines in their own policy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

import httpx

from chorus.errors import APIError, RateLimitError, _walk_exception_chain

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

log = logging.getLogger(__name__)

_RATE_LIMIT_STATUS = 429


def _is_deadline_error(exc: BaseException) -> bool:
    # Provider SDKs often wrap the transport timeout; inspect the whole chain.
    for e in _walk_exception_chain(exc):
        if isinstance(e, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
            return True
    return False


def is_transient(exc: BaseException) -> bool:
    """Return True when *exc* should be retried.

    Contract:
    - Cancellation is never retried.
    - ``RateLimitError`` and any ``APIError`` carrying HTTP 429 are retried.
    - Deadline expiry (``TimeoutError`` or an httpx timeout anywhere in the
      exception chain) is retried.
    - Everything else (auth, bad request, unsupported capability) is not.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, APIError) and exc.status_code == _RATE_LIMIT_STATUS:
        return True
    return _is_deadline_error(exc)


async def retry_async(
    factory: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    should_retry: Callable[[BaseException], bool] = is_transient,
    label: str = "call",
) -> T:
    """Run an async factory up to *max_attempts* times.

    The last exception is re-raised once attempts are exhausted or a
    non-transient error occurs.
    """
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await factory()
        except Exception as exc:
            if not should_retry(exc) or attempt >= attempts:
                raise
            log.debug(
                "%s failed with transient error (attempt %d/%d): %s",
                label,
                attempt,
                attempts,
                exc,
            )
    raise RuntimeError("retry_async exhausted without an exception")  # pragma: no cover
