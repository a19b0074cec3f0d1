"""Response cache: request-hash identity with expires_at tracking.

Concurrent identical requests share one provider call (single-flight).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
import hashlib
import json
import logging
import threading
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chorus.types import Request, Response

log = logging.getLogger(__name__)


def compute_cache_key(provider: str, model: str, request: Request) -> str:
    """Compute a deterministic key from provider identity and request fields.

    Function registries and executors are not part of the key; requests that
    carry them are not cached by SimplePipeline.
    """
    payload = {
        "provider": provider,
        "model": model,
        "prompt": request.prompt,
        "temperature": request.temperature,
        "max_tokens": request.max_tokens,
        "parameters": dict(request.parameters),
    }
    combined = json.dumps(payload, sort_keys=True, default=repr)
    return hashlib.sha256(combined.encode()).hexdigest()[:32]


def _consume_future_exception(fut: asyncio.Future[Any]) -> None:
    """Avoid 'Future exception was never retrieved' for coordination futures."""
    if not fut.cancelled():
        fut.exception()


@dataclass
class ResponseCache:
    """In-memory cache of successful responses."""

    _entries: dict[str, tuple[Response, float]] = field(default_factory=dict)
    _inflight: dict[str, asyncio.Future[Response]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get(self, key: str) -> Response | None:
        """Get a response if present and not expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            response, expires_at = entry
            if time.time() >= expires_at:
                del self._entries[key]
                return None
            return response

    def set(self, key: str, response: Response, ttl_s: int) -> None:
        """Store a response with an expiration time, dropping expired entries."""
        now = time.time()
        with self._lock:
            expired = [k for k, (_, at) in self._entries.items() if at <= now]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (response, now + max(0, ttl_s))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def get_or_create(
        self,
        key: str,
        *,
        ttl_s: int,
        work: Callable[[], Awaitable[Response]],
    ) -> Response:
        """Return the cached response for *key*, or compute it once.

        - If cached, returns a copy flagged ``metadata["cached"] = True``.
        - If another coroutine is computing it, awaits that result.
        - Otherwise runs *work* and caches a success.
        """
        cached = self.get(key)
        if cached is not None:
            log.debug("Response cache hit %s", key)
            return _as_hit(cached)

        with self._lock:
            fut = self._inflight.get(key)
            creator = fut is None
            if fut is None:
                fut = asyncio.get_running_loop().create_future()
                fut.add_done_callback(_consume_future_exception)
                self._inflight[key] = fut

        if not creator:
            return _as_hit(await asyncio.shield(fut))

        try:
            value = await work()
        except asyncio.CancelledError:
            fut.cancel()
            raise
        except Exception as e:
            fut.set_exception(e)
            raise
        else:
            self.set(key, value, ttl_s)
            fut.set_result(value)
            return value
        finally:
            with self._lock:
                self._inflight.pop(key, None)


def _as_hit(response: Response) -> Response:
    return replace(response, metadata={**response.metadata, "cached": True})
