"""Concurrency controls for LLM API calls and the evaluation endpoint.

- :class:`ConcurrencyLimiter` caps in-flight provider calls.  It is owned by
  an evaluator instance (one per worker in the app) rather than living at
  module scope.
- :class:`ConcurrencyLimitMiddleware` rejects evaluation requests with 503
  when the worker is saturated instead of queuing them forever.

The middleware is pure ASGI (not BaseHTTPMiddleware).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Coroutine

from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_LLM = 10
DEFAULT_MAX_CONCURRENT_HEAVY = 15  # per worker

# Paths that count as "heavy" (LLM-bound)
HEAVY_PATHS = frozenset({"/api/evaluate"})


class ConcurrencyLimiter:
    """asyncio.Semaphore wrapper, created lazily so it binds to the running loop."""

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT_LLM) -> None:
        self.max_concurrent = max_concurrent
        self._semaphore: asyncio.Semaphore | None = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            logger.info("LLM concurrency semaphore initialized (max=%d)", self.max_concurrent)
        return self._semaphore

    @property
    def saturated(self) -> bool:
        return self._semaphore is not None and self._semaphore.locked()

    async def run(
        self,
        func: Callable[..., Coroutine[Any, Any, Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Execute an async function with concurrency limiting.

        Usage::

            response = await limiter.run(provider.call, system, user, cfg)
        """
        async with self._get_semaphore():
            return await func(*args, **kwargs)


class ConcurrencyLimitMiddleware:
    """Pure ASGI middleware — reject heavy requests when the worker is at capacity.

    Returns HTTP 503 with a Retry-After header for overloaded endpoints.
    Lightweight endpoints (health, sessions, questions) pass through.
    """

    def __init__(self, app: ASGIApp, max_concurrent: int = DEFAULT_MAX_CONCURRENT_HEAVY) -> None:
        self.app = app
        self._limiter = ConcurrencyLimiter(max_concurrent)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") not in HEAVY_PATHS:
            await self.app(scope, receive, send)
            return

        if self._limiter.saturated:
            logger.warning("Concurrency limit reached for %s — returning 503", scope["path"])
            body = json.dumps(
                {"detail": "Server busy — too many concurrent evaluations. Please retry."}
            ).encode()
            await send({
                "type": "http.response.start",
                "status": 503,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"retry-after", b"5"),
                ],
            })
            await send({"type": "http.response.body", "body": body})
            return

        await self._limiter.run(self.app, scope, receive, send)
