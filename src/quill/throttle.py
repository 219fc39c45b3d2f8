"""Request throttling — per-client fixed-window rate limiting.

``RateLimiter`` counts requests per client key in fixed windows.
``throttle_middleware`` wraps it as Chirp middleware that answers
``429 Too Many Requests`` once a client has used up its window.

Thread Safety:
    ``RateLimiter.allow`` is protected by a ``threading.Lock``.

"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chirp.http.request import Request
    from chirp.middleware.protocol import Next

# Key used when a request carries no client information at all.
_SHARED_KEY = "*"


class RateLimiter:
    """Allows at most ``max_requests`` per key in each ``window`` seconds.

    Args:
        max_requests: Requests allowed per window.
        window: Window length in seconds.

    """

    __slots__ = ("_counts", "_lock", "_max_requests", "_window")

    def __init__(self, max_requests: int, window: float = 1.0) -> None:
        self._max_requests = max_requests
        self._window = window
        self._counts: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def allow(self, key: str, now: float | None = None) -> bool:
        """Count one request for ``key`` and report whether it is allowed."""
        moment = time.monotonic() if now is None else now
        with self._lock:
            started, count = self._counts.get(key, (moment, 0))
            if moment - started >= self._window:
                started, count = moment, 0
            if count >= self._max_requests:
                self._counts[key] = (started, count)
                return False
            self._counts[key] = (started, count + 1)
            self._prune(moment)
            return True

    def _prune(self, moment: float) -> None:
        # Drop expired windows once the table grows, so idle clients don't pile up.
        if len(self._counts) < 1024:
            return
        expired = [k for k, (s, _) in self._counts.items() if moment - s >= self._window]
        for k in expired:
            del self._counts[k]


def client_key(request: Any) -> str:
    """Identify the client a request came from."""
    headers = getattr(request, "headers", None)
    if headers is not None:
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()

    client = getattr(request, "client", None)
    if isinstance(client, tuple) and client:
        return str(client[0])
    host = getattr(client, "host", None)
    if host:
        return str(host)
    return _SHARED_KEY


def throttle_middleware(limiter: RateLimiter) -> Any:
    """Build a Chirp middleware enforcing ``limiter``."""

    async def throttle(request: Request, next: Next) -> Any:
        if not limiter.allow(client_key(request)):
            from chirp.http.response import Response

            return Response(
                body="Too Many Requests",
                status=429,
                content_type="text/plain; charset=utf-8",
            )
        return await next(request)

    return throttle
