# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from __future__ import annotations

import functools
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from sanic import response

logger = logging.getLogger(__name__)

DEFAULT_LIMIT_PER_MINUTE = 60
WINDOW_SECONDS = 60
PRUNE_THRESHOLD = 10000


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(math.ceil(self.reset_at))),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiter:
    """Fixed one-minute window request counter keyed by client."""

    def __init__(
        self,
        limit_per_minute: int = DEFAULT_LIMIT_PER_MINUTE,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = int(limit_per_minute)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def hit(self, client_id: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(client_id, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[client_id] = (started, count)
            if len(self._windows) > PRUNE_THRESHOLD:
                self._prune(now)

        reset_at = started + self.window_seconds
        allowed = count <= self.limit
        return RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(self.limit - count, 0),
            reset_at=reset_at,
            retry_after=max(int(math.ceil(reset_at - now)), 1),
        )

    def _prune(self, now: float) -> None:
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]


def client_ip(request) -> str:
    headers = getattr(request, "headers", None) or {}
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return getattr(request, "remote_addr", None) or getattr(request, "ip", None) or "unknown"


def rate_limited(handler):
    """Count the request against the caller's window; answer 429 once it is spent."""

    @functools.wraps(handler)
    async def wrapper(request, *args, **kwargs):
        from api.services import get_services  # lazy import, api.services imports this module

        limiter = get_services(request).rate_limiter
        ip = client_ip(request)
        decision = limiter.hit(ip)
        if not decision.allowed:
            logger.info("Rate limit exceeded for %s", ip)
            return response.json(
                {
                    "success": False,
                    "error": "Too many requests",
                    "message": f"Rate limit of {decision.limit} requests per minute exceeded",
                    "retry_after": decision.retry_after,
                },
                status=429,
                headers=decision.headers(),
            )
        result = await handler(request, *args, **kwargs)
        for name, value in decision.headers().items():
            result.headers[name] = value
        return result

    return wrapper
