"""
In-memory rate limiting for public endpoints.

The duplicate check answers "is this email/phone registered?", so it is
throttled per client IP to keep it from being used to enumerate customers.

Uses a simple sliding-window counter per (IP, route) key.
"""
import time
import logging
from collections import defaultdict
from typing import Optional

from fastapi import HTTPException, Request

from config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter held in process memory.

    Counters are per worker; a multi-worker deployment gets
    max_requests per worker.
    """

    def __init__(self):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)

    def _cleanup(self, key: str, window_seconds: int):
        cutoff = time.time() - window_seconds
        recent = [ts for ts in self._requests.get(key, ()) if ts > cutoff]
        if recent:
            self._requests[key] = recent
        else:
            self._requests.pop(key, None)

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record a request for key. False when the window is already full."""
        self._cleanup(key, window_seconds)

        if len(self._requests.get(key, ())) >= max_requests:
            return False

        self._requests[key].append(time.time())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        self._cleanup(key, window_seconds)
        return max(0, max_requests - len(self._requests.get(key, ())))

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
limiter = RateLimiter()


def rate_limit(max_requests: Optional[int] = None, window_seconds: Optional[int] = None):
    """
    FastAPI dependency factory for rate limiting.

    Limits default to DUPLICATE_CHECK_MAX_REQUESTS / DUPLICATE_CHECK_WINDOW_SECONDS
    and are read per request, so tests can adjust settings at runtime.

    Usage:
        @router.post("/profiles/check-duplicate", dependencies=[Depends(rate_limit())])
    """
    async def _check_rate_limit(request: Request):
        limit = max_requests or settings.duplicate_check_max_requests
        window = window_seconds or settings.duplicate_check_window_seconds

        client_ip = request.client.host if request.client else "unknown"
        route_path = request.url.path
        key = f"{client_ip}:{route_path}"

        if not limiter.check(key, limit, window):
            logger.warning(
                f"Rate limit exceeded: {client_ip} on {route_path} ({limit}/{window}s)"
            )
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Maximum {limit} requests "
                       f"per {window} seconds. Try again later.",
                headers={
                    "Retry-After": str(window),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": str(limiter.remaining(key, limit, window)),
                },
            )

    return _check_rate_limit
