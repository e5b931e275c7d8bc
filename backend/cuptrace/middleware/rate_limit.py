"""Rate limiting middleware using Redis.

Sliding window per user (JWT ``sub``) or per client IP.  Login and
registration get tighter limits.  If Redis is unavailable requests are
let through.
"""

import logging
import time
from typing import Callable, Optional

import redis.asyncio as redis
from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from cuptrace.auth.jwt import decode_token
from cuptrace.middleware.exceptions import create_error_response
from cuptrace.utils.cache import get_redis

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        default_limit: int = 100,  # requests
        default_window: int = 60,  # seconds
        exempt_paths: Optional[list[str]] = None,
        enabled: bool = True,
    ):
        super().__init__(app)
        self.default_limit = default_limit
        self.default_window = default_window
        self.exempt_paths = exempt_paths or ["/health", "/docs", "/openapi.json"]
        self.enabled = enabled

        self.custom_limits = {
            "/api/auth/login": (5, 60),
            "/api/auth/register": (3, 300),
            # Public trace is hit by consumers scanning QR codes
            "/api/trace": (60, 60),
        }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or any(
            request.url.path.startswith(path) for path in self.exempt_paths
        ):
            return await call_next(request)

        limit, window = self._get_limit_for_path(request.url.path)
        key = self._get_rate_limit_key(request)
        allowed, remaining, reset_time = await self._check_rate_limit(key, limit, window)

        if not allowed:
            retry_after = max(int(reset_time - time.time()), 1)
            # Exception handlers do not see errors raised in middleware
            return create_error_response(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
                error_code="RATE_LIMITED",
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(reset_time)),
                    "Retry-After": str(retry_after),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(reset_time))
        return response

    def _get_limit_for_path(self, path: str) -> tuple[int, int]:
        for pattern, (limit, window) in self.custom_limits.items():
            if path.startswith(pattern):
                return limit, window
        return self.default_limit, self.default_window

    def _get_rate_limit_key(self, request: Request) -> str:
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            user_id = decode_token(auth_header[7:]).get("sub")
            if user_id:
                return f"user:{user_id}"

        # Behind a load balancer the client is the first X-Forwarded-For hop
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else "unknown"
        return f"ip:{ip}"

    async def _check_rate_limit(
        self, key: str, limit: int, window: int
    ) -> tuple[bool, int, float]:
        """Returns (allowed, remaining, reset_time)."""
        current_time = time.time()
        window_start = current_time - window
        redis_key = f"ratelimit:{key}"

        try:
            redis_client = await get_redis()
            await redis_client.zremrangebyscore(redis_key, 0, window_start)
            count = await redis_client.zcard(redis_key)

            if count >= limit:
                oldest = await redis_client.zrange(redis_key, 0, 0, withscores=True)
                reset_time = oldest[0][1] + window if oldest else current_time + window
                return False, 0, reset_time

            await redis_client.zadd(redis_key, {str(current_time): current_time})
            await redis_client.expire(redis_key, window)
            return True, limit - count - 1, current_time + window

        except redis.RedisError as e:
            logger.warning(f"Rate limit check failed, allowing request: {e}")
            return True, limit, current_time + window
