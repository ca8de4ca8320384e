"""Rate limiting middleware using a Redis sliding window.

Requests are counted per caller (user id when signed in, client IP
otherwise) per path in a Redis sorted set.
"""

import logging
import time
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from plura.constants import (
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)
from plura.controller.schemas.responses import error_response

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiter.

    Attributes:
        redis_client: Async Redis client, or an async factory returning one
        window_seconds: Time window for the limit
        max_requests: Maximum requests per window
        enabled: Whether rate limiting is active
        exempt_paths: Path prefixes never limited
    """

    def __init__(
        self,
        app,
        redis_client,
        window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        enabled: bool = True,
        exempt_paths: Optional[list] = None,
    ):
        super().__init__(app)
        self.redis_client = redis_client
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.enabled = enabled
        self.exempt_paths = exempt_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/api/stripe/webhook",
        ]

    async def _get_redis(self):
        """Resolve the Redis client, supporting lazy factory callables."""
        if callable(self.redis_client):
            return await self.redis_client()
        return self.redis_client

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or self._is_exempt_path(request.url.path):
            return await call_next(request)

        redis = await self._get_redis()
        if redis is None:
            return await call_next(request)

        key = self._build_rate_limit_key(self._caller_id(request), request.url.path)
        try:
            limited = await self._is_rate_limited(key, redis)
            if not limited:
                await self._track_request(key, redis)
        except RedisError as e:
            logger.warning(f"Rate limiting skipped, Redis unavailable: {e}")
            return await call_next(request)

        if limited:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_response(
                    code="RATE_LIMIT_EXCEEDED",
                    message="Rate limit exceeded. Please try again later.",
                    path=request.url.path,
                    method=request.method,
                    details={"retry_after": self.window_seconds},
                ),
                headers={"Retry-After": str(self.window_seconds)},
            )

        return await call_next(request)

    def _is_exempt_path(self, path: str) -> bool:
        return any(path.startswith(exempt) for exempt in self.exempt_paths)

    @staticmethod
    def _caller_id(request: Request) -> str:
        session = getattr(request.state, "session", None)
        if session:
            return f"user:{session.user_id}"
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    @staticmethod
    def _build_rate_limit_key(caller_id: str, endpoint: str) -> str:
        normalized_endpoint = endpoint.replace("/", ":")
        return f"ratelimit:{caller_id}:{normalized_endpoint}"

    async def _is_rate_limited(self, key: str, redis) -> bool:
        """Drop entries older than the window, then compare the count."""
        window_start = time.time() - self.window_seconds
        await redis.zremrangebyscore(key, 0, window_start)
        request_count = await redis.zcard(key)
        return request_count >= self.max_requests

    async def _track_request(self, key: str, redis) -> None:
        now = time.time()
        await redis.zadd(key, {f"{now}:{id(self)}": now})
        await redis.expire(key, self.window_seconds * 2)
