"""Redis client used for sessions and rate limiting."""

from .client import RedisClient

__all__ = ["RedisClient"]
