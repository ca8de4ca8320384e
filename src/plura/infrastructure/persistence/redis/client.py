"""Redis async client management.

Backs the session store and the rate limiter.
"""

from typing import Optional

from redis.asyncio import Redis


class RedisClient:
    """Lazily connected wrapper around redis.asyncio.Redis.

    Attributes:
        url: Redis connection URL
        default_db: Database number selected on connect
        client: Redis async client, None until connect()
    """

    def __init__(self, url: str, default_db: int = 0):
        self.url = url
        self.default_db = default_db
        self.client: Optional[Redis] = None

    async def connect(self) -> None:
        """Create Redis client connection."""
        if self.client is None:
            self.client = Redis.from_url(
                self.url,
                db=self.default_db,
                decode_responses=True,
                encoding="utf-8",
            )

    async def disconnect(self) -> None:
        """Close Redis client connection."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def get_client(self) -> Redis:
        """Return the connected client.

        Raises:
            RuntimeError: If connect() has not been awaited
        """
        if self.client is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        return self.client

    async def ping(self) -> bool:
        """Round-trip a PING to the server."""
        return bool(await self.get_client().ping())

    def with_database(self, db: int) -> "RedisClient":
        """Build an unconnected client for another database on the same server.

        Args:
            db: Database number (e.g. the rate limiting database)

        Returns:
            New RedisClient sharing this client's URL
        """
        return RedisClient(self.url, default_db=db)
