"""Redis client management.

Planning conversations live only in Redis; trips keep working when it is
unreachable, so startup does not fail on a Redis outage.
"""

import logging

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from juno.core.config import settings

logger = logging.getLogger(__name__)


class RedisManager:
    """Owns the connection pool and the shared client."""

    def __init__(self) -> None:
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        """Get the client, creating the pool on first use."""
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                str(settings.REDIS_URL),
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            )
            self._client = Redis(connection_pool=self._pool)
        return self._client

    async def init(self) -> None:
        await self.client.ping()

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None


redis_manager = RedisManager()


async def get_redis() -> Redis:
    """FastAPI dependency for the shared Redis client."""
    return redis_manager.client


async def init_redis() -> None:
    await redis_manager.init()


async def close_redis() -> None:
    await redis_manager.close()
