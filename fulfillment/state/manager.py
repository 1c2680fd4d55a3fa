"""Redis-based state manager shared by every fulfillment service."""

from typing import Any, Awaitable, Callable, TypeVar

import redis.asyncio as redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from fulfillment.config import get_settings
from fulfillment.errors import ConcurrencyConflictError
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class StateManager:
    """Centralized state management using Redis."""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        settings = get_settings()
        self.redis_client: redis.Redis | None = redis_client
        self.redis_url = settings.redis_url
        self.transaction_max_attempts = settings.transaction_max_attempts

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            self.redis_client = await redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def client(self) -> redis.Redis:
        """Return the connected client, connecting on first use."""
        if not self.redis_client:
            await self.connect()
        return self.redis_client

    async def get(self, key: str) -> Any:
        """Get a raw value from Redis."""
        client = await self.client()
        return await client.get(key)

    async def delete(self, *keys: str) -> None:
        """Delete keys from Redis."""
        client = await self.client()

        await client.delete(*keys)
        logger.debug("state_deleted", keys=keys)

    async def mget(self, keys: list[str]) -> list[str | None]:
        """Get many values in one round trip."""
        if not keys:
            return []
        client = await self.client()

        return await client.mget(keys)

    async def zrange(
        self,
        key: str,
        start: int = 0,
        end: int = -1,
        desc: bool = False,
    ) -> list[str]:
        """Get members from a sorted set."""
        client = await self.client()

        return await client.zrange(key, start, end, desc=desc)

    async def publish(self, channel: str, message: str) -> None:
        """Publish a message to a channel."""
        client = await self.client()

        await client.publish(channel, message)
        logger.debug("message_published", channel=channel)

    async def run_transaction(
        self,
        func: Callable[[Pipeline], Awaitable[T]],
        max_attempts: int | None = None,
    ) -> T:
        """
        Run ``func`` as an optimistic WATCH/MULTI/EXEC transaction.

        ``func`` receives a pipeline in immediate mode: it WATCHes and reads
        the keys it depends on, then switches the pipeline to MULTI and
        queues its writes. If a watched key changes before EXEC the whole
        function is re-run against fresh values. Exceptions raised by
        ``func`` abort the attempt with nothing written.

        Raises:
            ConcurrencyConflictError: every attempt lost to another writer
        """
        attempts = max_attempts or self.transaction_max_attempts
        client = await self.client()

        async with client.pipeline(transaction=True) as pipe:
            for attempt in range(1, attempts + 1):
                try:
                    result = await func(pipe)
                    await pipe.execute()
                    return result
                except WatchError:
                    logger.debug("transaction_retry", attempt=attempt)
                    await pipe.reset()

        logger.warning("transaction_conflict", attempts=attempts)
        raise ConcurrencyConflictError(
            "The record changed concurrently too many times, please retry"
        )


# Global state manager instance
_state_manager: StateManager | None = None


async def get_state_manager() -> StateManager:
    """Get the global state manager instance."""
    global _state_manager
    if _state_manager is None:
        _state_manager = StateManager()
        await _state_manager.connect()
    return _state_manager
