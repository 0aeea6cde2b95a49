"""Shared cache store facade.

``CacheStore`` wraps the process's single ``redis.asyncio`` client. Every
operation is bounded by a short timeout and every client failure is
reported as ``CacheStoreError``, so callers can decide in one place how to
degrade (fail open on reads, log on invalidation, configurable for rate
buckets) instead of hanging on a slow store.
"""

import asyncio
from typing import Any

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from social_server.exceptions import CacheStoreError


class CacheStore:
    """Async key/value operations against the shared cache store."""

    def __init__(self, client: aioredis.Redis, timeout: float = 0.3) -> None:
        """Wrap an existing client.

        Args:
            client: A ``redis.asyncio.Redis`` created with ``decode_responses=True``
            timeout: Bound on every operation, in seconds
        """
        self._client = client
        self._timeout = timeout

    @classmethod
    def from_url(cls, url: str, timeout: float = 0.3) -> "CacheStore":
        """Create the store and its client from a connection string."""
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, timeout)

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def _run(self, operation: str, coro: Any) -> Any:
        try:
            async with asyncio.timeout(self._timeout):
                return await coro
        except TimeoutError as e:
            raise CacheStoreError(f"Cache store {operation} timed out after {self._timeout}s") from e
        except (RedisError, OSError) as e:
            raise CacheStoreError(f"Cache store {operation} failed: {e}") from e

    async def connect(self, attempts: int = 5, retry_delay: float = 0.5) -> None:
        """Verify the store answers, retrying with backoff.

        Raises:
            CacheStoreError: If the store is still unreachable after all attempts
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=retry_delay, max=5),
            retry=retry_if_exception_type(CacheStoreError),
            reraise=True,
            before_sleep=before_sleep_log(logger, "WARNING"),
        ):
            with attempt:
                await self.ping()
        logger.info("Cache store connected")

    async def ping(self) -> bool:
        return bool(await self._run("ping", self._client.ping()))

    async def get(self, key: str) -> str | None:
        return await self._run("get", self._client.get(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        await self._run("set", self._client.set(key, value, ex=ttl))

    async def delete(self, key: str) -> int:
        return await self._run("delete", self._client.delete(key))

    async def increment_from(self, key: str, floor: int) -> int:
        """Atomically increment a counter whose absent value reads as ``floor``.

        The counter is initialised to ``floor`` if missing and incremented in
        the same transaction, so the first call returns ``floor + 1`` and no two
        callers ever receive the same value.
        """

        async def _increment() -> int:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, floor, nx=True)
                pipe.incr(key)
                _, value = await pipe.execute()
            return int(value)

        return await self._run("increment", _increment())

    async def consume(self, key: str, cost: int, window_ms: int) -> tuple[int, int]:
        """Add ``cost`` to a fixed-window counter, creating it with the window as expiry.

        Returns:
            Tuple of (points consumed in the current window, milliseconds until reset)
        """

        async def _consume() -> tuple[int, int]:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, px=window_ms, nx=True)
                pipe.incrby(key, cost)
                pipe.pttl(key)
                _, consumed, reset_after = await pipe.execute()
            return int(consumed), max(int(reset_after), 0)

        return await self._run("consume", _consume())

    async def close(self) -> None:
        """Close the client's connection pool."""
        await self._client.aclose()
        logger.info("Cache store connection closed")
