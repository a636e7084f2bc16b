"""Primary storage: raw payloads in Redis, one key per event."""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from webhook_dispatcher.config import RedisConfig
from webhook_dispatcher.core.keys import KEY_PREFIX
from webhook_dispatcher.storage.base import StorageBackend, StorageError
from webhook_dispatcher.utils.logging import get_logger

log = get_logger(__name__)


class RedisStorage(StorageBackend):
    name = "redis"

    def __init__(
        self,
        config: RedisConfig | None = None,
        client: aioredis.Redis | None = None,
    ) -> None:
        self._config = config or RedisConfig()
        self._client = client or aioredis.Redis(
            host=self._config.host,
            port=self._config.port,
            db=self._config.db,
            password=self._config.password or None,
        )
        self._closed = False

    @property
    def address(self) -> str:
        return f"{self._config.host}:{self._config.port}"

    async def connect(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise StorageError(f"failed to connect to Redis at {self.address}: {exc}") from exc
        log.info("redis_connected", address=self.address)

    async def store(self, key: str, path: str, body: bytes) -> None:
        """Write the raw body under ``key`` with no expiry."""
        self._ensure_open()
        try:
            await self._client.set(key, body)
        except RedisError as exc:
            raise StorageError(f"failed to store {key} in Redis: {exc}") from exc

    async def count(self) -> int:
        """Count ``webhook-*`` keys. O(n) in the size of the keyspace."""
        self._ensure_open()
        total = 0
        try:
            async for _ in self._client.scan_iter(match=f"{KEY_PREFIX}*", count=1000):
                total += 1
        except RedisError as exc:
            raise StorageError(f"failed to count keys: {exc}") from exc
        return total

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.aclose()
        except RedisError as exc:
            raise StorageError(f"failed to close Redis connection: {exc}") from exc

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageError("Redis storage is closed")
