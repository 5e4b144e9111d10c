"""Redis implementation of SessionStorage.

For server-side clients (e.g. a backend-for-frontend) that keep one session
blob per client under a namespaced key. Keys expire with the session TTL so
abandoned sessions do not pile up.
"""

import logging
import os
from datetime import timedelta
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from domain.model.errors import RemoteError
from domain.model.session import SESSION_TTL

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv('REDIS_URL', '')


class RedisSessionStorage:
    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        namespace: str = 'default',
        ttl: timedelta = SESSION_TTL,
    ):
        self._client_cache = client
        self.namespace = namespace
        self.ttl = ttl

    def _get_client(self) -> redis.Redis:
        if self._client_cache is None:
            if not REDIS_URL:
                logger.error("[REDIS] REDIS_URL not configured")
                raise RemoteError("Session storage is not configured")
            self._client_cache = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
            )
        return self._client_cache

    def _key(self, key: str) -> str:
        return f"{key}:{self.namespace}"

    async def get(self, key: str) -> str | None:
        try:
            return await self._get_client().get(self._key(key))
        except RedisError as e:
            logger.error("Failed to read session", extra={"key": self._key(key), "error": str(e)})
            raise RemoteError("Failed to read session storage") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._get_client().set(self._key(key), value, ex=int(self.ttl.total_seconds()))
        except RedisError as e:
            logger.error("Failed to write session", extra={"key": self._key(key), "error": str(e)})
            raise RemoteError("Failed to write session storage") from e

    async def delete(self, key: str) -> None:
        try:
            await self._get_client().delete(self._key(key))
        except RedisError as e:
            logger.error("Failed to delete session", extra={"key": self._key(key), "error": str(e)})
            raise RemoteError("Failed to write session storage") from e

    async def close(self) -> None:
        if self._client_cache is not None:
            await self._client_cache.aclose()
            self._client_cache = None
