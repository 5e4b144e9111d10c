"""Cached AsyncMongoClient for the catalog and identity stores."""

import logging
import os

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from domain.model.errors import RemoteError

logger = logging.getLogger(__name__)

logging.getLogger('pymongo').setLevel(logging.WARNING)

MONGO_URL = os.getenv('MONGO_URL')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'promptshelf')

_client_cache: AsyncMongoClient | None = None
_connection_attempted = False
_connection_failed = False


def _create_client(url: str) -> AsyncMongoClient:
    return AsyncMongoClient(
        url,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=5000,
        socketTimeoutMS=30000,
        maxPoolSize=10,
        minPoolSize=0,
        maxIdleTimeMS=30000,
        waitQueueTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
        tz_aware=True,  # datetimes come back as UTC-aware
    )


async def reset_client() -> None:
    """Close and forget the cached client; the next call reconnects from scratch."""
    global _client_cache, _connection_attempted, _connection_failed
    if _client_cache is not None:
        await _client_cache.close()
    _client_cache = None
    _connection_attempted = False
    _connection_failed = False


async def get_mongodb_client() -> AsyncMongoClient | None:
    """Return a healthy client, or None when MongoDB is unreachable.

    A cached client is pinged before reuse and replaced if the ping fails.
    A failed first connection is treated as a configuration problem and is
    not retried until reset_client().
    """
    global _client_cache, _connection_attempted, _connection_failed

    if _client_cache is not None:
        try:
            await _client_cache.admin.command('ping')
            return _client_cache
        except PyMongoError:
            logger.debug("[MONGODB] Cached client failed ping, reconnecting")
            stale, _client_cache = _client_cache, None
            await stale.close()

    if _connection_failed:
        return None

    if not MONGO_URL:
        logger.error("[MONGODB] MONGO_URL not configured")
        _connection_failed = True
        return None

    client = _create_client(MONGO_URL)
    try:
        await client.admin.command('ping')
    except PyMongoError as e:
        await client.close()
        if not _connection_attempted:
            logger.error("[MONGODB] Initial connection failed", extra={"error": str(e)[:200]})
            _connection_failed = True
        return None

    if not _connection_attempted:
        logger.info("[MONGODB] Connected", extra={"database": DATABASE_NAME})
    _connection_attempted = True
    _client_cache = client
    return client


async def get_database() -> AsyncDatabase:
    """The application database.

    Raises:
        RemoteError: MongoDB is not configured or unreachable
    """
    client = await get_mongodb_client()
    if client is None:
        raise RemoteError("Database unavailable")
    return client[DATABASE_NAME]
