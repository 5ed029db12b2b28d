"""Redis caching service for embeddings."""

import hashlib
import json
import logging
from typing import List, Optional

import redis.asyncio as redis

from docqa.core.config import settings
from docqa.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class CacheService:
    """Service for caching embedding vectors."""

    def __init__(self) -> None:
        """Initialize the cache service."""
        self.client: Optional[redis.Redis] = None
        self.ttl = settings.embedding_cache_ttl

    async def connect(self) -> None:
        """Connect to Redis."""
        try:
            self.client = redis.from_url(
                settings.redis_url,
                decode_responses=True,
                max_connections=settings.redis_pool_size,
                socket_connect_timeout=5.0,
            )
            await self.client.ping()
        except Exception as e:
            self.client = None
            raise CacheError(f"Failed to connect to Redis: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self.client:
            await self.client.close()

    @staticmethod
    def embedding_key(model: str, dimensions: int, text: str) -> str:
        """
        Build the cache key for an embedding.

        Args:
            model: Embedding model name.
            dimensions: Embedding dimensionality.
            text: Embedded text.

        Returns:
            Cache key string.
        """
        text_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return f"embedding:{model}:{dimensions}:{text_hash}"

    async def get_embedding(self, key: str) -> Optional[List[float]]:
        """
        Get a cached embedding.

        Args:
            key: Cache key.

        Returns:
            Cached vector or None if missing or unreadable.
        """
        if not self.client:
            return None
        try:
            value = await self.client.get(key)
        except Exception as e:
            logger.warning(f"Embedding cache read failed: {str(e)}")
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None

    async def set_embedding(
        self, key: str, embedding: List[float], ttl: Optional[int] = None
    ) -> None:
        """
        Cache an embedding.

        Args:
            key: Cache key.
            embedding: Vector to cache.
            ttl: Time to live in seconds.
        """
        if not self.client:
            return
        try:
            await self.client.setex(key, ttl or self.ttl, json.dumps(embedding))
        except Exception as e:
            raise CacheError(f"Failed to set cache: {str(e)}") from e
