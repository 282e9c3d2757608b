"""Redis storage backend for the link registry."""

import json
import logging
from typing import Optional, List, Dict, Any

import redis.asyncio as redis

from .base import RegistryStorageBase


class RedisStorage(RegistryStorageBase):
    """Stores each collection as one JSON blob under its own Redis key."""

    name = "redis"

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "linkcore",
        logger: Optional[logging.Logger] = None,
        client: Optional[redis.Redis] = None,
    ):
        """Initialize Redis storage.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            key_prefix: Prefix for the collection keys
            logger: Optional logger instance
            client: Optional pre-built client (skips connecting from the URL)
        """
        super().__init__(redis_url)
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.logger = logger or logging.getLogger(__name__)
        self.client: Optional[redis.Redis] = client

    async def open(self) -> None:
        """Connect to Redis."""
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        try:
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except Exception as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            raise

    def get_key(self, collection: str) -> str:
        """Generate the key for a collection.

        Args:
            collection: Collection name (users or links)

        Returns:
            Redis key
        """
        return f"{self.key_prefix}:{collection}"

    async def _load(self, collection: str) -> List[Dict[str, Any]]:
        raw = await self.client.get(self.get_key(collection))
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"Redis key {self.get_key(collection)} does not hold a JSON list")
        return data

    async def _save(self, collection: str, records: List[Dict[str, Any]]) -> None:
        try:
            await self.client.set(self.get_key(collection), json.dumps(records, ensure_ascii=False))
        except Exception as e:
            self.logger.error(f"Redis write error for {collection}: {e}")
            raise

    async def load_users(self) -> List[Dict[str, Any]]:
        return await self._load("users")

    async def load_links(self) -> List[Dict[str, Any]]:
        return await self._load("links")

    async def save_users(self, users: List[Dict[str, Any]]) -> None:
        await self._save("users", users)

    async def save_links(self, links: List[Dict[str, Any]]) -> None:
        await self._save("links", links)

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.client = None
            self.logger.info("Redis connection closed")

    async def health_check(self) -> bool:
        if not self.client:
            return False
        try:
            return bool(await self.client.ping())
        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            return False
