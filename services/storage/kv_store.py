"""
Key-Value Store - Redis-backed config storage.

Holds provider key records and cached pricing data. Values are JSON strings;
a missing key is a normal "not configured" outcome and returns None.

Usage:
    kv = KVStore.from_url("redis://localhost:6379/0")
    raw = await kv.get("ai_keys_list")
    await kv.put("wavespeed_pricing_cache", payload, ttl=86400)
"""

import logging
from typing import Optional

from redis import asyncio as aioredis

logger = logging.getLogger(__name__)


class KVStore:
    """Thin async wrapper over a Redis client."""

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "KVStore":
        client = aioredis.Redis.from_url(
            url,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            decode_responses=True,
        )
        logger.info(f"Created Redis client for {url}")
        return cls(client)

    async def get(self, key: str) -> Optional[str]:
        value = await self._client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def put(self, key: str, value: str, ttl: Optional[int] = None):
        """Store a value, optionally expiring after `ttl` seconds."""
        await self._client.set(key, value, ex=ttl)

    async def delete(self, key: str):
        await self._client.delete(key)

    async def health_check(self) -> dict:
        try:
            await self._client.ping()
            return {"status": "healthy"}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}

    async def close(self):
        await self._client.aclose()
