"""Shared key/value store for cross-process "at most once" guards."""

from __future__ import annotations

from typing import Any, Protocol


class KeyValueStore(Protocol):
    async def set_once(self, key: str, ttl_seconds: int) -> bool:
        """Claim ``key`` for ``ttl_seconds``. Returns False if it is already claimed."""
        ...


class RedisKeyValueStore:
    """``KeyValueStore`` backed by Redis ``SET NX EX``."""

    def __init__(self, redis: Any, prefix: str = "phare:") -> None:
        self.redis = redis
        self.prefix = prefix

    async def set_once(self, key: str, ttl_seconds: int) -> bool:
        result = await self.redis.set(f"{self.prefix}{key}", "1", nx=True, ex=ttl_seconds)
        return bool(result)
