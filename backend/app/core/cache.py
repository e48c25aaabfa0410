"""
Advisory weather cache - `CacheProvider` capability with three backends.

A cached entry is a snapshot of one weather query plus its freshness
window. The cache is never authoritative:

    • a fresh entry short-circuits the upstream call
    • a stale entry is only served when the upstream call fails
    • a missing or broken cache never blocks serving fresh data

Backends:
    RedisCache   - async Redis (shared across workers)
    MemoryCache  - per-process dict (single worker / tests)
    NullCache    - no-op, swapped in when storage is unavailable

Usage:
    from backend.app.core.cache import create_cache

    cache = await create_cache()
    entry = await cache.get("Pune, India")
    if entry and entry.is_fresh:
        ...
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import redis.asyncio as aioredis

from backend.app.core.config import settings
from backend.app.core.errors import CacheError

logger = logging.getLogger(__name__)

KEY_PREFIX = "weather:"


def normalize_query(query: str) -> str:
    """Lower-case and collapse whitespace so equivalent queries share a key."""
    return " ".join((query or "").lower().split())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CachedWeather:
    """One cached weather query result."""

    query: str
    snapshot: Dict[str, Any]
    cached_at: datetime
    expires_at: datetime

    @property
    def is_fresh(self) -> bool:
        return self.expires_at > _utcnow()

    def meta(self) -> Dict[str, Any]:
        return {
            "cached_at": self.cached_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "is_stale": not self.is_fresh,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "snapshot": self.snapshot,
            "cached_at": self.cached_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CachedWeather":
        return cls(
            query=data["query"],
            snapshot=data.get("snapshot") or {},
            cached_at=datetime.fromisoformat(data["cached_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )

    @classmethod
    def build(cls, query: str, snapshot: Dict[str, Any], ttl: int) -> "CachedWeather":
        now = _utcnow()
        return cls(
            query=normalize_query(query),
            snapshot=snapshot,
            cached_at=now,
            expires_at=now + timedelta(seconds=ttl),
        )


# ═══════════════════════════════════════════════════════════════════════════
# Capability interface
# ═══════════════════════════════════════════════════════════════════════════

class CacheProvider(ABC):
    """
    Storage capability used by the weather service.

    `get` returns the most recent entry whether fresh or stale, and returns
    None on any read failure. `put` raises CacheError on write failure; the
    caller decides whether to surface it (the weather service never does).
    """

    name = "abstract"

    def __init__(self, ttl: Optional[int] = None, stale_retention: Optional[int] = None):
        self.ttl = ttl if ttl is not None else settings.WEATHER_CACHE_TTL
        self.stale_retention = (
            stale_retention if stale_retention is not None
            else settings.WEATHER_STALE_RETENTION
        )

    @abstractmethod
    async def get(self, query: str) -> Optional[CachedWeather]:
        ...

    @abstractmethod
    async def put(self, query: str, snapshot: Dict[str, Any]) -> CachedWeather:
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class NullCache(CacheProvider):
    """Caches nothing. Every lookup misses."""

    name = "none"

    async def get(self, query: str) -> Optional[CachedWeather]:
        return None

    async def put(self, query: str, snapshot: Dict[str, Any]) -> CachedWeather:
        return CachedWeather.build(query, snapshot, self.ttl)


class MemoryCache(CacheProvider):
    """Per-process cache. Entries older than the stale retention are dropped."""

    name = "memory"

    def __init__(self, ttl: Optional[int] = None, stale_retention: Optional[int] = None):
        super().__init__(ttl, stale_retention)
        self._entries: Dict[str, CachedWeather] = {}

    def _expired(self, entry: CachedWeather, now: datetime) -> bool:
        return entry.cached_at + timedelta(seconds=self.stale_retention) < now

    def _evict_expired(self) -> None:
        now = _utcnow()
        for key in [k for k, e in self._entries.items() if self._expired(e, now)]:
            del self._entries[key]

    async def get(self, query: str) -> Optional[CachedWeather]:
        key = normalize_query(query)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, _utcnow()):
            del self._entries[key]
            return None
        return entry

    async def put(self, query: str, snapshot: Dict[str, Any]) -> CachedWeather:
        self._evict_expired()
        entry = CachedWeather.build(query, snapshot, self.ttl)
        self._entries[entry.query] = entry
        return entry

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(CacheProvider):
    """Redis-backed cache. Keys expire after the stale retention window."""

    name = "redis"

    def __init__(
        self,
        url: Optional[str] = None,
        ttl: Optional[int] = None,
        stale_retention: Optional[int] = None,
        client: Optional[aioredis.Redis] = None,
    ):
        super().__init__(ttl, stale_retention)
        self.url = url or settings.REDIS_URL
        self._client = client

    def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def get(self, query: str) -> Optional[CachedWeather]:
        key = KEY_PREFIX + normalize_query(query)
        try:
            raw = await self._get_client().get(key)
            if raw is None:
                return None
            return CachedWeather.from_dict(json.loads(raw))
        except Exception as e:
            logger.warning("Cache GET error for %s: %s", key, e)
            return None

    async def put(self, query: str, snapshot: Dict[str, Any]) -> CachedWeather:
        entry = CachedWeather.build(query, snapshot, self.ttl)
        key = KEY_PREFIX + entry.query
        try:
            await self._get_client().set(
                key,
                json.dumps(entry.to_dict(), default=str),
                ex=self.stale_retention,
            )
        except Exception as e:
            raise CacheError("write", str(e)) from e
        return entry

    async def ping(self) -> bool:
        try:
            return bool(await self._get_client().ping())
        except Exception as e:
            logger.warning("Redis ping failed: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")


async def create_cache(backend: Optional[str] = None) -> CacheProvider:
    """
    Build the configured cache provider.

    Redis that cannot be reached at startup is replaced by NullCache so the
    service runs uncached instead of failing.
    """
    backend = (backend or settings.CACHE_BACKEND).lower()

    if backend == "memory":
        return MemoryCache()
    if backend == "redis":
        cache = RedisCache()
        if await cache.ping():
            logger.info("Redis cache connected: %s", settings.REDIS_URL)
            return cache
        logger.warning("Redis unavailable at %s, caching disabled", settings.REDIS_URL)
        await cache.close()
        return NullCache()
    if backend != "none":
        logger.warning("Unknown CACHE_BACKEND %r, caching disabled", backend)
    return NullCache()
