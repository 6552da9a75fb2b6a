"""
Best-effort adapter over the shared edge cache.

Lookups that fail behave like misses and writes run in the background, so
the cache can degrade to always-miss without affecting client responses.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol, Set

import redis.asyncio as redis

from shared.errors import CacheStoreUnavailable
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_proxy.app.adapters.upstream_client import Outcome


@dataclass(frozen=True)
class CacheEntry:
    """A cached upstream response."""

    status: int
    content_type: str
    body: str
    ttl_seconds: int

    @classmethod
    def from_outcome(cls, outcome: Outcome, ttl_seconds: int) -> "CacheEntry":
        return cls(
            status=outcome.status,
            content_type=outcome.content_type,
            body=outcome.body,
            ttl_seconds=ttl_seconds,
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        payload: Dict[str, Any] = json.loads(raw)
        return cls(
            status=int(payload["status"]),
            content_type=str(payload["content_type"]),
            body=str(payload["body"]),
            ttl_seconds=int(payload["ttl_seconds"]),
        )


def is_cacheable(outcome: Outcome) -> bool:
    """Only successful results that are not GraphQL error payloads may be cached."""
    if not outcome.success:
        return False
    if "application/json" not in outcome.content_type.lower():
        return True
    try:
        parsed = json.loads(outcome.body)
    except ValueError:
        return False
    return not (isinstance(parsed, dict) and "errors" in parsed)


class CacheBackend(Protocol):
    """Key-value collaborator with engine-enforced expiry."""

    async def get(self, address: str) -> Optional[str]: ...

    async def set(self, address: str, value: str, ttl_seconds: int) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisCacheBackend:
    """Redis implementation of ``CacheBackend``."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def get(self, address: str) -> Optional[str]:
        redis_client = await self._get_redis()
        return await redis_client.get(address)

    async def set(self, address: str, value: str, ttl_seconds: int) -> None:
        redis_client = await self._get_redis()
        await redis_client.setex(address, max(1, int(ttl_seconds)), value)

    async def ping(self) -> bool:
        redis_client = await self._get_redis()
        return bool(await redis_client.ping())

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


class CacheStore:
    """Response cache and progress records behind ``lookup``/``store``."""

    def __init__(
        self,
        backend: CacheBackend,
        *,
        namespace: str = "graphql-edge",
        metrics: Optional[MetricsCollector] = None,
    ):
        self.backend = backend
        self.namespace = namespace
        self.metrics = metrics
        self.logger = get_logger("proxy.cache_store")
        self._pending: Set[asyncio.Task] = set()

    def cache_address(self, key: str) -> str:
        return f"{self.namespace}:cache:{key}"

    def meta_address(self, key: str) -> str:
        return f"{self.namespace}:meta:{key}"

    async def _read(self, address: str) -> Optional[str]:
        try:
            return await self.backend.get(address)
        except Exception as exc:
            raise CacheStoreUnavailable(str(exc), details={"address": address}) from exc

    async def lookup(self, key: str) -> Optional[CacheEntry]:
        """Cached entry for ``key``; any failure reads as a miss."""
        try:
            raw = await self._read(self.cache_address(key))
        except CacheStoreUnavailable as exc:
            self.logger.error("Cache lookup failed", key=key[:16], error=exc.message)
            return None

        if raw is None:
            return None

        try:
            return CacheEntry.from_json(raw)
        except (ValueError, KeyError, TypeError) as exc:
            self.logger.warning("Discarding malformed cache entry", key=key[:16], error=str(exc))
            return None

    def store(self, key: str, entry: CacheEntry, ttl_seconds: Optional[int] = None) -> None:
        """Schedule a write of ``entry``; never blocks and never raises."""
        ttl = entry.ttl_seconds if ttl_seconds is None else ttl_seconds
        task = asyncio.get_running_loop().create_task(self._write(key, entry, ttl))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, key: str, entry: CacheEntry, ttl: int) -> bool:
        try:
            await self.backend.set(self.cache_address(key), entry.to_json(), ttl)
        except Exception as exc:
            self.logger.error("Cache store failed", key=key[:16], ttl=ttl, error=str(exc))
            self._record_write("error")
            return False

        self.logger.debug("Cached response", key=key[:16], ttl=ttl, status=entry.status)
        self._record_write("ok")
        return True

    async def drain(self) -> None:
        """Wait for scheduled writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def lookup_progress(self, key: str) -> Optional[int]:
        """Last recorded progress counter for ``key``; failures read as absent."""
        try:
            raw = await self._read(self.meta_address(key))
        except CacheStoreUnavailable as exc:
            self.logger.error("Progress record lookup failed", key=key[:16], error=exc.message)
            return None

        if raw is None:
            return None
        try:
            return int(str(raw).strip())
        except ValueError:
            self.logger.warning("Discarding malformed progress record", key=key[:16], value=raw)
            return None

    async def store_progress(self, key: str, counter: int, ttl_seconds: int) -> bool:
        """Persist ``counter`` as the progress record for ``key``."""
        try:
            await self.backend.set(self.meta_address(key), str(counter), ttl_seconds)
            return True
        except Exception as exc:
            self.logger.error("Progress record store failed", key=key[:16], error=str(exc))
            return False

    async def ping(self) -> bool:
        try:
            return await self.backend.ping()
        except Exception as exc:
            self.logger.warning("Cache backend ping failed", error=str(exc))
            return False

    async def close(self) -> None:
        await self.drain()
        await self.backend.close()

    def _record_write(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_writes_total", status=status)
