"""
Per-request orchestration: clamp, key, lookup, coalesce, fetch, write.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_proxy.app.adapters.upstream_client import Outcome, UpstreamClient
from service_proxy.app.caching.cache_store import CacheEntry, CacheStore, is_cacheable
from service_proxy.app.caching.keys import derive_cache_key
from service_proxy.app.caching.meta_guard import MetaGuard
from service_proxy.app.caching.pagination import clamp_pagination
from service_proxy.app.caching.singleflight import SingleFlight
from service_proxy.app.caching.ttl_policy import TtlPolicy
from service_proxy.app.domain.models import CacheStatus, ProxyResponse, QueryRequest


class WriteDecision(str, Enum):
    STORED = "stored"
    NOT_CACHEABLE = "not_cacheable"
    GUARD_REJECTED = "guard_rejected"


@dataclass(frozen=True)
class Dispatch:
    """A shared upstream outcome and what happened to it cache-wise."""

    outcome: Outcome
    write: WriteDecision


class RequestPipeline:
    """Read-through cache in front of the upstream indexer."""

    def __init__(
        self,
        upstream: UpstreamClient,
        store: CacheStore,
        meta_guard: MetaGuard,
        *,
        singleflight: Optional[SingleFlight[Dispatch]] = None,
        ttl_policy: Optional[TtlPolicy] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.upstream = upstream
        self.store = store
        self.meta_guard = meta_guard
        self.singleflight = singleflight or SingleFlight(metrics=metrics)
        self.ttl_policy = ttl_policy or TtlPolicy()
        self.metrics = metrics
        self.logger = get_logger("proxy.pipeline")

    async def handle(self, request: QueryRequest) -> ProxyResponse:
        clamp_pagination(request.variables)
        ttl = self.ttl_policy.ttl_seconds(request.query)
        key = derive_cache_key(request.query, request.variables)

        if not request.force_fresh:
            cached = await self.store.lookup(key)
            if cached is not None:
                return self._respond(cached.status, cached.content_type, cached.body, ttl, CacheStatus.HIT)

        async def work() -> Dispatch:
            return await self._fetch_and_store(request, key, ttl)

        dispatch, joined = await self.singleflight.execute(key, work)
        outcome = dispatch.outcome

        if joined:
            status = CacheStatus.COALESCED_BYPASS if request.force_fresh else CacheStatus.COALESCED
        elif not request.force_fresh:
            status = CacheStatus.MISS
        elif dispatch.write is WriteDecision.GUARD_REJECTED:
            status = CacheStatus.BYPASS_NO_WRITE
        else:
            status = CacheStatus.BYPASS

        if not outcome.success:
            self.logger.info(
                "Serving upstream failure",
                key=key[:16],
                status_code=outcome.status,
                cache_status=status.value,
            )

        return self._respond(outcome.status, outcome.content_type, outcome.body, ttl, status)

    async def _fetch_and_store(self, request: QueryRequest, key: str, ttl: int) -> Dispatch:
        outcome = await self.upstream.execute(request.query, request.variables)

        if not is_cacheable(outcome):
            return Dispatch(outcome, WriteDecision.NOT_CACHEABLE)

        if request.force_fresh and not await self.meta_guard.should_write_through(key):
            return Dispatch(outcome, WriteDecision.GUARD_REJECTED)

        self.store.store(key, CacheEntry.from_outcome(outcome, ttl), ttl)
        return Dispatch(outcome, WriteDecision.STORED)

    def _respond(self, status: int, content_type: str, body: str, ttl: int, cache_status: CacheStatus) -> ProxyResponse:
        if self.metrics:
            self.metrics.increment_counter("cache_results_total", result=cache_status.value)
        return ProxyResponse(
            status=status,
            content_type=content_type,
            body=body,
            ttl_seconds=ttl,
            cache_status=cache_status,
        )
