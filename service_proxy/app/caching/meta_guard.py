"""
Monotonic write-through guard for forced-fresh reads.

A client that has just mutated upstream state asks for a forced-fresh read.
If the indexer's read path has not caught up yet, writing that response
through would serve pre-mutation data to everyone until it expires. The
guard only lets such a write land when the upstream progress counter has
not gone backwards relative to the last counter recorded for the key.

The read-compare-write sequence is not atomic across processes: two
forced-fresh writers may both pass against the same old counter. Both
carry non-regressed data, so the race cannot lower what clients see.
"""

from __future__ import annotations

from typing import Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_proxy.app.adapters.upstream_client import UpstreamClient
from service_proxy.app.caching.cache_store import CacheStore

DEFAULT_PROGRESS_RECORD_TTL = 30 * 60


class MetaGuard:
    """Gates forced-fresh cache writes on upstream progress."""

    def __init__(
        self,
        upstream: UpstreamClient,
        store: CacheStore,
        *,
        record_ttl_seconds: int = DEFAULT_PROGRESS_RECORD_TTL,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.upstream = upstream
        self.store = store
        self.record_ttl_seconds = record_ttl_seconds
        self.metrics = metrics
        self.logger = get_logger("proxy.meta_guard")

    async def should_write_through(self, key: str) -> bool:
        """True when the write may land; advances the progress record if so."""
        observed = await self.upstream.fetch_progress()
        if observed is None:
            # Fail closed without positive evidence of progress
            self._record("unknown")
            self.logger.info("Skipping write-through, progress unknown", key=key[:16])
            return False

        recorded = await self.store.lookup_progress(key)
        if recorded is not None and observed < recorded:
            self._record("regressed")
            self.logger.warning(
                "Skipping write-through, upstream progress regressed",
                key=key[:16],
                observed=observed,
                recorded=recorded,
            )
            return False

        await self.store.store_progress(key, observed, self.record_ttl_seconds)
        self._record("accepted")
        self.logger.debug("Write-through accepted", key=key[:16], observed=observed, recorded=recorded)
        return True

    def _record(self, decision: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("meta_guard_decisions_total", decision=decision)
