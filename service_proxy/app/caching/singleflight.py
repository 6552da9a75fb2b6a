"""
Single-flight coordination of upstream calls.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from shared.logging import get_logger
from shared.metrics import MetricsCollector

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """At most one in-progress call per key within this process.

    Callers arriving while a call for the same key is running await that
    call's result instead of starting their own. The shared call runs as its
    own task, so a waiter being cancelled never cancels it for the others.
    The slot is released as soon as the call settles, success or failure.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics
        self.logger = get_logger("proxy.singleflight")
        self._in_flight: Dict[str, "asyncio.Task[T]"] = {}

    def __len__(self) -> int:
        return len(self._in_flight)

    def __contains__(self, key: str) -> bool:
        return key in self._in_flight

    async def execute(self, key: str, work: Callable[[], Awaitable[T]]) -> Tuple[T, bool]:
        """Run ``work`` for ``key`` or join the running call.

        Returns the result and whether this caller joined an existing call.
        """
        # No await between the lookup and the insert: slot creation is atomic
        # with respect to other coroutines on this loop.
        task = self._in_flight.get(key)
        if task is not None:
            self.logger.debug("Joining in-flight call", key=key[:16])
            return await asyncio.shield(task), True

        task = asyncio.get_running_loop().create_task(self._run(key, work))
        self._in_flight[key] = task
        self._update_gauge()
        task.add_done_callback(self._consume)
        return await asyncio.shield(task), False

    async def _run(self, key: str, work: Callable[[], Awaitable[T]]) -> T:
        try:
            return await work()
        finally:
            self._in_flight.pop(key, None)
            self._update_gauge()

    @staticmethod
    def _consume(task: "asyncio.Task[T]") -> None:
        # Retrieve the exception so an abandoned failure is not reported as unhandled
        if not task.cancelled():
            task.exception()

    def _update_gauge(self) -> None:
        if self.metrics:
            self.metrics.set_gauge("singleflight_in_flight", len(self._in_flight))
