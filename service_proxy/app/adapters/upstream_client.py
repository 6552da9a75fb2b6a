"""
Async HTTP client for the upstream GraphQL indexer.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from shared.errors import (
    ExternalServiceError,
    UpstreamFetchError,
    UpstreamNotConfiguredError,
    UpstreamTimeoutError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector

PROGRESS_QUERY = "query __Meta { _meta { block { number } } }"
PROGRESS_OPERATION = "__Meta"
DEFAULT_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class Outcome:
    """Result of one upstream attempt, shared by every coalesced waiter."""

    status: int
    content_type: str
    body: str
    success: bool

    @classmethod
    def from_response(cls, response: httpx.Response) -> "Outcome":
        return cls(
            status=response.status_code,
            content_type=response.headers.get("content-type", DEFAULT_CONTENT_TYPE),
            body=response.text,
            success=response.is_success,
        )

    @classmethod
    def from_error(cls, exc: ExternalServiceError) -> "Outcome":
        return cls(
            status=exc.status_code,
            content_type=DEFAULT_CONTENT_TYPE,
            body=exc.to_response().model_dump_json(),
            success=False,
        )


def parse_progress_counter(text: str) -> Optional[int]:
    """Extract ``data._meta.block.number``; ``None`` when absent or non-numeric."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError):
        return None

    try:
        value = payload["data"]["_meta"]["block"]["number"]
    except (KeyError, TypeError):
        return None

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


class UpstreamClient:
    """Bounded-time calls to the upstream GraphQL endpoint."""

    def __init__(
        self,
        upstream_url: str,
        *,
        timeout: float = 10.0,
        progress_timeout: float = 8.0,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.upstream_url = upstream_url
        self.timeout = timeout
        self.progress_timeout = progress_timeout
        self.metrics = metrics
        self.logger = get_logger("proxy.upstream")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self.upstream_url)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def post(
        self,
        payload: Dict[str, Any],
        *,
        timeout: Optional[float] = None,
        operation: str = "query",
    ) -> httpx.Response:
        """POST ``payload`` upstream, raising typed errors on transport failure."""
        if not self.configured:
            raise UpstreamNotConfiguredError()

        start = time.perf_counter()
        outcome = "error"
        try:
            response = await self._client.post(
                self.upstream_url,
                json=payload,
                headers={"content-type": "application/json"},
                timeout=timeout if timeout is not None else self.timeout,
            )
            outcome = "ok" if response.is_success else "http_error"
            return response
        except httpx.TimeoutException as exc:
            outcome = "timeout"
            self.logger.warning("Upstream request timed out", operation=operation, error=str(exc))
            raise UpstreamTimeoutError(str(exc) or "timeout") from exc
        except httpx.HTTPError as exc:
            outcome = "fetch_failed"
            self.logger.error("Upstream request failed", operation=operation, error=str(exc))
            raise UpstreamFetchError(str(exc) or exc.__class__.__name__) from exc
        finally:
            if self.metrics:
                self.metrics.increment_counter("upstream_requests_total", operation=operation, outcome=outcome)
                self.metrics.observe_histogram(
                    "upstream_request_duration_seconds",
                    time.perf_counter() - start,
                    operation=operation,
                )

    async def execute(self, query: str, variables: Dict[str, Any]) -> Outcome:
        """Run a client query and normalize the result into an ``Outcome``."""
        try:
            response = await self.post({"query": query, "variables": variables})
        except ExternalServiceError as exc:
            return Outcome.from_error(exc)

        self.logger.debug("Upstream query completed", status_code=response.status_code)
        return Outcome.from_response(response)

    async def probe_progress(self) -> httpx.Response:
        """Issue the fixed progress query; transport failures raise."""
        return await self.post(
            {"query": PROGRESS_QUERY, "variables": {}, "operationName": PROGRESS_OPERATION},
            timeout=self.progress_timeout,
            operation="progress",
        )

    async def fetch_progress(self) -> Optional[int]:
        """Current upstream progress counter, or ``None`` when unknown."""
        try:
            response = await self.probe_progress()
        except ExternalServiceError as exc:
            self.logger.info("Progress probe failed", error=exc.message)
            return None

        if not response.is_success:
            self.logger.info("Progress probe rejected", status_code=response.status_code)
            return None

        counter = parse_progress_counter(response.text)
        if counter is None:
            self.logger.info("Progress probe returned no usable counter")
        return counter
