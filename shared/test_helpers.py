"""
Test helper functions and fakes for the GraphQL edge cache.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

UPSTREAM_URL = "http://indexer.test/graphql"


class InMemoryCacheBackend:
    """Dict-backed stand-in for the shared cache collaborator.

    Records every write as ``(address, value, ttl)`` and can be switched to
    fail reads or writes.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.writes: List[Tuple[str, str, int]] = []
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, address: str) -> Optional[str]:
        if self.fail_reads:
            raise ConnectionError("cache read unavailable")
        return self.data.get(address)

    async def set(self, address: str, value: str, ttl_seconds: int) -> None:
        if self.fail_writes:
            raise ConnectionError("cache write unavailable")
        self.data[address] = value
        self.writes.append((address, value, ttl_seconds))

    async def ping(self) -> bool:
        return not self.fail_reads

    async def close(self) -> None:
        return None


@dataclass
class FakeUpstream:
    """Scriptable GraphQL upstream served through ``httpx.MockTransport``.

    ``progress`` is the block number reported to progress probes; set it to
    ``None`` to make the probe fail at the transport level.
    """

    payload: Dict[str, Any] = field(default_factory=lambda: {"data": {"items": [1, 2, 3]}})
    status_code: int = 200
    content_type: str = "application/json"
    progress: Optional[int] = 100
    delay: float = 0.0
    query_error: Optional[Callable[[httpx.Request], Exception]] = None
    queries: List[Dict[str, Any]] = field(default_factory=list)
    probes: int = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")

        if body.get("operationName") == "__Meta":
            self.probes += 1
            if self.progress is None:
                raise httpx.ConnectError("progress probe unavailable", request=request)
            return httpx.Response(
                200,
                json={"data": {"_meta": {"block": {"number": self.progress}}}},
                request=request,
            )

        self.queries.append(body)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.query_error is not None:
            raise self.query_error(request)
        return httpx.Response(
            self.status_code,
            content=json.dumps(self.payload).encode(),
            headers={"content-type": self.content_type},
            request=request,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def graphql_body(query: str, variables: Optional[Dict[str, Any]] = None) -> bytes:
    """Encode a client request body."""
    return json.dumps({"query": query, "variables": variables or {}}).encode()
