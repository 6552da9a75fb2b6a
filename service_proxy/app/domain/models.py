"""
Request and response shapes for the proxy pipeline.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from shared.errors import BadRequestError, PayloadTooLargeError

from service_proxy.app.caching.ttl_policy import edge_cache_control

MAX_QUERY_LENGTH = 60_000


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {token}")


class CacheStatus(str, Enum):
    """Diagnostic tag reported in ``X-Cache``."""

    HIT = "HIT"
    MISS = "MISS"
    COALESCED = "COALESCED"
    BYPASS = "BYPASS"
    COALESCED_BYPASS = "COALESCED_BYPASS"
    BYPASS_NO_WRITE = "BYPASS_NO_WRITE"
    ERROR = "ERROR"


@dataclass
class QueryRequest:
    """A client GraphQL request."""

    query: str
    variables: Dict[str, Any] = field(default_factory=dict)
    force_fresh: bool = False

    @classmethod
    def from_body(
        cls,
        raw: bytes,
        *,
        force_fresh: bool = False,
        max_query_length: int = MAX_QUERY_LENGTH,
    ) -> "QueryRequest":
        """Parse a raw JSON body, rejecting malformed, empty or oversized queries."""
        try:
            body = json.loads(raw, parse_constant=_reject_constant) if raw else {}
        except ValueError as exc:
            raise BadRequestError("Bad JSON", details={"error": str(exc)}) from exc

        if not isinstance(body, dict):
            body = {}

        query = body.get("query")
        if not isinstance(query, str):
            query = ""
        variables = body.get("variables")
        if not isinstance(variables, dict):
            variables = {}

        if not query:
            raise BadRequestError("Missing query")
        if len(query) > max_query_length:
            raise PayloadTooLargeError(details={"length": len(query), "limit": max_query_length})

        return cls(query=query, variables=variables, force_fresh=force_fresh)


@dataclass(frozen=True)
class ProxyResponse:
    """What the pipeline hands back to the HTTP layer."""

    status: int
    content_type: str
    body: str
    ttl_seconds: int
    cache_status: CacheStatus

    @property
    def headers(self) -> Dict[str, str]:
        directives = edge_cache_control(self.ttl_seconds)
        return {
            "content-type": self.content_type,
            "Cache-Control": directives,
            "CDN-Cache-Control": directives,
            "X-Cache": self.cache_status.value,
        }


def is_force_fresh(header_value: str) -> bool:
    """Forced-fresh is requested by a header value of exactly ``1``."""
    return (header_value or "").strip() == "1"
