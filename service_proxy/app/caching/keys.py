"""
Canonical cache-key derivation for GraphQL requests.

Two requests map to the same key iff their query text and (clamped)
variables are deeply equal: mapping keys are sorted recursively, sequence
order is preserved, and a reference cycle collapses to ``null`` instead of
raising. The key version is hashed alongside the request so bumping it
orphans every previously cached entry without an explicit purge.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Mapping, Optional, Set

# Bump whenever the cacheable request shape or caching semantics change.
CACHE_KEY_VERSION = 1


def _normalize(value: Any, active: Set[int]) -> Any:
    if isinstance(value, Mapping):
        marker = id(value)
        if marker in active:
            return None
        active.add(marker)
        try:
            return {str(k): _normalize(value[k], active) for k in sorted(value, key=str)}
        finally:
            active.discard(marker)

    if isinstance(value, (list, tuple)):
        marker = id(value)
        if marker in active:
            return None
        active.add(marker)
        try:
            return [_normalize(item, active) for item in value]
        finally:
            active.discard(marker)

    return value


def canonicalize(value: Any) -> str:
    """Serialize ``value`` to a key-order independent JSON string."""
    return json.dumps(
        _normalize(value, set()),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=True,
    )


def derive_cache_key(
    query: str,
    variables: Optional[Dict[str, Any]] = None,
    *,
    version: int = CACHE_KEY_VERSION,
) -> str:
    """Return the hex SHA-256 cache key for a query + variables pair."""
    payload = canonicalize({"v": version, "query": query, "variables": variables or {}})
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
