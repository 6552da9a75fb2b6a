"""
Proxy caching package.

Provides the pieces the request pipeline composes: canonical cache keys,
pagination clamping, per-operation TTLs, the cache store adapter, the
single-flight coordinator and the meta-guard. Cache writes are
best-effort and never block a client response.
"""

from .keys import CACHE_KEY_VERSION, canonicalize, derive_cache_key
from .pagination import clamp_pagination
from .ttl_policy import TtlPolicy, DEFAULT_TTL_SECONDS, pick_ttl_seconds
from .cache_store import CacheEntry, CacheStore, RedisCacheBackend, is_cacheable
from .singleflight import SingleFlight
from .meta_guard import MetaGuard

__all__ = [
    "CACHE_KEY_VERSION",
    "canonicalize",
    "derive_cache_key",
    "clamp_pagination",
    "TtlPolicy",
    "DEFAULT_TTL_SECONDS",
    "pick_ttl_seconds",
    "CacheEntry",
    "CacheStore",
    "RedisCacheBackend",
    "is_cacheable",
    "SingleFlight",
    "MetaGuard",
]
