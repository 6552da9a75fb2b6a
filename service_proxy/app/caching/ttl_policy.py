"""
Freshness windows per GraphQL operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

DEFAULT_TTL_SECONDS = 8


@dataclass(frozen=True)
class TtlRule:
    """A TTL applied when any of ``patterns`` occurs in the lowercased query."""

    ttl_seconds: int
    patterns: Tuple[str, ...]

    def matches(self, lowered_query: str) -> bool:
        return any(pattern in lowered_query for pattern in self.patterns)


# Evaluated in order; first match wins. Patterns target "query <Name>"
# declarations of the known client operations.
DEFAULT_RULES: Tuple[TtlRule, ...] = (
    # progress / feed
    TtlRule(3, ("query globalfeed", "_meta", "query __meta")),
    # homepage / billboard
    TtlRule(8, ("query globalstats", "query globalstatsbillboard", "query homelotteries")),
    # detail / user pages
    TtlRule(15, ("query lotterybyid", "query userlotteriesbyuser", "query userlotteriesbylottery")),
    # creator / recipient filtered lists
    TtlRule(20, ("query lotteriesbycreator", "query lotteriesbyfeerecipient")),
)


class TtlPolicy:
    """Maps query text to a freshness window in seconds."""

    def __init__(
        self,
        rules: Sequence[TtlRule] = DEFAULT_RULES,
        default_ttl: int = DEFAULT_TTL_SECONDS,
    ):
        self.rules = tuple(rules)
        self.default_ttl = default_ttl

    def ttl_seconds(self, query: str) -> int:
        lowered = query.lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule.ttl_seconds
        return self.default_ttl


_default_policy = TtlPolicy()


def pick_ttl_seconds(query: str) -> int:
    """TTL for ``query`` under the default policy."""
    return _default_policy.ttl_seconds(query)


def edge_cache_control(ttl: int) -> str:
    """Intermediary-cacheable for ``ttl`` seconds, never cached by the client."""
    return f"public, max-age=0, s-maxage={ttl}, stale-while-revalidate={ttl}"
