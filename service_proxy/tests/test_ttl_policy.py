"""
Unit tests for the TTL policy.
"""

import pytest

from service_proxy.app.caching.ttl_policy import (
    DEFAULT_TTL_SECONDS,
    TtlPolicy,
    TtlRule,
    edge_cache_control,
    pick_ttl_seconds,
)


@pytest.mark.parametrize(
    "query, ttl",
    [
        ("query GlobalFeed { events { id } }", 3),
        ("query __Meta { _meta { block { number } } }", 3),
        ("{ _meta { block { number } } }", 3),
        ("query GlobalStatsBillboard { stats { id } }", 8),
        ("query HomeLotteries { lotteries { id } }", 8),
        ("query LotteryById($id: ID!){ lottery(id: $id) { id } }", 15),
        ("query UserLotteriesByUser($u: String!) { a }", 15),
        ("query UserLotteriesByLottery($l: String!) { a }", 15),
        ("query LotteriesByCreator($c: String!) { a }", 20),
        ("QUERY LOTTERIESBYFEERECIPIENT { a }", 20),
        ("query SomethingElse { a }", DEFAULT_TTL_SECONDS),
        ("{ lotteries { id } }", DEFAULT_TTL_SECONDS),
    ],
)
def test_pick_ttl_seconds(query, ttl):
    assert pick_ttl_seconds(query) == ttl


def test_first_matching_rule_wins():
    # Feed pattern outranks the detail pattern in the same document
    query = "query GlobalFeed { a } query LotteryById { b }"

    assert pick_ttl_seconds(query) == 3


def test_custom_rules_and_default():
    policy = TtlPolicy(rules=[TtlRule(42, ("query special",))], default_ttl=5)

    assert policy.ttl_seconds("query Special { a }") == 42
    assert policy.ttl_seconds("query GlobalFeed { a }") == 5


def test_edge_cache_control():
    assert edge_cache_control(15) == "public, max-age=0, s-maxage=15, stale-while-revalidate=15"
