"""
Unit tests for pagination clamping.
"""

import pytest

from service_proxy.app.caching.keys import derive_cache_key
from service_proxy.app.caching.pagination import clamp_number, clamp_pagination


class TestClampNumber:
    """Test cases for clamp_number."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (50, 50),
            (0, 1),
            (9999, 200),
            (12.9, 12),
            ("25", 25),
            (" 7 ", 7),
            ("9999", 200),
            ("1e2", 100),
            ("abc", 1),
            ("", 1),
            (None, 1),
            (True, 1),
            (float("inf"), 1),
            (float("nan"), 1),
            ("Infinity", 1),
            ([5], 1),
        ],
    )
    def test_first_range(self, value, expected):
        assert clamp_number(value, 1, 200) == expected

    def test_negative_skip_clamps_to_zero(self):
        assert clamp_number(-10, 0, 100_000) == 0
        assert clamp_number("250000", 0, 100_000) == 100_000


class TestClampPagination:
    """Test cases for clamp_pagination."""

    def test_top_level_fields(self):
        variables = {"first": "9999", "skip": -5, "ids": list(range(500)), "id": "42"}

        clamp_pagination(variables)

        assert variables["first"] == 200
        assert variables["skip"] == 0
        assert variables["ids"] == list(range(200))
        assert variables["id"] == "42"

    def test_nested_mappings_and_lists(self):
        variables = {
            "where": {"first": 0, "lotteryIds": ["x"] * 300},
            "pages": [{"skip": "1000000"}, {"first": "oops"}],
        }

        clamp_pagination(variables)

        assert variables["where"]["first"] == 1
        assert len(variables["where"]["lotteryIds"]) == 200
        assert variables["pages"][0]["skip"] == 100_000
        assert variables["pages"][1]["first"] == 1

    def test_ids_suffix_requires_capital(self):
        variables = {"userids": list(range(300)), "ids": "not-a-list"}

        clamp_pagination(variables)

        assert len(variables["userids"]) == 300
        assert variables["ids"] == "not-a-list"

    def test_returns_same_object(self):
        variables = {"first": 3}

        assert clamp_pagination(variables) is variables

    def test_non_mapping_roots_are_ignored(self):
        assert clamp_pagination(None) is None
        assert clamp_pagination("first") == "first"

    def test_cyclic_input_terminates(self):
        variables = {"first": 500}
        variables["loop"] = variables

        clamp_pagination(variables)

        assert variables["first"] == 200

    def test_out_of_range_values_share_cache_key(self):
        query = "query LotteryById($id: ID!){ lottery(id: $id) { id } }"
        huge = clamp_pagination({"id": "42", "first": "9999"})
        capped = clamp_pagination({"id": "42", "first": 200})

        assert huge["first"] == 200
        assert derive_cache_key(query, huge) == derive_cache_key(query, capped)
