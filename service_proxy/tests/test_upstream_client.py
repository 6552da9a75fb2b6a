"""
Unit tests for the upstream GraphQL client.
"""

import json

import httpx
import pytest

from service_proxy.app.adapters.upstream_client import (
    PROGRESS_OPERATION,
    PROGRESS_QUERY,
    UpstreamClient,
    parse_progress_counter,
)
from shared.errors import UpstreamFetchError, UpstreamNotConfiguredError, UpstreamTimeoutError
from shared.test_helpers import UPSTREAM_URL, FakeUpstream


def _client(handler, url=UPSTREAM_URL):
    return UpstreamClient(url, timeout=1.0, progress_timeout=1.0, transport=httpx.MockTransport(handler))


class TestParseProgressCounter:
    """Test cases for parse_progress_counter."""

    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"data": {"_meta": {"block": {"number": 123}}}}, 123),
            ({"data": {"_meta": {"block": {"number": "456"}}}}, 456),
            ({"data": {"_meta": {"block": {"number": 7.0}}}}, 7),
            ({"data": {"_meta": {"block": {"number": "abc"}}}}, None),
            ({"data": {"_meta": {"block": {"number": ""}}}}, None),
            ({"data": {"_meta": {"block": {"number": None}}}}, None),
            ({"data": {"_meta": {"block": {"number": True}}}}, None),
            ({"data": {"_meta": None}}, None),
            ({"errors": [{"message": "boom"}]}, None),
            ([], None),
        ],
    )
    def test_values(self, payload, expected):
        assert parse_progress_counter(json.dumps(payload)) == expected

    def test_invalid_json(self):
        assert parse_progress_counter("<html>") is None


class TestUpstreamClient:
    """Test cases for UpstreamClient."""

    @pytest.mark.asyncio
    async def test_execute_passes_response_through(self):
        upstream = FakeUpstream(payload={"data": {"lottery": {"id": "42"}}})
        client = UpstreamClient(UPSTREAM_URL, transport=upstream.transport())

        outcome = await client.execute("query LotteryById { a }", {"id": "42"})

        assert outcome.status == 200
        assert outcome.success is True
        assert outcome.content_type == "application/json"
        assert json.loads(outcome.body) == {"data": {"lottery": {"id": "42"}}}
        assert upstream.queries == [{"query": "query LotteryById { a }", "variables": {"id": "42"}}]
        await client.close()

    @pytest.mark.asyncio
    async def test_execute_non_2xx_is_unsuccessful(self):
        upstream = FakeUpstream(status_code=503, payload={"message": "down"})
        client = UpstreamClient(UPSTREAM_URL, transport=upstream.transport())

        outcome = await client.execute("query A { a }", {})

        assert outcome.status == 503
        assert outcome.success is False

    @pytest.mark.asyncio
    async def test_execute_timeout_maps_to_504(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = await _client(handler).execute("query A { a }", {})

        assert outcome.status == 504
        assert outcome.success is False
        assert json.loads(outcome.body)["code"] == "UPSTREAM_TIMEOUT"

    @pytest.mark.asyncio
    async def test_execute_transport_failure_maps_to_502(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = await _client(handler).execute("query A { a }", {})

        assert outcome.status == 502
        assert outcome.success is False
        assert json.loads(outcome.body)["code"] == "UPSTREAM_FETCH_FAILED"

    @pytest.mark.asyncio
    async def test_post_raises_typed_errors(self):
        def timeout(request):
            raise httpx.ConnectTimeout("slow", request=request)

        def refused(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamTimeoutError):
            await _client(timeout).post({"query": "q"})
        with pytest.raises(UpstreamFetchError):
            await _client(refused).post({"query": "q"})

    @pytest.mark.asyncio
    async def test_unconfigured_client_refuses(self):
        client = UpstreamClient("")

        assert client.configured is False
        with pytest.raises(UpstreamNotConfiguredError):
            await client.post({"query": "q"})

    @pytest.mark.asyncio
    async def test_fetch_progress_sends_fixed_probe(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"_meta": {"block": {"number": "987"}}}})

        assert await _client(handler).fetch_progress() == 987
        assert seen == [{"query": PROGRESS_QUERY, "variables": {}, "operationName": PROGRESS_OPERATION}]

    @pytest.mark.asyncio
    async def test_fetch_progress_unknown_cases(self):
        def rejected(request):
            return httpx.Response(500, json={"data": {"_meta": {"block": {"number": 5}}}})

        def empty(request):
            return httpx.Response(200, json={"data": {}})

        def broken(request):
            raise httpx.ReadTimeout("slow", request=request)

        assert await _client(rejected).fetch_progress() is None
        assert await _client(empty).fetch_progress() is None
        assert await _client(broken).fetch_progress() is None
