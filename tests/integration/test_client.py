"""
Integration tests for GfApi over real HTTP using the stub server.
[CTX:PBI-1:1-9:STUB]

Test scenarios:
1. Requests carry the Authorization header and JSON content types
2. A three-page traversal follows next_page URLs, then returns EMPTY
3. Failure envelopes and inventory errors raise ApiError
4. Connection failures raise TransportError
5. Concurrent calls are spaced by the configured interval
"""
import asyncio
import json
import re

import pytest

from gfapi import EMPTY, ApiError, GfApi, TransportError
from gfapi.core.config import ClientConfig, DEFAULT_BASE_URLS
from gfapi.core.rate_limiter import FakeTimeProvider, RateLimiter

from tests.conftest import TEST_KEY, TEST_SECRET

from .stub_server import (
    StubResponse,
    StubServer,
    fail_response,
    inventory_response,
    success_response,
)

AUTH_HEADER = re.compile(rf"^GFAPI {TEST_KEY}:\d{{6}}$")


# [CTX:PBI-1:1-9:STUB] Fixtures
@pytest.fixture
async def stub_server():
    """Provide stub server on an ephemeral port."""
    server = StubServer(host="127.0.0.1")
    await server.start()

    yield server

    await server.stop()


def make_config(stub_server, interval_ms=0):
    return ClientConfig(
        base_urls=dict(DEFAULT_BASE_URLS, test=stub_server.get_url("/api/v1")),
        inventory_url=stub_server.get_url("/inventory/{profile_id}/{app_id}/{context_id}"),
        rate_limit_interval_ms=interval_ms,
    )


@pytest.fixture
async def api(stub_server):
    """Client pointed at the stub server, paced on fake time."""
    client = GfApi(
        TEST_KEY,
        TEST_SECRET,
        config=make_config(stub_server),
        rate_limiter=RateLimiter(interval=1.0, time_provider=FakeTimeProvider()),
    )
    yield client
    await client.close()


class TestWireFormat:
    """Test what reaches the server."""

    async def test_get_sends_authorization(self, api, stub_server):
        stub_server.enqueue_response(success_response({"display_name": "seller"}))

        profile = await api.profile_get()

        assert profile == {"display_name": "seller"}
        request = stub_server.request_history[0]
        assert request["method"] == "GET"
        assert request["path"] == "/api/v1/account/me/profile"
        assert AUTH_HEADER.match(request["headers"]["Authorization"])

    async def test_post_sends_json(self, api, stub_server):
        listing = {"name": "Case Key", "price": 250, "category": "DIGITAL_INGAME"}
        stub_server.enqueue_response(success_response({"id": "l1", "status": "draft"}))

        created = await api.listing_post(listing)

        assert created["id"] == "l1"
        request = stub_server.request_history[0]
        assert request["headers"]["Content-Type"] == "application/json"
        assert json.loads(request["body"]) == listing

    async def test_patch_sends_json_patch(self, api, stub_server):
        ops = [{"op": "replace", "path": "/status", "value": "onsale"}]
        stub_server.enqueue_response(success_response({"id": "l1", "status": "onsale"}))

        await api.listing_patch("l1", ops)

        request = stub_server.request_history[0]
        assert request["method"] == "PATCH"
        assert request["headers"]["Content-Type"] == "application/json-patch+json"
        assert json.loads(request["body"]) == ops

    async def test_post_without_body(self, api, stub_server):
        stub_server.enqueue_response(success_response({"id": "b1"}))

        await api.bulk_post()

        assert stub_server.request_history[0]["body"] == ""


class TestPagination:
    """Test list traversal over HTTP."""

    async def test_three_pages_then_empty(self, api, stub_server):
        page2 = stub_server.get_url("/api/v1/steam/escrow/mine?status=received&start=2")
        page3 = stub_server.get_url("/api/v1/steam/escrow/mine?status=received&start=3")
        stub_server.enqueue_responses([
            success_response([{"id": "e1"}], next_page=page2),
            success_response([{"id": "e2"}], next_page=page3),
            success_response([{"id": "e3"}]),
        ])
        query = {"status": "received", "limit": 1}

        results = []
        while True:
            escrows = await api.escrow_mine_get(query)
            if escrows is EMPTY:
                break
            results.extend(escrows)

        assert [e["id"] for e in results] == ["e1", "e2", "e3"]
        assert [r["path_qs"] for r in stub_server.request_history] == [
            "/api/v1/steam/escrow/mine?status=received&limit=1",
            "/api/v1/steam/escrow/mine?status=received&start=2",
            "/api/v1/steam/escrow/mine?status=received&start=3",
        ]

    async def test_inventory_pages(self, api, stub_server):
        stub_server.enqueue_responses([
            inventory_response([{"assetid": "11"}], last_assetid="11", more_items=1),
            inventory_response([{"assetid": "12"}]),
        ])

        pages = [page async for page in api.pages(
            lambda q: api.steam_inventory_get("765", "730", q), {"count": 1}
        )]

        assert [p["assets"][0]["assetid"] for p in pages] == ["11", "12"]
        assert [r["path_qs"] for r in stub_server.request_history] == [
            "/inventory/765/730/2?count=1",
            "/inventory/765/730/2?count=1&start_assetid=11",
        ]
        assert "Authorization" not in stub_server.request_history[0]["headers"]


class TestErrors:
    """Test failures over HTTP."""

    async def test_trade_ban(self, api, stub_server):
        stub_server.enqueue_response(fail_response(422, message="Steam trade hold"))

        with pytest.raises(ApiError) as exc_info:
            await api.check_trade_ban()

        assert exc_info.value.status_code == 422
        assert exc_info.value.status_message == "Steam trade hold"

    async def test_non_json_error_body(self, api, stub_server):
        stub_server.enqueue_response(StubResponse(status=502, body="<html>Bad Gateway</html>"))

        with pytest.raises(ApiError) as exc_info:
            await api.listing_get("l1")

        assert exc_info.value.status_code == 502

    async def test_undecodable_error_body(self, api, stub_server):
        stub_server.enqueue_response(
            StubResponse(status=502, body=b"\xff\xfe<html>bad gateway\x80")
        )

        with pytest.raises(ApiError) as exc_info:
            await api.listing_get("l1")

        assert exc_info.value.status_code == 502
        assert exc_info.value.status_message == "Bad Gateway"

    async def test_undecodable_success_body_is_failure(self, api, stub_server, recorder):
        stub_server.enqueue_response(StubResponse(status=200, body=b"\x80\x81"))

        with pytest.raises(ApiError):
            await api.profile_get()

        outcomes = [e.outcome for e in recorder.get_events() if e.outcome]
        assert outcomes == ["fail"]

    async def test_inventory_unavailable(self, api, stub_server):
        stub_server.enqueue_response(StubResponse(status=503, body={"success": False}))

        with pytest.raises(ApiError) as exc_info:
            await api.steam_inventory_get("765", "730")

        assert exc_info.value.status_code == 503

    async def test_connection_refused(self):
        server = StubServer()
        await server.start()
        config = make_config(server)
        await server.stop()

        async with GfApi(TEST_KEY, TEST_SECRET, config=config) as api:
            with pytest.raises(TransportError) as exc_info:
                await api.profile_get()

        assert exc_info.value.method == "GET"
        assert "/api/v1/account/me/profile" in exc_info.value.url


class TestPacing:
    """Test real-clock spacing of concurrent calls."""

    async def test_concurrent_calls_spaced(self, stub_server):
        for i in range(4):
            stub_server.enqueue_response(success_response({"id": f"l{i}"}))

        async with GfApi(TEST_KEY, TEST_SECRET, config=make_config(stub_server, interval_ms=100)) as api:
            await asyncio.gather(*(api.listing_get(f"l{i}") for i in range(4)))

        stamps = [r["timestamp"] for r in stub_server.request_history]
        for n, stamp in enumerate(stamps):
            assert stamp - stamps[0] >= n * 0.1 - 0.04
        assert api.rate_limiter.get_stats().requests_throttled == 3
