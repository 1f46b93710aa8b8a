"""Tests for docbinder.fetch (relay strategies and the gateway)."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from docbinder.config import PipelineConfig
from docbinder.fetch import (
    ALLORIGINS,
    CORSPROXY,
    DIRECT,
    FetchError,
    FetchGateway,
    FetchTimeout,
    fetch_markup,
    resolve_strategies,
)

TARGET = "https://docs.example.com/guide?x=1"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestStrategies:
    def test_allorigins_url_is_encoded(self):
        assert ALLORIGINS.build_url(TARGET) == (
            "https://api.allorigins.win/get?url="
            "https%3A%2F%2Fdocs.example.com%2Fguide%3Fx%3D1"
        )

    def test_corsproxy_url(self):
        assert CORSPROXY.build_url("https://x.com/").startswith("https://corsproxy.io/?url=https%3A")

    def test_direct_url_is_untouched(self):
        assert DIRECT.build_url(TARGET) == TARGET

    def test_resolve_keeps_order_and_dedups(self):
        resolved = resolve_strategies(["corsproxy", "AllOrigins", "corsproxy"])
        assert [s.name for s in resolved] == ["corsproxy", "allorigins"]

    def test_resolve_unknown(self):
        with pytest.raises(ValueError, match="Unknown fetch strategy"):
            resolve_strategies(["carrier-pigeon"])

    def test_resolve_empty(self):
        with pytest.raises(ValueError):
            resolve_strategies([])


class TestFetchGateway:
    @pytest.mark.asyncio
    async def test_allorigins_unwraps_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "api.allorigins.win"
            return httpx.Response(200, json={"contents": "<p>hi</p>", "status": {}})

        async with FetchGateway([ALLORIGINS], client=_client(handler)) as gateway:
            result = await gateway.fetch(TARGET)
        assert result.markup == "<p>hi</p>"
        assert result.strategy == "allorigins"
        assert result.url == TARGET

    @pytest.mark.asyncio
    async def test_falls_back_to_next_strategy(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.host)
            if request.url.host == "api.allorigins.win":
                return httpx.Response(503)
            return httpx.Response(200, text="<html>ok</html>")

        gateway = FetchGateway([ALLORIGINS, CORSPROXY], client=_client(handler))
        markup = await gateway.fetch_markup(TARGET)
        assert markup == "<html>ok</html>"
        assert seen == ["api.allorigins.win", "corsproxy.io"]

    @pytest.mark.asyncio
    async def test_empty_payload_counts_as_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.allorigins.win":
                return httpx.Response(200, json={"contents": "   "})
            return httpx.Response(200, text="<p>second</p>")

        gateway = FetchGateway([ALLORIGINS, CORSPROXY], client=_client(handler))
        result = await gateway.fetch(TARGET)
        assert result.strategy == "corsproxy"

    @pytest.mark.asyncio
    async def test_all_strategies_fail(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.allorigins.win":
                return httpx.Response(200, text="not json")
            raise httpx.ConnectError("refused", request=request)

        gateway = FetchGateway([ALLORIGINS, CORSPROXY], client=_client(handler))
        with pytest.raises(FetchError) as exc_info:
            await gateway.fetch(TARGET)

        error = exc_info.value
        assert "all 2 retrieval strategies failed" in str(error)
        assert error.url == TARGET
        assert [a["strategy"] for a in error.attempts] == ["allorigins", "corsproxy"]
        assert "unreadable payload" in error.attempts[0]["error"]
        assert "request failed" in error.attempts[1]["error"]

    @pytest.mark.asyncio
    async def test_invalid_target_url_is_a_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<p>unreachable</p>")

        gateway = FetchGateway([DIRECT], client=_client(handler))
        with pytest.raises(FetchError) as exc_info:
            await gateway.fetch("https://docs.example.com:abc/x")

        assert exc_info.value.url == "https://docs.example.com:abc/x"
        assert "rejected the URL" in exc_info.value.attempts[0]["error"]

    @pytest.mark.asyncio
    async def test_slow_strategy_times_out(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.allorigins.win":
                await asyncio.sleep(1)
            return httpx.Response(200, text="<p>fast</p>")

        gateway = FetchGateway(
            [ALLORIGINS, CORSPROXY], timeout=0.05, client=_client(handler)
        )
        result = await gateway.fetch(TARGET)
        assert result.strategy == "corsproxy"

    @pytest.mark.asyncio
    async def test_timeout_error_type(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, text="late")

        gateway = FetchGateway([DIRECT], timeout=0.05, client=_client(handler))
        with pytest.raises(FetchError) as exc_info:
            await gateway.fetch(TARGET)
        assert "timed out" in exc_info.value.attempts[0]["error"]
        with pytest.raises(FetchTimeout):
            await gateway._attempt(DIRECT, TARGET)

    @pytest.mark.asyncio
    async def test_external_client_not_closed(self):
        client = _client(lambda request: httpx.Response(200, text="x"))
        async with FetchGateway([DIRECT], client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        gateway = FetchGateway([DIRECT])
        async with gateway:
            client = gateway._client
            assert client is not None
            assert client.headers["User-Agent"]
        assert client.is_closed

    def test_default_strategies(self):
        gateway = FetchGateway()
        assert [s.name for s in gateway.strategies] == ["allorigins", "corsproxy"]

    def test_from_config(self):
        config = PipelineConfig(strategies=["direct"], fetch_timeout=4.0, user_agent="ua")
        gateway = FetchGateway.from_config(config)
        assert [s.name for s in gateway.strategies] == ["direct"]
        assert gateway.timeout == 4.0
        assert gateway.user_agent == "ua"


@pytest.mark.asyncio
async def test_module_fetch_markup_uses_configured_gateway():
    mock_client = MagicMock()
    mock_client.get = AsyncMock(return_value=httpx.Response(200, text="<p>one-off</p>"))
    mock_client.aclose = AsyncMock()

    with patch("docbinder.fetch.httpx.AsyncClient", return_value=mock_client):
        markup = await fetch_markup(TARGET, PipelineConfig(strategies=["direct"]))

    assert markup == "<p>one-off</p>"
    mock_client.get.assert_awaited_once_with(TARGET)
    mock_client.aclose.assert_awaited_once()
