"""Tests for the CoinGecko price adapter."""

import httpx
import pytest

from app.services.price_service import PriceService


def _service(handler, redis=None, use_cache=False) -> PriceService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PriceService(client=client, redis=redis, use_cache=use_cache)


@pytest.mark.asyncio
async def test_known_symbol_is_mapped_to_coingecko_id():
    seen = {}

    def handler(request):
        seen["ids"] = request.url.params["ids"]
        seen["vs"] = request.url.params["vs_currencies"]
        return httpx.Response(200, json={"ethereum": {"usd": 3150.25}})

    price = await _service(handler).get_token_price("ETH")

    assert price == 3150.25
    assert seen == {"ids": "ethereum", "vs": "usd"}


@pytest.mark.asyncio
async def test_unknown_symbol_passes_through():
    def handler(request):
        return httpx.Response(200, json={request.url.params["ids"]: {"usd": 2}})

    assert await _service(handler).get_token_price("somecoin") == 2.0


@pytest.mark.asyncio
async def test_missing_price_returns_none():
    def handler(request):
        return httpx.Response(200, json={})

    assert await _service(handler).get_token_price("eth") is None


@pytest.mark.asyncio
async def test_http_error_returns_none():
    def handler(request):
        return httpx.Response(429, json={"status": {"error_message": "rate limited"}})

    assert await _service(handler).get_token_price("eth") is None


@pytest.mark.asyncio
async def test_empty_symbol():
    def handler(request):  # pragma: no cover - never called
        raise AssertionError("no request expected")

    assert await _service(handler).get_token_price("  ") is None


@pytest.mark.asyncio
async def test_price_is_cached(redis_factory):
    redis = redis_factory()
    calls = []

    def handler(request):
        calls.append(request.url)
        return httpx.Response(200, json={"bitcoin": {"usd": 60000}})

    service = _service(handler, redis=redis, use_cache=True)

    assert await service.get_token_price("btc") == 60000.0
    assert await service.get_token_price("BTC") == 60000.0
    assert len(calls) == 1
    assert redis.store["price:usd:bitcoin"] == "60000.0"


@pytest.mark.asyncio
async def test_cache_failure_falls_back_to_api(redis_factory):
    def handler(request):
        return httpx.Response(200, json={"ethereum": {"usd": 10}})

    service = _service(handler, redis=redis_factory(fail=True), use_cache=True)

    assert await service.get_token_price("eth") == 10.0
