"""
Tests for external bonus resolution: concurrent lookups, isolation, TTL cache, bulk batches.
"""

from __future__ import annotations

import asyncio

import httpx

from backend_megarank.config.settings import FEATURED_NFT_CONTRACT, NATIVE_NFT_CONTRACTS
from backend_megarank.identity import ExternalBonusResolver, TTLCache
from factories import ADDR, ADDR_2, EXPLORER_URL, identity_settings, mock_client


def _handler(*, domain=200, farcaster=200, nft=200, holdings=None, calls=None):
    holdings = holdings if holdings is not None else [FEATURED_NFT_CONTRACT, NATIVE_NFT_CONTRACTS[0]]

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.host)
        addr = request.url.params.get("address") or request.url.params.get("addresses")
        if request.url.host == "domains.test":
            if domain != 200:
                return httpx.Response(domain)
            return httpx.Response(200, json={"name": "bread.mega", "address": addr, "chain": "megaeth"})
        if request.url.host == "neynar.test":
            if farcaster != 200:
                return httpx.Response(farcaster)
            return httpx.Response(200, json={addr: [{"fid": 1, "username": "bread"}]})
        if nft != 200:
            return httpx.Response(nft)
        items = [{"token": {"address_hash": c.upper().replace("0X", "0x"), "type": "ERC-721"}} for c in holdings]
        items.append({"token": {"address_hash": "0x" + "99" * 20}})
        return httpx.Response(200, json={"items": items})

    return handler


def _resolver(handler, sleep=None, cache=None, **overrides) -> ExternalBonusResolver:
    kwargs = {"http_client": mock_client(handler), "cache": cache}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return ExternalBonusResolver(identity_settings(**overrides), EXPLORER_URL, **kwargs)


def test_resolve_all_signals():
    data = asyncio.run(_resolver(_handler()).resolve(ADDR))
    assert data.has_mega_domain and data.domain_name == "bread.mega"
    assert data.has_farcaster and data.farcaster_username == "bread"
    assert data.holds_featured_nft
    assert data.holds_any_native_nft
    assert set(data.nft_holdings) == {FEATURED_NFT_CONTRACT, NATIVE_NFT_CONTRACTS[0]}


def test_each_lookup_degrades_independently():
    data = asyncio.run(_resolver(_handler(domain=500, nft=502)).resolve(ADDR))
    assert not data.has_mega_domain
    assert data.domain_name is None
    assert data.has_farcaster
    assert not data.holds_featured_nft and not data.holds_any_native_nft
    assert data.nft_holdings == ()


def test_not_found_responses_mean_no_signal():
    data = asyncio.run(_resolver(_handler(domain=404, farcaster=404, holdings=[])).resolve(ADDR))
    assert not data.has_mega_domain
    assert not data.has_farcaster
    assert data.nft_holdings == ()


def test_slow_lookup_times_out():
    async def run():
        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={})

        client = httpx.AsyncClient(transport=httpx.MockTransport(slow))
        resolver = ExternalBonusResolver(identity_settings(lookup_timeout_sec=0.01), EXPLORER_URL, http_client=client)
        return await resolver.resolve(ADDR)

    data = asyncio.run(run())
    assert not (data.has_mega_domain or data.has_farcaster or data.holds_featured_nft)


def test_cache_hits_until_ttl_expires():
    now = [0.0]
    calls: list[str] = []
    cache = TTLCache(300, clock=lambda: now[0])
    resolver = _resolver(_handler(calls=calls), cache=cache)

    asyncio.run(resolver.resolve_cached(ADDR))
    asyncio.run(resolver.resolve_cached(ADDR.upper().replace("0X", "0x")))
    assert len(calls) == 3

    now[0] = 301.0
    asyncio.run(resolver.resolve_cached(ADDR))
    assert len(calls) == 6


def test_ttl_cache_lazy_expiry():
    now = [0.0]
    cache: TTLCache[int] = TTLCache(10, clock=lambda: now[0])
    cache.set("a", 1)
    cache.set("b", 2)
    now[0] = 5.0
    assert cache.get("a") == 1
    now[0] = 10.0
    assert len(cache) == 2
    assert cache.get("a") is None
    assert len(cache) == 1
    assert cache.prune() == 1
    assert len(cache) == 0


def test_resolve_many_batches_with_delay(fake_sleep):
    addresses = ["0x" + f"{i:040x}" for i in range(12)] + [ADDR, ADDR]
    resolver = _resolver(_handler(), sleep=fake_sleep, bulk_batch_size=5)
    results = asyncio.run(resolver.resolve_many(addresses))
    assert len(results) == 13
    assert all(r.has_farcaster for r in results.values())
    # 13 unique addresses -> 3 batches -> 2 delays
    assert fake_sleep.calls == [0.2, 0.2]
    assert ADDR_2 not in results
