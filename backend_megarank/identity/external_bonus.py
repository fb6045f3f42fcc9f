"""
External bonus resolution — domain name, Farcaster account, NFT holdings.

Three independent lookups run concurrently, each with its own timeout. A
failed lookup only downgrades its own flags; resolve() never raises.
Results are cached per address in a TTLCache owned by the resolver.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from backend_megarank.config import ExplorerSettings, IdentitySettings
from backend_megarank.identity.cache import TTLCache
from backend_megarank.identity.models import ExternalBonusData
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class ExternalBonusResolver:
    """Resolves ExternalBonusData for addresses against dotmega, Neynar and Blockscout."""

    def __init__(
        self,
        settings: IdentitySettings,
        explorer_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: TTLCache[ExternalBonusData] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._explorer_url = explorer_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.lookup_timeout_sec),
            headers={"Accept": "application/json"},
        )
        self.cache: TTLCache[ExternalBonusData] = (
            cache if cache is not None else TTLCache(settings.cache_ttl_sec)
        )
        self._sleep = sleep
        self._featured = settings.featured_nft_contract.lower()
        self._native = frozenset(c.lower() for c in settings.native_nft_contracts) - {self._featured}

    @classmethod
    def from_settings(
        cls,
        identity: IdentitySettings,
        explorer: ExplorerSettings,
        **kwargs: Any,
    ) -> "ExternalBonusResolver":
        return cls(identity, explorer.base_url, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Individual lookups (raise on failure; resolve() isolates them)
    # ------------------------------------------------------------------

    async def lookup_domain(self, address: str) -> str | None:
        """Reverse-resolve address to a .mega name; None when not registered."""
        resp = await self._client.get(
            f"{self._settings.domain_api_url}/resolve", params={"address": address}
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        data = resp.json()
        name = data.get("name") if isinstance(data, dict) else None
        return name if isinstance(name, str) and name else None

    async def lookup_farcaster(self, address: str) -> str | None:
        """Farcaster username linked to the address; empty string when linked without one."""
        headers = {"x-api-key": self._settings.neynar_api_key} if self._settings.neynar_api_key else {}
        resp = await self._client.get(
            f"{self._settings.neynar_api_url}/user/bulk-by-address",
            params={"addresses": address},
            headers=headers,
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        data = resp.json()
        users = data.get(address) if isinstance(data, dict) else None
        if not isinstance(users, list) or not users:
            return None
        first = users[0] if isinstance(users[0], dict) else {}
        return str(first.get("username") or "")

    async def lookup_nft_holdings(self, address: str) -> tuple[str, ...]:
        """Distinct tracked ERC-721 contracts held by the address, sorted."""
        resp = await self._client.get(
            f"{self._explorer_url}/addresses/{address}/nft", params={"type": "ERC-721"}
        )
        resp.raise_for_status()
        data = resp.json()
        items = data.get("items") if isinstance(data, dict) else None
        tracked = self._native | {self._featured}
        held: set[str] = set()
        for item in items if isinstance(items, list) else []:
            token = item.get("token") if isinstance(item, dict) else None
            contract = token.get("address_hash") if isinstance(token, dict) else None
            if isinstance(contract, str) and contract.lower() in tracked:
                held.add(contract.lower())
        return tuple(sorted(held))

    async def _guarded(self, name: str, address: str, coro: Awaitable[Any]) -> tuple[bool, Any]:
        try:
            return True, await asyncio.wait_for(coro, timeout=self._settings.lookup_timeout_sec)
        except asyncio.TimeoutError:
            logger.warning("external_lookup_timeout", lookup=name, address=address)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("external_lookup_failed", lookup=name, address=address, error=str(e))
        return False, None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, address: str) -> ExternalBonusData:
        """Run the three lookups concurrently; each degrades independently."""
        addr = address.lower()
        (domain_ok, domain), (fc_ok, username), (nft_ok, holdings) = await asyncio.gather(
            self._guarded("domain", addr, self.lookup_domain(addr)),
            self._guarded("farcaster", addr, self.lookup_farcaster(addr)),
            self._guarded("nft", addr, self.lookup_nft_holdings(addr)),
        )
        holdings = tuple(holdings or ()) if nft_ok else ()
        result = ExternalBonusData(
            has_mega_domain=bool(domain_ok and domain),
            has_farcaster=bool(fc_ok and username is not None),
            holds_featured_nft=self._featured in holdings,
            holds_any_native_nft=any(c in self._native for c in holdings),
            nft_holdings=holdings,
            domain_name=domain if domain_ok else None,
            farcaster_username=(username or None) if fc_ok else None,
        )
        logger.debug(
            "external_bonus_resolved",
            address=addr,
            mega_domain=result.has_mega_domain,
            farcaster=result.has_farcaster,
            nft_count=len(holdings),
        )
        return result

    async def resolve_cached(self, address: str) -> ExternalBonusData:
        addr = address.lower()
        cached = self.cache.get(addr)
        if cached is not None:
            return cached
        data = await self.resolve(addr)
        self.cache.set(addr, data)
        return data

    async def resolve_many(self, addresses: list[str]) -> dict[str, ExternalBonusData]:
        """Cached resolution in fixed-size concurrent batches with a delay between batches."""
        size = max(1, self._settings.bulk_batch_size)
        unique = list(dict.fromkeys(a.lower() for a in addresses))
        results: dict[str, ExternalBonusData] = {}
        for start in range(0, len(unique), size):
            batch = unique[start:start + size]
            resolved = await asyncio.gather(*(self.resolve_cached(a) for a in batch))
            results.update(zip(batch, resolved))
            if start + size < len(unique) and self._settings.bulk_delay_sec > 0:
                await self._sleep(self._settings.bulk_delay_sec)
        return results
