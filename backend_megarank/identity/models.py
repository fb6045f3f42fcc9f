"""
External identity/asset signals for an address. Cached, never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExternalBonusData:
    """Flags from the domain, social and NFT lookups. Missing lookups leave flags False."""

    has_mega_domain: bool = False
    has_farcaster: bool = False
    holds_featured_nft: bool = False
    holds_any_native_nft: bool = False
    nft_holdings: tuple[str, ...] = field(default_factory=tuple)
    domain_name: str | None = None
    farcaster_username: str | None = None
