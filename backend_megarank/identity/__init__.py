"""
Identity package — external bonus signals (domain, Farcaster, NFT holdings) with a TTL cache.
"""

from backend_megarank.identity.cache import TTLCache
from backend_megarank.identity.external_bonus import ExternalBonusResolver
from backend_megarank.identity.models import ExternalBonusData

__all__ = ["ExternalBonusData", "ExternalBonusResolver", "TTLCache"]
