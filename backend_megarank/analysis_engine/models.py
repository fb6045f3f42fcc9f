"""
Analysis engine data models: aggregate metrics, multiplier flags, score breakdown.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class UserMetrics:
    """
    Aggregate activity of one address.

    gas_spent_wei is exact; the *_eth figures are derived from it once.
    With no transactions both timestamps are the aggregation time.
    """

    address: str
    total_txs: int
    gas_spent_wei: int
    gas_spent_eth: float
    active_gas_eth: float
    gas_milestone_tier: int
    token_volume: float
    contracts_deployed: int
    days_active: int
    first_tx_timestamp: int
    last_tx_timestamp: int


@dataclass(frozen=True)
class Multipliers:
    """Boolean gates for every multiplicative bonus."""

    og_bonus: bool = False
    builder_bonus: bool = False
    power_user_bonus: bool = False
    has_mega_domain: bool = False
    has_farcaster: bool = False
    holds_featured_nft: bool = False
    holds_any_native_nft: bool = False

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-component contributions of a score; derived, never stored."""

    base_points: float
    multipliers: Multipliers
    multiplier_value: float
    final_score: int
    from_txs: float
    from_gas: float
    from_deployments: float
    from_days_active: float
    from_age: float
    age_days: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_points": self.base_points,
            "multipliers": self.multipliers.to_dict(),
            "multiplier_value": self.multiplier_value,
            "final_score": self.final_score,
            "age_days": self.age_days,
            "breakdown": {
                "from_txs": self.from_txs,
                "from_gas": self.from_gas,
                "from_deployments": self.from_deployments,
                "from_days_active": self.from_days_active,
                "from_age": self.from_age,
            },
        }
