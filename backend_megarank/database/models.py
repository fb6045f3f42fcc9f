"""
Domain models for stored entities.

UserActivityRecord is the persisted aggregate for one address. Used by the
store and service layers; no ORM coupling so the API and tests stay simple.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from backend_megarank.analysis_engine.models import UserMetrics


@dataclass(frozen=True)
class UserActivityRecord:
    """One row of user_activity: metrics + base score + rank + freshness."""

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
    base_score: int
    last_updated: int
    """Unix timestamp (seconds) of the last successful aggregation."""
    rank: int | None = None
    """Dense rank; None until the first recompute after insertion."""

    @classmethod
    def from_metrics(cls, metrics: UserMetrics, base_score: int, last_updated: int) -> "UserActivityRecord":
        return cls(
            address=metrics.address,
            total_txs=metrics.total_txs,
            gas_spent_wei=metrics.gas_spent_wei,
            gas_spent_eth=metrics.gas_spent_eth,
            active_gas_eth=metrics.active_gas_eth,
            gas_milestone_tier=metrics.gas_milestone_tier,
            token_volume=metrics.token_volume,
            contracts_deployed=metrics.contracts_deployed,
            days_active=metrics.days_active,
            first_tx_timestamp=metrics.first_tx_timestamp,
            last_tx_timestamp=metrics.last_tx_timestamp,
            base_score=base_score,
            last_updated=last_updated,
        )

    def to_metrics(self) -> UserMetrics:
        return UserMetrics(
            address=self.address,
            total_txs=self.total_txs,
            gas_spent_wei=self.gas_spent_wei,
            gas_spent_eth=self.gas_spent_eth,
            active_gas_eth=self.active_gas_eth,
            gas_milestone_tier=self.gas_milestone_tier,
            token_volume=self.token_volume,
            contracts_deployed=self.contracts_deployed,
            days_active=self.days_active,
            first_tx_timestamp=self.first_tx_timestamp,
            last_tx_timestamp=self.last_tx_timestamp,
        )

    def is_stale(self, now: int, threshold_sec: int) -> bool:
        return now - self.last_updated > threshold_sec

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["gas_spent_wei"] = str(self.gas_spent_wei)
        return data
