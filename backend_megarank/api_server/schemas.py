"""
Response models for the MegaRank HTTP API.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from backend_megarank.aggregation import LeaderboardEntry, UserMetricsView
from backend_megarank.analysis_engine import Multipliers, ScoreBreakdown


class MultipliersModel(BaseModel):
    og_bonus: bool = False
    builder_bonus: bool = False
    power_user_bonus: bool = False
    has_mega_domain: bool = False
    has_farcaster: bool = False
    holds_featured_nft: bool = False
    holds_any_native_nft: bool = False

    @classmethod
    def from_domain(cls, m: Multipliers) -> "MultipliersModel":
        return cls(**m.to_dict())


class MetricsModel(BaseModel):
    total_txs: int = Field(..., ge=0)
    gas_spent_wei: str = Field(..., description="Exact gas spend in wei (decimal string)")
    gas_spent_eth: float = Field(..., ge=0)
    active_gas_eth: float = Field(..., ge=0, description="Gas spent in the last 30 days")
    gas_milestone_tier: int = Field(..., ge=0)
    token_volume: float = Field(..., ge=0)
    contracts_deployed: int = Field(..., ge=0)
    days_active: int = Field(..., ge=0)
    first_tx_timestamp: int
    last_tx_timestamp: int
    first_tx_date: str | None = None
    age_days: int = Field(..., ge=1)
    avg_tx_per_day: float = Field(..., ge=0)


class UserResponse(BaseModel):
    """GET /api/user/{address} response."""

    address: str
    metrics: MetricsModel
    base_score: int = Field(..., ge=0, description="Activity-only score (persisted, used for rank)")
    score: int = Field(..., ge=0, description="Score including identity and NFT multipliers")
    rank: int | None = None
    total_users: int = Field(..., ge=0)
    percentile: float = Field(..., ge=0, le=100)
    multipliers: MultipliersModel
    domain_name: str | None = None
    farcaster_username: str | None = None
    nft_holdings: list[str] = Field(default_factory=list)
    last_updated: int
    stale: bool = False
    warning: str | None = None

    @classmethod
    def from_view(cls, view: UserMetricsView) -> "UserResponse":
        r = view.record
        return cls(
            address=r.address,
            metrics=MetricsModel(
                total_txs=r.total_txs,
                gas_spent_wei=str(r.gas_spent_wei),
                gas_spent_eth=r.gas_spent_eth,
                active_gas_eth=r.active_gas_eth,
                gas_milestone_tier=r.gas_milestone_tier,
                token_volume=r.token_volume,
                contracts_deployed=r.contracts_deployed,
                days_active=r.days_active,
                first_tx_timestamp=r.first_tx_timestamp,
                last_tx_timestamp=r.last_tx_timestamp,
                first_tx_date=view.first_tx_date,
                age_days=view.age_days,
                avg_tx_per_day=view.avg_tx_per_day,
            ),
            base_score=r.base_score,
            score=view.enhanced_score,
            rank=r.rank,
            total_users=view.total_users,
            percentile=view.percentile,
            multipliers=MultipliersModel.from_domain(view.multipliers),
            domain_name=view.external.domain_name,
            farcaster_username=view.external.farcaster_username,
            nft_holdings=list(view.external.nft_holdings),
            last_updated=r.last_updated,
            stale=view.stale,
            warning="Showing cached data; latest refresh failed." if view.stale else None,
        )


class LeaderboardEntryModel(BaseModel):
    rank: int | None = None
    address: str
    score: int = Field(..., ge=0)
    enhanced_score: int | None = None
    total_txs: int = Field(..., ge=0)
    gas_spent_eth: float = Field(..., ge=0)
    contracts_deployed: int = Field(..., ge=0)
    days_active: int = Field(..., ge=0)

    @classmethod
    def from_domain(cls, e: LeaderboardEntry) -> "LeaderboardEntryModel":
        return cls(
            rank=e.rank,
            address=e.address,
            score=e.score,
            enhanced_score=e.enhanced_score,
            total_txs=e.total_txs,
            gas_spent_eth=e.gas_spent_eth,
            contracts_deployed=e.contracts_deployed,
            days_active=e.days_active,
        )


class LeaderboardResponse(BaseModel):
    """GET /api/leaderboard response."""

    entries: list[LeaderboardEntryModel] = Field(default_factory=list)
    total_count: int = Field(..., ge=0)
    limit: int
    offset: int


class ScoreComponentsModel(BaseModel):
    from_txs: float
    from_gas: float
    from_deployments: float
    from_days_active: float
    from_age: float


class BreakdownResponse(BaseModel):
    """GET /api/user/{address}/breakdown response."""

    address: str
    base_points: float
    multiplier_value: float
    final_score: int = Field(..., ge=0)
    age_days: int = Field(..., ge=1)
    multipliers: MultipliersModel
    breakdown: ScoreComponentsModel

    @classmethod
    def from_domain(cls, address: str, b: ScoreBreakdown) -> "BreakdownResponse":
        return cls(
            address=address,
            base_points=b.base_points,
            multiplier_value=b.multiplier_value,
            final_score=b.final_score,
            age_days=b.age_days,
            multipliers=MultipliersModel.from_domain(b.multipliers),
            breakdown=ScoreComponentsModel(
                from_txs=b.from_txs,
                from_gas=b.from_gas,
                from_deployments=b.from_deployments,
                from_days_active=b.from_days_active,
                from_age=b.from_age,
            ),
        )


class HealthResponse(BaseModel):
    status: str = "ok"
