"""
Reputation score computation — weighted base points times multipliers.

base = txs*w_tx + gas_eth*w_gas + deploys*w_deploy + days_active*w_days + age_days*w_age
score = floor(base * product(active multipliers))

Deterministic for identical inputs and clock. Activity multipliers come from
the metrics; identity and NFT multipliers only from ExternalBonusData. The
native-NFT factor does not apply when the featured-NFT factor already does.
"""

from __future__ import annotations

import math
import time

from backend_megarank.analysis_engine.models import Multipliers, ScoreBreakdown, UserMetrics
from backend_megarank.config import ScoringSettings
from backend_megarank.identity.models import ExternalBonusData

SECONDS_PER_DAY = 86400


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else int(now)


def age_days(metrics: UserMetrics, now: int | None = None) -> int:
    """Whole days since first activity, never below 1."""
    return max(1, math.floor((_now(now) - metrics.first_tx_timestamp) / SECONDS_PER_DAY))


def get_percentile(rank: int | None, total_users: int) -> float:
    """Share of users at or below this rank, one decimal. 0 when unranked or empty."""
    if not rank or total_users <= 0:
        return 0.0
    return round((total_users - rank + 1) / total_users * 100, 1)


class ScoringEngine:
    """Pure scoring over UserMetrics, parameterised by ScoringSettings."""

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        self.settings = settings or ScoringSettings()

    def calculate_base_points(self, metrics: UserMetrics, now: int | None = None) -> float:
        w = self.settings.weights
        return (
            metrics.total_txs * w.tx
            + metrics.gas_spent_eth * w.gas
            + metrics.contracts_deployed * w.deploy
            + metrics.days_active * w.days_active
            + age_days(metrics, now) * w.age
        )

    def get_multipliers(
        self,
        metrics: UserMetrics,
        external: ExternalBonusData | None = None,
        now: int | None = None,
    ) -> Multipliers:
        avg_tx_per_day = metrics.total_txs / age_days(metrics, now)
        ext = external or ExternalBonusData()
        return Multipliers(
            og_bonus=metrics.first_tx_timestamp <= self.settings.network_launch_timestamp,
            builder_bonus=metrics.contracts_deployed > 0,
            power_user_bonus=avg_tx_per_day > self.settings.power_user_tx_per_day,
            has_mega_domain=ext.has_mega_domain,
            has_farcaster=ext.has_farcaster,
            holds_featured_nft=ext.holds_featured_nft,
            holds_any_native_nft=ext.holds_any_native_nft,
        )

    def get_multiplier_value(self, multipliers: Multipliers) -> float:
        f = self.settings.factors
        value = 1.0
        if multipliers.og_bonus:
            value *= f.og
        if multipliers.builder_bonus:
            value *= f.builder
        if multipliers.power_user_bonus:
            value *= f.power_user
        if multipliers.has_mega_domain:
            value *= f.mega_domain
        if multipliers.has_farcaster:
            value *= f.farcaster
        if multipliers.holds_featured_nft:
            value *= f.featured_nft
        elif multipliers.holds_any_native_nft:
            value *= f.native_nft
        return value

    def calculate_score(
        self,
        metrics: UserMetrics,
        external: ExternalBonusData | None = None,
        now: int | None = None,
    ) -> int:
        """floor(base * multiplier); external None gives the persisted base score."""
        base = self.calculate_base_points(metrics, now)
        value = self.get_multiplier_value(self.get_multipliers(metrics, external, now))
        return max(0, math.floor(base * value))

    def get_score_breakdown(
        self,
        metrics: UserMetrics,
        external: ExternalBonusData | None = None,
        now: int | None = None,
    ) -> ScoreBreakdown:
        w = self.settings.weights
        days = age_days(metrics, now)
        multipliers = self.get_multipliers(metrics, external, now)
        value = self.get_multiplier_value(multipliers)
        base = self.calculate_base_points(metrics, now)
        return ScoreBreakdown(
            base_points=base,
            multipliers=multipliers,
            multiplier_value=value,
            final_score=max(0, math.floor(base * value)),
            from_txs=metrics.total_txs * w.tx,
            from_gas=metrics.gas_spent_eth * w.gas,
            from_deployments=metrics.contracts_deployed * w.deploy,
            from_days_active=metrics.days_active * w.days_active,
            from_age=days * w.age,
            age_days=days,
        )
