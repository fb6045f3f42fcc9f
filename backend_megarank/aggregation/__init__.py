"""
Aggregation package — refresh pipeline, per-address single-flight, rank maintenance.
"""

from backend_megarank.aggregation.ranks import RankRecalculator
from backend_megarank.aggregation.service import (
    ActivityService,
    LeaderboardEntry,
    LeaderboardPage,
    RefreshOutcome,
    UserMetricsView,
)
from backend_megarank.aggregation.single_flight import SingleFlight

__all__ = [
    "ActivityService",
    "LeaderboardEntry",
    "LeaderboardPage",
    "RankRecalculator",
    "RefreshOutcome",
    "SingleFlight",
    "UserMetricsView",
]
