"""
Analysis engine package — metric reduction and reputation scoring.

Consumes normalised explorer transactions, reduces them into UserMetrics,
and produces deterministic scores and breakdowns for storage and API exposure.
"""

from backend_megarank.analysis_engine.metrics import calculate_metrics, utc_date, wei_to_eth
from backend_megarank.analysis_engine.models import Multipliers, ScoreBreakdown, UserMetrics
from backend_megarank.analysis_engine.scorer import ScoringEngine, age_days, get_percentile

__all__ = [
    "Multipliers",
    "ScoreBreakdown",
    "ScoringEngine",
    "UserMetrics",
    "age_days",
    "calculate_metrics",
    "get_percentile",
    "utc_date",
    "wei_to_eth",
]
