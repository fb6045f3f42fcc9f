"""
Configuration management for Backend MegaRank.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for explorer, identity, scoring, store and API settings.
"""

from backend_megarank.config.settings import (
    ApiSettings,
    ExplorerSettings,
    IdentitySettings,
    MultiplierFactors,
    ScoringSettings,
    ScoringWeights,
    Settings,
    StoreSettings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "ExplorerSettings",
    "IdentitySettings",
    "MultiplierFactors",
    "ScoringSettings",
    "ScoringWeights",
    "Settings",
    "StoreSettings",
    "get_settings",
]
