"""
Tests for environment-driven settings.
"""

from __future__ import annotations

from backend_megarank.config import Settings
from backend_megarank.config.env import get_database_url


def test_defaults(monkeypatch):
    for name in ("EXPLORER_MAX_PAGES", "SCORE_MULT_OG", "NETWORK_LAUNCH_TIMESTAMP", "DATABASE_URL", "MEGARANK_DB_PATH"):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.explorer.max_pages == 50
    assert s.explorer.max_retries == 3
    assert s.scoring.weights.gas == 100.0
    assert s.scoring.factors.og == 1.5
    assert s.scoring.network_launch_timestamp == 1739059200
    assert s.store.stale_threshold_sec == 86400
    assert s.identity.cache_ttl_sec == 300.0
    assert s.store.database_url == "sqlite:///megarank.db"


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("EXPLORER_API_URL", "https://example.test/api/v2/")
    monkeypatch.setenv("EXPLORER_MAX_PAGES", "7")
    monkeypatch.setenv("SCORE_MULT_DOMAIN", "1.5")
    monkeypatch.setenv("NATIVE_NFT_CONTRACTS", "0xAAA, 0xbbb")
    monkeypatch.setenv("TOKEN_VOLUME_CONTRACT", "0xABC")
    monkeypatch.setenv("MEGARANK_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    s = Settings.from_env()
    assert s.explorer.base_url == "https://example.test/api/v2"
    assert s.explorer.max_pages == 7
    assert s.scoring.factors.mega_domain == 1.5
    assert s.identity.native_nft_contracts == ("0xaaa", "0xbbb")
    assert s.explorer.token_volume_contract == "0xabc"
    assert s.store.database_url == f"sqlite:///{tmp_path / 'x.db'}"


def test_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("EXPLORER_MAX_RETRIES", "three")
    monkeypatch.setenv("EXPLORER_PAGE_DELAY_SEC", "fast")
    s = Settings.from_env()
    assert s.explorer.max_retries == 3
    assert s.explorer.page_delay_sec == 0.2


def test_database_url_prefers_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/megarank")
    assert get_database_url() == "postgresql://u:p@db/megarank"


def test_multiplier_factors_below_one_fall_back(monkeypatch):
    from backend_megarank.analysis_engine import ScoringEngine
    from backend_megarank.analysis_engine.models import Multipliers

    monkeypatch.setenv("SCORE_MULT_OG", "0.5")
    monkeypatch.setenv("SCORE_MULT_NATIVE_NFT", "1.0")
    s = Settings.from_env()
    assert s.scoring.factors.og == 1.5
    assert s.scoring.factors.native_nft == 1.0
    engine = ScoringEngine(s.scoring)
    assert engine.get_multiplier_value(Multipliers(og_bonus=True)) >= engine.get_multiplier_value(Multipliers())
