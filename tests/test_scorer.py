"""
Tests for the scoring engine: base points, multipliers, breakdown, percentile.
"""

from __future__ import annotations

import math
from dataclasses import fields, replace

import pytest

from backend_megarank.analysis_engine import (
    Multipliers,
    ScoringEngine,
    UserMetrics,
    age_days,
    get_percentile,
)
from backend_megarank.config import ScoringSettings
from backend_megarank.identity import ExternalBonusData
from factories import ADDR, NOW

DAY = 86400


def _metrics(**overrides) -> UserMetrics:
    values = dict(
        address=ADDR,
        total_txs=100,
        gas_spent_wei=10 ** 17,
        gas_spent_eth=0.1,
        active_gas_eth=0.1,
        gas_milestone_tier=0,
        token_volume=0.0,
        contracts_deployed=0,
        days_active=5,
        first_tx_timestamp=NOW - 11 * DAY - 100,
        last_tx_timestamp=NOW - DAY,
    )
    values.update(overrides)
    return UserMetrics(**values)


@pytest.fixture
def engine() -> ScoringEngine:
    # launch far in the past so the OG bonus does not apply unless a test wants it
    return ScoringEngine(ScoringSettings(network_launch_timestamp=NOW - 365 * DAY))


def test_reference_scenario_without_multipliers(engine):
    m = _metrics()
    assert age_days(m, NOW) == 11
    assert engine.calculate_base_points(m, NOW) == pytest.approx(132.0)
    assert engine.get_multipliers(m, now=NOW) == Multipliers()
    assert engine.calculate_score(m, now=NOW) == 132


def test_og_and_builder_scenario():
    engine = ScoringEngine(ScoringSettings(network_launch_timestamp=NOW))
    m = _metrics(contracts_deployed=3)
    mult = engine.get_multipliers(m, now=NOW)
    assert mult.og_bonus and mult.builder_bonus and not mult.power_user_bonus
    assert engine.calculate_base_points(m, NOW) == pytest.approx(282.0)
    assert engine.calculate_score(m, now=NOW) == math.floor(282 * 1.5 * 1.2)


def test_empty_history_terminates_with_age_one(engine):
    m = _metrics(
        total_txs=0, gas_spent_wei=0, gas_spent_eth=0.0, days_active=0,
        first_tx_timestamp=NOW, last_tx_timestamp=NOW,
    )
    assert age_days(m, NOW) == 1
    assert engine.calculate_score(m, now=NOW) == 2


def test_power_user_threshold_is_strict(engine):
    m = _metrics(total_txs=550)  # 550 / 11 == 50, not above
    assert not engine.get_multipliers(m, now=NOW).power_user_bonus
    m = _metrics(total_txs=551)
    assert engine.get_multipliers(m, now=NOW).power_user_bonus


def test_score_is_deterministic(engine):
    ext = ExternalBonusData(has_farcaster=True, holds_any_native_nft=True)
    m = _metrics(contracts_deployed=2)
    assert engine.calculate_score(m, ext, now=NOW) == engine.calculate_score(m, ext, now=NOW)


def test_featured_nft_suppresses_native_factor(engine):
    both = Multipliers(holds_featured_nft=True, holds_any_native_nft=True)
    featured = Multipliers(holds_featured_nft=True)
    native = Multipliers(holds_any_native_nft=True)
    assert engine.get_multiplier_value(both) == pytest.approx(1.2)
    assert engine.get_multiplier_value(featured) == pytest.approx(1.2)
    assert engine.get_multiplier_value(native) == pytest.approx(1.1)


@pytest.mark.parametrize("flag", [f.name for f in fields(ExternalBonusData) if f.type in ("bool", bool)])
def test_enabling_external_flag_never_lowers_score(engine, flag):
    m = _metrics(contracts_deployed=1)
    for base in (ExternalBonusData(), ExternalBonusData(holds_featured_nft=True, holds_any_native_nft=True)):
        before = engine.calculate_score(m, base, now=NOW)
        after = engine.calculate_score(m, replace(base, **{flag: True}), now=NOW)
        assert after >= before


@pytest.mark.parametrize("flag", [f.name for f in fields(Multipliers)])
def test_enabling_any_multiplier_never_lowers_value(engine, flag):
    bases = (
        Multipliers(),
        Multipliers(og_bonus=True, builder_bonus=True, power_user_bonus=True),
        Multipliers(holds_featured_nft=True, holds_any_native_nft=True),
    )
    for base in bases:
        assert engine.get_multiplier_value(replace(base, **{flag: True})) >= engine.get_multiplier_value(base)


def test_external_data_absent_means_no_identity_multipliers(engine):
    mult = engine.get_multipliers(_metrics(), None, now=NOW)
    assert not (mult.has_mega_domain or mult.has_farcaster or mult.holds_featured_nft or mult.holds_any_native_nft)


def test_breakdown_matches_score(engine):
    ext = ExternalBonusData(has_mega_domain=True)
    m = _metrics(contracts_deployed=1)
    b = engine.get_score_breakdown(m, ext, now=NOW)
    assert b.from_txs == 50.0
    assert b.from_gas == pytest.approx(10.0)
    assert b.from_deployments == 50.0
    assert b.from_days_active == 50.0
    assert b.from_age == 22.0
    assert b.base_points == pytest.approx(b.from_txs + b.from_gas + b.from_deployments + b.from_days_active + b.from_age)
    assert b.multiplier_value == pytest.approx(1.2 * 1.15)
    assert b.final_score == engine.calculate_score(m, ext, now=NOW)
    assert b.to_dict()["breakdown"]["from_age"] == 22.0


def test_percentile():
    assert get_percentile(1, 200) == 100.0
    assert get_percentile(200, 200) == 0.5
    assert get_percentile(3, 7) == 71.4
    assert get_percentile(None, 10) == 0.0
    assert get_percentile(1, 0) == 0.0
