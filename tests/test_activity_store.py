"""
Tests for the SQLAlchemy activity store: upsert replacement, leaderboard order, rank recompute.
"""

from __future__ import annotations

import asyncio

from backend_megarank.aggregation import RankRecalculator
from backend_megarank.database import UserActivityRecord
from factories import ADDR, ADDR_2, ADDR_3, NOW


def _record(address: str, score: int, **overrides) -> UserActivityRecord:
    values = dict(
        address=address,
        total_txs=10,
        gas_spent_wei=123456789012345678901234567890,
        gas_spent_eth=123456789012.34568,
        active_gas_eth=0.5,
        gas_milestone_tier=123456789012,
        token_volume=0.0,
        contracts_deployed=1,
        days_active=3,
        first_tx_timestamp=NOW - 1000,
        last_tx_timestamp=NOW - 10,
        base_score=score,
        last_updated=NOW,
    )
    values.update(overrides)
    return UserActivityRecord(**values)


def test_get_missing_returns_none(store):
    assert store.get(ADDR) is None
    assert store.count() == 0


def test_upsert_inserts_with_null_rank_and_exact_wei(store):
    store.upsert(_record(ADDR, 100))
    got = store.get(ADDR.upper().replace("0X", "0x"))
    assert got is not None
    assert got.rank is None
    assert got.gas_spent_wei == 123456789012345678901234567890
    assert got.to_dict()["gas_spent_wei"] == "123456789012345678901234567890"


def test_upsert_fully_replaces_row_but_keeps_rank(store):
    store.upsert(_record(ADDR, 100, contracts_deployed=5, token_volume=9.0))
    store.recompute_ranks()
    store.upsert(_record(ADDR, 40, contracts_deployed=0, token_volume=0.0, last_updated=NOW + 5))
    got = store.get(ADDR)
    assert got.base_score == 40
    assert got.contracts_deployed == 0
    assert got.token_volume == 0.0
    assert got.last_updated == NOW + 5
    assert got.rank == 1
    assert store.count() == 1


def test_recompute_ranks_dense_with_address_tiebreak(store):
    store.upsert(_record(ADDR_3, 50))
    store.upsert(_record(ADDR_2, 70))
    store.upsert(_record(ADDR, 70))
    assert store.recompute_ranks() == 3
    ranks = {a: store.get(a).rank for a in (ADDR, ADDR_2, ADDR_3)}
    assert ranks == {ADDR: 1, ADDR_2: 2, ADDR_3: 3}

    board = store.list_leaderboard(10, 0)
    assert [r.address for r in board] == [ADDR, ADDR_2, ADDR_3]
    assert [r.rank for r in board] == [1, 2, 3]
    assert [r.address for r in store.list_leaderboard(1, 1)] == [ADDR_2]


def test_rank_follows_score_order_after_changes(store):
    for i, score in enumerate([10, 30, 20, 50, 40]):
        store.upsert(_record("0x" + f"{i:040x}", score))
    store.recompute_ranks()
    store.upsert(_record("0x" + f"{0:040x}", 99))
    store.recompute_ranks()
    board = store.list_leaderboard(10)
    assert [r.rank for r in board] == [1, 2, 3, 4, 5]
    scores = [r.base_score for r in board]
    assert scores == sorted(scores, reverse=True)
    assert board[0].address == "0x" + f"{0:040x}"


def test_rank_recalculator_coalesces_queued_requests(store):
    store.upsert(_record(ADDR, 10))
    ranks = RankRecalculator(store)

    async def run():
        return await asyncio.gather(*(ranks.recompute_all() for _ in range(5)))

    totals = asyncio.run(run())
    assert totals == [1] * 5
    assert 1 <= ranks.runs < 5
    assert store.get(ADDR).rank == 1


def test_list_addresses(store):
    store.upsert(_record(ADDR_2, 1))
    store.upsert(_record(ADDR, 2))
    assert store.list_addresses() == [ADDR, ADDR_2]
