"""
Tests for metric reduction (calculate_metrics) over explorer transactions.
"""

from __future__ import annotations

from backend_megarank.analysis_engine import calculate_metrics
from backend_megarank.explorer import TokenTransfer, Transaction
from factories import ADDR, ADDR_2, NOW, tx_item

DAY = 86400
TOKEN = "0x" + "11" * 20


def _tx(n, **kwargs) -> Transaction:
    return Transaction.from_api_item(tx_item(n, **kwargs))


def test_empty_history_uses_now_and_zero_counts():
    m = calculate_metrics(ADDR, [], now=NOW)
    assert m.total_txs == 0
    assert m.gas_spent_wei == 0
    assert m.gas_spent_eth == 0.0
    assert m.contracts_deployed == 0
    assert m.days_active == 0
    assert m.first_tx_timestamp == NOW
    assert m.last_tx_timestamp == NOW


def test_gas_is_accumulated_exactly():
    # 3 * 0.4 ETH would drift with float accumulation
    txs = [_tx(i, fee_wei=400_000_000_000_000_000) for i in range(3)]
    m = calculate_metrics(ADDR, txs, now=NOW)
    assert m.gas_spent_wei == 1_200_000_000_000_000_000
    assert m.gas_spent_eth == 1.2
    assert m.gas_milestone_tier == 1


def test_active_gas_window_excludes_old_transactions():
    txs = [
        _tx(1, ts=NOW - 5 * DAY, fee_wei=10 ** 17),
        _tx(2, ts=NOW - 40 * DAY, fee_wei=10 ** 18),
    ]
    m = calculate_metrics(ADDR, txs, now=NOW)
    assert m.active_gas_eth == 0.1
    assert m.gas_spent_eth == 1.1


def test_deployments_require_sender_match_case_insensitive():
    txs = [
        _tx(1, sender=ADDR.upper().replace("0X", "0x"), to=None),
        _tx(2, sender=ADDR, to=None),
        _tx(3, sender=ADDR_2, to=None),  # someone else's deployment in our history
        _tx(4, sender=ADDR, to=ADDR_2),
    ]
    m = calculate_metrics(ADDR.upper().replace("0X", "0x"), txs, now=NOW)
    assert m.contracts_deployed == 2
    assert m.address == ADDR


def test_days_active_counts_distinct_utc_dates():
    midnight = NOW - 10 * DAY  # NOW is 00:00 UTC
    txs = [
        _tx(1, ts=midnight - 1),          # previous UTC day
        _tx(2, ts=midnight),
        _tx(3, ts=midnight + 3600),
        _tx(4, ts=midnight + DAY + 5),
    ]
    m = calculate_metrics(ADDR, txs, now=NOW)
    assert m.days_active == 3
    assert m.first_tx_timestamp == midnight - 1
    assert m.last_tx_timestamp == midnight + DAY + 5


def test_token_volume_scaled_by_decimals():
    transfers = [
        TokenTransfer(ADDR, ADDR_2, NOW, TOKEN, 6, 1_500_000),
        TokenTransfer(ADDR_2, ADDR, NOW, TOKEN, 6, 2_500_000),
        TokenTransfer(ADDR, ADDR_2, NOW, "0x" + "22" * 20, 18, 10 ** 18),
    ]
    m = calculate_metrics(ADDR, [_tx(1)], transfers, token_contract=TOKEN, now=NOW)
    assert m.token_volume == 4.0


def test_metrics_are_reproducible():
    txs = [_tx(i, ts=NOW - i * DAY) for i in range(10)]
    assert calculate_metrics(ADDR, txs, now=NOW) == calculate_metrics(ADDR, list(reversed(txs)), now=NOW)
