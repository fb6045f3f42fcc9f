"""
Metric reduction — transaction list to UserMetrics.

Pure and total: no I/O, never raises on well-formed Transaction objects.
Wei amounts are accumulated as Python ints and converted to ETH once.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Sequence

from backend_megarank.analysis_engine.models import UserMetrics
from backend_megarank.explorer.models import TokenTransfer, Transaction

WEI_PER_ETH = 10 ** 18
SECONDS_PER_DAY = 86400


def wei_to_eth(wei: int) -> float:
    return float(Decimal(wei) / Decimal(WEI_PER_ETH))


def scale_units(amount: int, decimals: int) -> float:
    return float(Decimal(amount) / (Decimal(10) ** max(0, decimals)))


def utc_date(timestamp: int) -> str:
    """Epoch seconds -> YYYY-MM-DD (UTC)."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def token_volume(transfers: Iterable[TokenTransfer], token_contract: str | None = None) -> float:
    """
    Sum transfer amounts of one contract, scaled by its decimals.

    Amounts are summed per declared decimals so mixed metadata still scales correctly.
    """
    contract = token_contract.lower() if token_contract else None
    totals: dict[int, int] = {}
    for t in transfers:
        if contract is not None and t.token_address != contract:
            continue
        totals[t.decimals] = totals.get(t.decimals, 0) + t.amount
    return sum(scale_units(amount, decimals) for decimals, amount in totals.items())


def calculate_metrics(
    address: str,
    transactions: Sequence[Transaction],
    token_transfers: Iterable[TokenTransfer] = (),
    *,
    token_contract: str | None = None,
    now: int | None = None,
    active_window_days: int = 30,
) -> UserMetrics:
    """
    Reduce an address's transactions (and token transfers) into UserMetrics.

    Args:
        address: Address the history belongs to (any case).
        transactions: Explorer transactions, any order.
        token_transfers: Transfers of the designated volume token.
        token_contract: When given, transfers of other contracts are ignored.
        now: Clock for the active-gas window and the empty-history sentinel.
        active_window_days: Window for active_gas_eth.
    """
    now_ts = int(time.time()) if now is None else int(now)
    addr = address.lower()
    volume = token_volume(token_transfers, token_contract)

    if not transactions:
        return UserMetrics(
            address=addr,
            total_txs=0,
            gas_spent_wei=0,
            gas_spent_eth=0.0,
            active_gas_eth=0.0,
            gas_milestone_tier=0,
            token_volume=volume,
            contracts_deployed=0,
            days_active=0,
            first_tx_timestamp=now_ts,
            last_tx_timestamp=now_ts,
        )

    window_start = now_ts - active_window_days * SECONDS_PER_DAY
    gas_wei = 0
    active_gas_wei = 0
    deployed = 0
    dates: set[str] = set()
    first = last = transactions[0].timestamp

    for tx in transactions:
        gas_wei += tx.fee_wei
        if tx.timestamp >= window_start:
            active_gas_wei += tx.fee_wei
        if tx.to_address is None and tx.from_address.lower() == addr:
            deployed += 1
        dates.add(utc_date(tx.timestamp))
        first = min(first, tx.timestamp)
        last = max(last, tx.timestamp)

    gas_eth = wei_to_eth(gas_wei)
    return UserMetrics(
        address=addr,
        total_txs=len(transactions),
        gas_spent_wei=gas_wei,
        gas_spent_eth=gas_eth,
        active_gas_eth=wei_to_eth(active_gas_wei),
        gas_milestone_tier=gas_wei // WEI_PER_ETH,
        token_volume=volume,
        contracts_deployed=deployed,
        days_active=len(dates),
        first_tx_timestamp=first,
        last_tx_timestamp=last,
    )
