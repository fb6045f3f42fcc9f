"""
Data models for Blockscout v2 explorer responses.

Strict per-endpoint parsers: required fields that do not parse raise
ValueError/KeyError/TypeError (the fetcher skips the item), optional numeric
fields default to 0 so no None ever reaches metric arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# next_page_params keys that must all be present for the cursor to be usable
TRANSACTION_CURSOR_FIELDS = ("block_number", "index", "items_count")
TOKEN_TRANSFER_CURSOR_FIELDS = ("block_number", "index")


def parse_timestamp(value: Any) -> int:
    """ISO 8601 (Blockscout) or epoch seconds -> epoch seconds (UTC)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"missing timestamp: {value!r}")
    text = value.strip()
    if text.isdigit():
        return int(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def parse_int(value: Any, default: int = 0) -> int:
    """Decimal string or int -> int; None/unparsable -> default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def _hash_of(obj: Any) -> str | None:
    """Blockscout nests addresses as {"hash": "0x..."}; tolerate a bare string."""
    if isinstance(obj, dict):
        h = obj.get("hash")
    else:
        h = obj
    if isinstance(h, str) and h.strip():
        return h.strip().lower()
    return None


@dataclass(frozen=True)
class PageCursor:
    """
    Opaque pagination cursor (next_page_params).

    Parsed all-or-nothing: every required field must be an integer, otherwise
    there is no cursor. All returned keys are echoed back together.
    """

    params: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @classmethod
    def from_response(
        cls,
        raw: Any,
        required: tuple[str, ...] = TRANSACTION_CURSOR_FIELDS,
    ) -> "PageCursor | None":
        if not isinstance(raw, dict) or not raw:
            return None
        for key in required:
            value = raw.get(key)
            if value is None or isinstance(value, bool):
                return None
            try:
                int(value)
            except (TypeError, ValueError):
                return None
        params = tuple(
            (str(k), str(v))
            for k, v in raw.items()
            if v is not None and isinstance(v, (str, int, float)) and not isinstance(v, bool)
        )
        return cls(params=params)

    def as_query(self) -> dict[str, str]:
        return dict(self.params)


@dataclass(frozen=True)
class Transaction:
    """One explorer transaction, normalised. to_address None means contract creation."""

    hash: str
    block_number: int
    timestamp: int
    from_address: str
    to_address: str | None
    value_wei: int
    fee_wei: int
    gas_used: int
    gas_price: int
    status: str
    method: str | None = None

    @property
    def is_contract_creation(self) -> bool:
        return self.to_address is None

    @classmethod
    def from_api_item(cls, item: dict[str, Any]) -> "Transaction":
        """Build from a /addresses/{a}/transactions item. Raises on missing hash/from/timestamp."""
        tx_hash = item["hash"]
        if not isinstance(tx_hash, str) or not tx_hash:
            raise ValueError("transaction hash missing")
        sender = _hash_of(item.get("from"))
        if sender is None:
            raise ValueError("transaction sender missing")
        fee = item.get("fee")
        fee_value = fee.get("value") if isinstance(fee, dict) else fee
        block = item.get("block_number", item.get("block"))
        return cls(
            hash=tx_hash.lower(),
            block_number=parse_int(block),
            timestamp=parse_timestamp(item.get("timestamp")),
            from_address=sender,
            to_address=_hash_of(item.get("to")),
            value_wei=parse_int(item.get("value")),
            fee_wei=parse_int(fee_value),
            gas_used=parse_int(item.get("gas_used")),
            gas_price=parse_int(item.get("gas_price")),
            status=str(item.get("status") or ""),
            method=item.get("method") if isinstance(item.get("method"), str) else None,
        )


@dataclass(frozen=True)
class TokenTransfer:
    """One fungible token transfer; amount in the token's smallest unit."""

    from_address: str | None
    to_address: str | None
    timestamp: int
    token_address: str
    decimals: int
    amount: int
    tx_hash: str | None = None

    @classmethod
    def from_api_item(cls, item: dict[str, Any]) -> "TokenTransfer":
        """Build from a /addresses/{a}/token-transfers item. Raises on missing token/timestamp."""
        token = item["token"]
        if not isinstance(token, dict):
            raise TypeError("token must be an object")
        token_address = token.get("address_hash") or token.get("address")
        if not isinstance(token_address, str) or not token_address:
            raise ValueError("token address missing")
        total = item.get("total") if isinstance(item.get("total"), dict) else {}
        decimals = parse_int(total.get("decimals"), default=-1)
        if decimals < 0:
            decimals = parse_int(token.get("decimals"), default=18)
        tx_hash = item.get("transaction_hash") or item.get("tx_hash")
        return cls(
            from_address=_hash_of(item.get("from")),
            to_address=_hash_of(item.get("to")),
            timestamp=parse_timestamp(item.get("timestamp")),
            token_address=token_address.lower(),
            decimals=decimals,
            amount=parse_int(total.get("value")),
            tx_hash=tx_hash.lower() if isinstance(tx_hash, str) else None,
        )
