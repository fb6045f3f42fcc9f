"""
Core utilities shared across the service: domain exceptions and address handling.
"""

from backend_megarank.core.addresses import normalize_address
from backend_megarank.core.exceptions import (
    AddressNotFoundError,
    AggregationFailedError,
    DataTemporarilyUnavailableError,
    ExplorerError,
    InvalidAddressError,
    MegaRankError,
    PermanentExplorerError,
    RateLimitedError,
    TransientExplorerError,
)

__all__ = [
    "AddressNotFoundError",
    "AggregationFailedError",
    "DataTemporarilyUnavailableError",
    "ExplorerError",
    "InvalidAddressError",
    "MegaRankError",
    "PermanentExplorerError",
    "RateLimitedError",
    "TransientExplorerError",
    "normalize_address",
]
