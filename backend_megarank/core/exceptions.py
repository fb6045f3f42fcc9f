"""
Application-level exceptions.

Explorer errors are split by retry behaviour: transient (retried with
backoff), rate limited (retried with capped backoff), permanent (never
retried). The remaining classes carry API status codes for the HTTP layer.
"""

from __future__ import annotations


class MegaRankError(Exception):
    """Base class for all MegaRank errors."""

    status_code: int = 500


class ExplorerError(MegaRankError):
    """Failure talking to the block explorer."""

    status_code = 502


class TransientExplorerError(ExplorerError):
    """Timeout, transport failure, 5xx or malformed page body. Retried."""


class RateLimitedError(TransientExplorerError):
    """Explorer answered 429. Retried with a capped backoff."""


class PermanentExplorerError(ExplorerError):
    """4xx other than 429. Not retried."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class InvalidAddressError(MegaRankError, ValueError):
    """Address is not 0x followed by 40 hex characters."""

    status_code = 400

    def __init__(self, address: str) -> None:
        super().__init__(f"Invalid address: {address!r}")
        self.address = address


class AddressNotFoundError(MegaRankError):
    """No stored record for the address."""

    status_code = 404

    def __init__(self, address: str) -> None:
        super().__init__(f"Address not found: {address}")
        self.address = address


class AggregationFailedError(MegaRankError):
    """Fetch/calculate pipeline produced no usable result."""

    status_code = 503


class DataTemporarilyUnavailableError(MegaRankError):
    """No stored record and refresh failed. Clients should retry later."""

    status_code = 503

    def __init__(self, address: str, reason: str | None = None) -> None:
        msg = "Unable to fetch activity data. Please try again later."
        super().__init__(msg)
        self.address = address
        self.reason = reason
