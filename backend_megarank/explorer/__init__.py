"""
Explorer package — Blockscout v2 client, response models and paginated fetchers.
"""

from backend_megarank.explorer.client import ExplorerClient, backoff_delay
from backend_megarank.explorer.fetcher import (
    FetchResult,
    TokenTransferFetcher,
    TransactionFetcher,
)
from backend_megarank.explorer.models import PageCursor, TokenTransfer, Transaction

__all__ = [
    "ExplorerClient",
    "FetchResult",
    "PageCursor",
    "TokenTransfer",
    "TokenTransferFetcher",
    "Transaction",
    "TransactionFetcher",
    "backoff_delay",
]
