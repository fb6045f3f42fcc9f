"""
Paginated transaction and token-transfer fetchers.

Follows next_page_params newest-first until the explorer stops returning a
cursor or max_pages is reached. A page that exhausts its retries ends
pagination and whatever was collected is returned; the result records
whether it is complete so callers can tell "empty" from "failed".
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from backend_megarank.core.exceptions import ExplorerError
from backend_megarank.explorer.client import ExplorerClient
from backend_megarank.explorer.models import (
    TOKEN_TRANSFER_CURSOR_FIELDS,
    TRANSACTION_CURSOR_FIELDS,
    PageCursor,
    TokenTransfer,
    Transaction,
)
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class FetchResult(Generic[T]):
    """Items collected plus how pagination ended."""

    items: list[T] = field(default_factory=list)
    pages_fetched: int = 0
    complete: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        """True when not a single page could be fetched."""
        return self.pages_fetched == 0 and self.error is not None


class PaginatedFetcher(Generic[T]):
    """Shared pagination loop; subclasses pick the endpoint, parser and cursor fields."""

    cursor_fields: tuple[str, ...] = TRANSACTION_CURSOR_FIELDS

    def __init__(self, client: ExplorerClient) -> None:
        self._client = client

    def _parse_item(self, item: dict[str, Any]) -> T:
        raise NotImplementedError

    async def fetch_pages(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        max_pages: int | None = None,
        label: str = "",
    ) -> FetchResult[T]:
        settings = self._client.settings
        limit = settings.max_pages if max_pages is None else max_pages
        loop = asyncio.get_running_loop()
        deadline = loop.time() + settings.fetch_deadline_sec
        result: FetchResult[T] = FetchResult()
        cursor: PageCursor | None = None

        while result.pages_fetched < limit:
            remaining = deadline - loop.time()
            if remaining <= 0:
                result.error = "fetch deadline exceeded"
                logger.warning("explorer_fetch_deadline", path=path, pages=result.pages_fetched)
                return result
            query = dict(params or {})
            if cursor is not None:
                query.update(cursor.as_query())
            try:
                data = await asyncio.wait_for(self._client.get_json(path, query), timeout=remaining)
            except asyncio.TimeoutError:
                result.error = "fetch deadline exceeded"
                logger.warning("explorer_fetch_deadline", path=path, pages=result.pages_fetched)
                return result
            except ExplorerError as e:
                result.error = str(e)
                logger.error(
                    "explorer_page_failed",
                    path=path,
                    page=result.pages_fetched + 1,
                    collected=len(result.items),
                    error=str(e),
                )
                return result

            raw_items = data.get("items")
            if not isinstance(raw_items, list):
                raw_items = []
            for raw in raw_items:
                if not isinstance(raw, dict):
                    continue
                try:
                    result.items.append(self._parse_item(raw))
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug("explorer_item_skipped", path=path, error=str(e))
            result.pages_fetched += 1

            cursor = PageCursor.from_response(data.get("next_page_params"), self.cursor_fields)
            if cursor is None:
                result.complete = True
                break
            if result.pages_fetched < limit and settings.page_delay_sec > 0:
                await self._client.sleep(settings.page_delay_sec)

        logger.debug(
            "explorer_fetch_done",
            path=path,
            label=label,
            pages=result.pages_fetched,
            items=len(result.items),
            complete=result.complete,
        )
        return result


class TransactionFetcher(PaginatedFetcher[Transaction]):
    """Raw transaction history of one address."""

    cursor_fields = TRANSACTION_CURSOR_FIELDS

    def _parse_item(self, item: dict[str, Any]) -> Transaction:
        return Transaction.from_api_item(item)

    async def fetch(self, address: str, max_pages: int | None = None) -> FetchResult[Transaction]:
        return await self.fetch_pages(
            f"addresses/{address}/transactions", max_pages=max_pages, label=address
        )

    async def fetch_all_transactions(
        self, address: str, max_pages: int | None = None
    ) -> list[Transaction]:
        """All transactions reachable within max_pages; partial on page failure."""
        return (await self.fetch(address, max_pages)).items


class TokenTransferFetcher(PaginatedFetcher[TokenTransfer]):
    """Transfers of one fungible token contract touching an address."""

    cursor_fields = TOKEN_TRANSFER_CURSOR_FIELDS

    def _parse_item(self, item: dict[str, Any]) -> TokenTransfer:
        return TokenTransfer.from_api_item(item)

    async def fetch(
        self, address: str, token_contract: str, max_pages: int | None = None
    ) -> FetchResult[TokenTransfer]:
        return await self.fetch_pages(
            f"addresses/{address}/token-transfers",
            params={"type": "ERC-20", "token": token_contract},
            max_pages=max_pages,
            label=address,
        )

    async def fetch_token_transfers(
        self, address: str, token_contract: str, max_pages: int | None = None
    ) -> list[TokenTransfer]:
        """Transfers for token_contract only; items from other contracts are dropped."""
        contract = token_contract.lower()
        result = await self.fetch(address, contract, max_pages)
        return [t for t in result.items if t.token_address == contract]
