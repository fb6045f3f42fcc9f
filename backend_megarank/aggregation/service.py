"""
Activity service — staleness check, refresh pipeline, and inbound reads.

Pipeline for one address (deduplicated per address with SingleFlight):
    [transactions ‖ token transfers] -> calculate_metrics -> base score
    -> store.upsert -> rank recompute -> re-read.
Blocking store calls run in the default executor so the event loop stays free.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from backend_megarank.aggregation.ranks import RankRecalculator
from backend_megarank.aggregation.single_flight import SingleFlight
from backend_megarank.analysis_engine import (
    Multipliers,
    ScoreBreakdown,
    ScoringEngine,
    age_days,
    calculate_metrics,
    get_percentile,
    utc_date,
)
from backend_megarank.config import Settings
from backend_megarank.core import (
    AddressNotFoundError,
    AggregationFailedError,
    DataTemporarilyUnavailableError,
    normalize_address,
)
from backend_megarank.database import ActivityStore, UserActivityRecord
from backend_megarank.explorer import (
    ExplorerClient,
    TokenTransfer,
    TokenTransferFetcher,
    TransactionFetcher,
)
from backend_megarank.identity import ExternalBonusData, ExternalBonusResolver
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class RefreshOutcome:
    record: UserActivityRecord
    stale: bool = False
    """True when a refresh was due but failed and the old record is served."""
    refreshed: bool = False


@dataclass(frozen=True)
class UserMetricsView:
    """Everything GET /api/user/{address} returns."""

    record: UserActivityRecord
    enhanced_score: int
    total_users: int
    percentile: float
    multipliers: Multipliers
    external: ExternalBonusData
    age_days: int
    avg_tx_per_day: float
    first_tx_date: str | None
    stale: bool = False


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int | None
    address: str
    score: int
    total_txs: int
    gas_spent_eth: float
    contracts_deployed: int
    days_active: int
    enhanced_score: int | None = None


@dataclass(frozen=True)
class LeaderboardPage:
    entries: list[LeaderboardEntry] = field(default_factory=list)
    total_count: int = 0
    limit: int = 50
    offset: int = 0


class ActivityService:
    """Owns the store, fetchers, scorer and resolver for one process."""

    def __init__(
        self,
        store: ActivityStore,
        tx_fetcher: TransactionFetcher,
        token_fetcher: TokenTransferFetcher | None = None,
        scorer: ScoringEngine | None = None,
        resolver: ExternalBonusResolver | None = None,
        *,
        stale_threshold_sec: int = 86400,
        token_contract: str = "",
        active_window_days: int = 30,
        batch_delay_sec: float = 0.5,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.tx_fetcher = tx_fetcher
        self.token_fetcher = token_fetcher
        self.scorer = scorer or ScoringEngine()
        self.resolver = resolver
        self.ranks = RankRecalculator(store)
        self._single_flight: SingleFlight[UserActivityRecord] = SingleFlight()
        self._stale_threshold = stale_threshold_sec
        self._token_contract = token_contract.lower()
        self._active_window_days = active_window_days
        self._batch_delay = batch_delay_sec
        self._clock = clock
        self._sleep = sleep
        self._closers: list[Callable[[], Awaitable[None]]] = []

    @classmethod
    def from_settings(cls, settings: Settings, store: ActivityStore | None = None) -> "ActivityService":
        """Wire real HTTP clients and the configured database."""
        store = store or ActivityStore(settings.store.database_url)
        client = ExplorerClient(settings.explorer)
        resolver = ExternalBonusResolver.from_settings(settings.identity, settings.explorer)
        service = cls(
            store,
            TransactionFetcher(client),
            TokenTransferFetcher(client),
            ScoringEngine(settings.scoring),
            resolver,
            stale_threshold_sec=settings.store.stale_threshold_sec,
            token_contract=settings.explorer.token_volume_contract,
            active_window_days=settings.scoring.active_gas_window_days,
            batch_delay_sec=settings.api.batch_delay_sec,
        )
        service._closers.extend([client.aclose, resolver.aclose])
        return service

    async def aclose(self) -> None:
        for close in self._closers:
            await close()
        self._closers.clear()

    def _now(self) -> int:
        return int(self._clock())

    async def _run_store(self, fn: Callable[..., R], *args: Any) -> R:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _fetch_token_transfers(self, address: str) -> list[TokenTransfer]:
        """Volume-token transfers; any failure means no volume, never a failed aggregation."""
        if not self._token_contract or self.token_fetcher is None:
            return []
        result = await self.token_fetcher.fetch(address, self._token_contract)
        if result.error is not None:
            logger.warning("token_volume_unavailable", address=address, error=result.error)
            return []
        return [t for t in result.items if t.token_address == self._token_contract]

    async def aggregate(self, address: str) -> UserActivityRecord:
        """Fetch, reduce, score and upsert one address. Raises AggregationFailedError."""
        tx_result, transfers = await asyncio.gather(
            self.tx_fetcher.fetch(address),
            self._fetch_token_transfers(address),
        )
        if tx_result.failed:
            raise AggregationFailedError(f"transaction fetch failed for {address}: {tx_result.error}")
        now = self._now()
        metrics = calculate_metrics(
            address,
            tx_result.items,
            transfers,
            token_contract=self._token_contract or None,
            now=now,
            active_window_days=self._active_window_days,
        )
        base_score = self.scorer.calculate_score(metrics, now=now)
        record = UserActivityRecord.from_metrics(metrics, base_score, now)
        await self._run_store(self.store.upsert, record)
        logger.info(
            "aggregation_complete",
            address=address,
            total_txs=metrics.total_txs,
            pages=tx_result.pages_fetched,
            complete=tx_result.complete,
            base_score=base_score,
        )
        return record

    async def _refresh(self, address: str) -> UserActivityRecord:
        record = await self.aggregate(address)
        try:
            await self.ranks.recompute_all()
        except Exception as e:
            # metrics are stored; rank catches up on the next recompute
            logger.exception("rank_recompute_after_upsert_failed", address=address, error=str(e))
            return record
        stored = await self._run_store(self.store.get, address)
        return stored or record

    async def refresh(self, address: str) -> UserActivityRecord:
        """Run the pipeline now; concurrent calls for one address share a single run."""
        addr = normalize_address(address)
        return await self._single_flight.do(addr, lambda: self._refresh(addr))

    async def _refresh_if_unchanged(
        self, address: str, seen: UserActivityRecord | None
    ) -> UserActivityRecord:
        """Refresh unless another run already replaced the record this caller saw stale."""
        current = await self._run_store(self.store.get, address)
        if (
            current is not None
            and (seen is None or current.last_updated > seen.last_updated)
            and not current.is_stale(self._now(), self._stale_threshold)
        ):
            logger.debug("refresh_skipped_already_updated", address=address)
            return current
        return await self._refresh(address)

    async def get_or_refresh(self, address: str) -> RefreshOutcome:
        """Serve the stored record, refreshing first when it is absent or stale."""
        addr = normalize_address(address)
        try:
            existing = await self._run_store(self.store.get, addr)
        except Exception as e:
            logger.exception("activity_store_read_failed", address=addr, error=str(e))
            raise DataTemporarilyUnavailableError(addr, reason=str(e)) from e

        if existing is not None and not existing.is_stale(self._now(), self._stale_threshold):
            return RefreshOutcome(record=existing)

        try:
            record = await self._single_flight.do(addr, lambda: self._refresh_if_unchanged(addr, existing))
        except Exception as e:
            if existing is not None:
                logger.warning("serving_stale_record", address=addr, error=str(e))
                return RefreshOutcome(record=existing, stale=True)
            logger.error("aggregation_failed_no_record", address=addr, error=str(e))
            raise DataTemporarilyUnavailableError(addr, reason=str(e)) from e
        return RefreshOutcome(record=record, refreshed=True)

    # ------------------------------------------------------------------
    # Inbound reads
    # ------------------------------------------------------------------

    async def _external(self, address: str) -> ExternalBonusData | None:
        if self.resolver is None:
            return None
        return await self.resolver.resolve_cached(address)

    async def get_user_metrics(self, address: str) -> UserMetricsView:
        outcome = await self.get_or_refresh(address)
        record = outcome.record
        metrics = record.to_metrics()
        now = self._now()
        external = await self._external(record.address)
        total = await self._run_store(self.store.count)
        days = age_days(metrics, now)
        return UserMetricsView(
            record=record,
            enhanced_score=self.scorer.calculate_score(metrics, external, now=now),
            total_users=total,
            percentile=get_percentile(record.rank, total),
            multipliers=self.scorer.get_multipliers(metrics, external, now=now),
            external=external or ExternalBonusData(),
            age_days=days,
            avg_tx_per_day=round(metrics.total_txs / days, 2),
            first_tx_date=utc_date(metrics.first_tx_timestamp) if metrics.total_txs else None,
            stale=outcome.stale,
        )

    async def get_user_score_breakdown(self, address: str) -> ScoreBreakdown:
        """Breakdown over the stored record; no refresh."""
        addr = normalize_address(address)
        record = await self._run_store(self.store.get, addr)
        if record is None:
            raise AddressNotFoundError(addr)
        external = await self._external(addr)
        return self.scorer.get_score_breakdown(record.to_metrics(), external, now=self._now())

    def _entry(self, record: UserActivityRecord, enhanced: int | None = None) -> LeaderboardEntry:
        return LeaderboardEntry(
            rank=record.rank,
            address=record.address,
            score=record.base_score,
            total_txs=record.total_txs,
            gas_spent_eth=record.gas_spent_eth,
            contracts_deployed=record.contracts_deployed,
            days_active=record.days_active,
            enhanced_score=enhanced,
        )

    async def get_leaderboard_page(
        self, limit: int = 50, offset: int = 0, *, include_enhanced: bool = False
    ) -> LeaderboardPage:
        records = await self._run_store(self.store.list_leaderboard, limit, offset)
        total = await self._run_store(self.store.count)
        enhanced: dict[str, int] = {}
        if include_enhanced and self.resolver is not None and records:
            now = self._now()
            bonus = await self.resolver.resolve_many([r.address for r in records])
            enhanced = {
                r.address: self.scorer.calculate_score(r.to_metrics(), bonus.get(r.address), now=now)
                for r in records
            }
        entries = [self._entry(r, enhanced.get(r.address)) for r in records]
        return LeaderboardPage(entries=entries, total_count=total, limit=limit, offset=offset)

    async def find_leaderboard_entry(self, address: str) -> tuple[LeaderboardEntry, int]:
        """Leaderboard search by address: (entry, total users)."""
        addr = normalize_address(address)
        record = await self._run_store(self.store.get, addr)
        if record is None:
            raise AddressNotFoundError(addr)
        total = await self._run_store(self.store.count)
        return self._entry(record), total

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def aggregate_batch(
        self, addresses: list[str], delay_sec: float | None = None
    ) -> list[UserActivityRecord]:
        """Refresh addresses one by one with a delay; failures are logged and skipped."""
        delay = self._batch_delay if delay_sec is None else delay_sec
        done: list[UserActivityRecord] = []
        for i, raw in enumerate(addresses):
            try:
                done.append(await self.refresh(raw))
            except Exception as e:
                logger.error("batch_aggregation_failed", address=raw, error=str(e))
            if i + 1 < len(addresses) and delay > 0:
                await self._sleep(delay)
        logger.info("batch_aggregation_done", requested=len(addresses), succeeded=len(done))
        return done

    async def recompute_ranks(self) -> int:
        return await self.ranks.recompute_all()
