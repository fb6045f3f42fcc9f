"""
MegaRank activity store — SQLAlchemy-backed user_activity table.

Uses DATABASE_URL when set (PostgreSQL or any SQLAlchemy URL); otherwise
SQLite (MEGARANK_DB_PATH or megarank.db). One row per lowercase address,
fully replaced on every aggregation. rank is written only by recompute_ranks().
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import BigInteger, Column, Float, Integer, String, create_engine, func
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend_megarank.database.models import UserActivityRecord
from backend_megarank.megarank_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

# Columns rewritten by upsert (everything except the key and rank)
_METRIC_COLUMNS = (
    "total_txs",
    "gas_spent_wei",
    "gas_spent_eth",
    "active_gas_eth",
    "gas_milestone_tier",
    "token_volume",
    "contracts_deployed",
    "days_active",
    "first_tx_timestamp",
    "last_tx_timestamp",
    "base_score",
    "last_updated",
)


class UserActivity(Base):
    """Aggregated activity for one address."""

    __tablename__ = "user_activity"

    address = Column(String(42), primary_key=True)
    total_txs = Column(Integer, nullable=False, default=0)
    gas_spent_wei = Column(String(80), nullable=False, default="0")  # string avoids integer overflow
    gas_spent_eth = Column(Float, nullable=False, default=0.0)
    active_gas_eth = Column(Float, nullable=False, default=0.0)
    gas_milestone_tier = Column(Integer, nullable=False, default=0)
    token_volume = Column(Float, nullable=False, default=0.0)
    contracts_deployed = Column(Integer, nullable=False, default=0)
    days_active = Column(Integer, nullable=False, default=0)
    first_tx_timestamp = Column(BigInteger, nullable=False)
    last_tx_timestamp = Column(BigInteger, nullable=False)
    base_score = Column(BigInteger, nullable=False, default=0, index=True)
    rank = Column(Integer, nullable=True, index=True)
    last_updated = Column(BigInteger, nullable=False, index=True)  # Unix

    def to_record(self) -> UserActivityRecord:
        return UserActivityRecord(
            address=self.address,
            total_txs=self.total_txs,
            gas_spent_wei=int(self.gas_spent_wei or "0"),
            gas_spent_eth=self.gas_spent_eth,
            active_gas_eth=self.active_gas_eth,
            gas_milestone_tier=self.gas_milestone_tier,
            token_volume=self.token_volume,
            contracts_deployed=self.contracts_deployed,
            days_active=self.days_active,
            first_tx_timestamp=self.first_tx_timestamp,
            last_tx_timestamp=self.last_tx_timestamp,
            base_score=self.base_score,
            last_updated=self.last_updated,
            rank=self.rank,
        )


def _column_values(record: UserActivityRecord) -> dict[str, Any]:
    values = {name: getattr(record, name) for name in _METRIC_COLUMNS}
    values["gas_spent_wei"] = str(record.gas_spent_wei)
    return values


class ActivityStore:
    """Engine + session factory for one database URL. Thread-safe for run_in_executor use."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        connect_args: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("activity_store_engine", url=database_url.split("?")[0].split("//")[-1])

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_db(self) -> None:
        """Create tables if they do not exist. Safe to call on every startup."""
        try:
            Base.metadata.create_all(bind=self._engine)
            logger.info("activity_store_init_db", url=self.database_url.split("?")[0].split("//")[-1])
        except Exception as e:
            logger.exception("activity_store_init_db_failed", error=str(e))
            raise

    def dispose(self) -> None:
        self._engine.dispose()

    def get(self, address: str) -> UserActivityRecord | None:
        with self.session_scope() as session:
            row = session.get(UserActivity, address.lower())
            return row.to_record() if row else None

    def upsert(self, record: UserActivityRecord) -> None:
        """Insert or fully replace every metric column of the row. Never touches rank."""
        address = record.address.lower()
        values = _column_values(record)
        try:
            with self.session_scope() as session:
                row = session.get(UserActivity, address)
                if row is None:
                    session.add(UserActivity(address=address, rank=None, **values))
                else:
                    for name, value in values.items():
                        setattr(row, name, value)
            logger.debug("activity_store_upsert", address=address, base_score=record.base_score)
        except Exception as e:
            logger.exception("activity_store_upsert_failed", address=address, error=str(e))
            raise

    def count(self) -> int:
        with self.session_scope() as session:
            return int(session.query(func.count(UserActivity.address)).scalar() or 0)

    def list_leaderboard(self, limit: int, offset: int = 0) -> list[UserActivityRecord]:
        """Rows ordered by base score desc, address asc (same order ranks are assigned in)."""
        with self.session_scope() as session:
            rows = (
                session.query(UserActivity)
                .order_by(UserActivity.base_score.desc(), UserActivity.address.asc())
                .offset(max(0, offset))
                .limit(max(0, limit))
                .all()
            )
            return [r.to_record() for r in rows]

    def list_addresses(self) -> list[str]:
        with self.session_scope() as session:
            return [r[0] for r in session.query(UserActivity.address).order_by(UserActivity.address).all()]

    def recompute_ranks(self) -> int:
        """
        Assign dense ranks 1..N by score desc, address asc, in one transaction.

        Only rows whose rank changes are written. Returns N.
        """
        try:
            with self.session_scope() as session:
                rows = (
                    session.query(UserActivity.address, UserActivity.rank)
                    .order_by(UserActivity.base_score.desc(), UserActivity.address.asc())
                    .all()
                )
                changed = 0
                for position, (address, current) in enumerate(rows, start=1):
                    if current != position:
                        session.query(UserActivity).filter(UserActivity.address == address).update(
                            {"rank": position}, synchronize_session=False
                        )
                        changed += 1
            logger.info("ranks_recomputed", total=len(rows), changed=changed)
            return len(rows)
        except Exception as e:
            logger.exception("ranks_recompute_failed", error=str(e))
            raise
