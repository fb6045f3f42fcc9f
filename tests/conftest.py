"""
Pytest fixtures for MegaRank tests. Uses temporary SQLite DBs and zero-I/O HTTP mocks.
"""

from __future__ import annotations

import pytest

from backend_megarank.config import ScoringSettings, Settings, StoreSettings
from factories import (
    ADDR,
    ADDR_2,
    DAY,
    NOW,
    TOKEN,
    Clock,
    ExplorerStub,
    FakeSleep,
    explorer_settings,
    identity_settings,
    mock_client,
    tx_item,
)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'megarank.db'}"


@pytest.fixture
def store(db_url):
    """ActivityStore on a fresh temporary SQLite file."""
    from backend_megarank.database import ActivityStore

    s = ActivityStore(db_url)
    s.init_db()
    yield s
    s.dispose()


@pytest.fixture
def settings(db_url) -> Settings:
    return Settings(
        explorer=explorer_settings(),
        identity=identity_settings(),
        store=StoreSettings(database_url=db_url),
    )


@pytest.fixture
def explorer() -> ExplorerStub:
    """ADDR: 20 txs over 20 days; ADDR_2: 3 contract deployments yesterday."""
    stub = ExplorerStub()
    stub.txs[ADDR] = [tx_item(i, ts=NOW - (i + 1) * DAY, fee_wei=10 ** 16) for i in range(20)]
    stub.txs[ADDR_2] = [tx_item(100 + i, sender=ADDR_2, to=None, ts=NOW - DAY) for i in range(3)]
    return stub


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def service(store, explorer, clock, fake_sleep):
    """ActivityService over the mock explorer, no identity resolver, fixed clock."""
    from backend_megarank.aggregation import ActivityService
    from backend_megarank.analysis_engine import ScoringEngine
    from backend_megarank.explorer import ExplorerClient, TokenTransferFetcher, TransactionFetcher

    client = ExplorerClient(explorer_settings(page_delay_sec=0), http_client=mock_client(explorer), sleep=fake_sleep)
    return ActivityService(
        store,
        TransactionFetcher(client),
        TokenTransferFetcher(client),
        ScoringEngine(ScoringSettings(network_launch_timestamp=NOW - 365 * DAY)),
        None,
        token_contract=TOKEN,
        clock=clock,
        sleep=fake_sleep,
    )


@pytest.fixture
def client(service, settings):
    """FastAPI TestClient over the mocked service."""
    from fastapi.testclient import TestClient

    from backend_megarank.api_server import create_app

    with TestClient(create_app(service=service, settings=settings)) as c:
        yield c
