"""
pytest 공통 fixture 정의

임시 SQLite DB + Mock 외부 시스템 위에 Ledger 서비스를 조립.
시각은 FakeClock으로 고정 (테넌트 타임존: UTC-3).
"""

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.mock.gateways import (
    MockDirectory,
    MockOrdersGateway,
    MockProductsGateway,
    MockState,
)
from core.config.loader import AppConfig, AutoSyncConfig, LedgerConfig
from core.ledger.balance import BalanceAggregator
from core.ledger.debts import DebtLifecycleManager
from core.ledger.rates import ExchangeRateBook
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from core.storage.config_store import ConfigStore

from tests.support import (
    CLIENT_ID,
    CUSTOMER_ID,
    OTHER_CLIENT_ID,
    SYSTEM_USER_ID,
    TZ,
    USER_ID,
    FakeClock,
)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """OS 독립적인 임시 디렉토리"""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "test_ledger.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


# -------------------------------------------------------------------------
# 외부 시스템 (Mock)
# -------------------------------------------------------------------------


@pytest.fixture
def mock_state() -> MockState:
    return MockState()


@pytest.fixture
def directory(mock_state: MockState) -> MockDirectory:
    """테넌트 1: 사용자 system/ana, 고객 Carlos / 테넌트 2: 사용자 system"""
    d = MockDirectory(mock_state)
    d.add_user(CLIENT_ID, SYSTEM_USER_ID, "system")
    d.add_user(CLIENT_ID, USER_ID, "ana")
    d.add_customer(CLIENT_ID, CUSTOMER_ID, "Carlos")
    d.add_user(OTHER_CLIENT_ID, SYSTEM_USER_ID, "system")
    return d


@pytest.fixture
def orders(mock_state: MockState) -> MockOrdersGateway:
    return MockOrdersGateway(mock_state)


@pytest.fixture
def products(mock_state: MockState) -> MockProductsGateway:
    return MockProductsGateway(mock_state)


# -------------------------------------------------------------------------
# 설정
# -------------------------------------------------------------------------


@pytest.fixture
def ledger_config() -> LedgerConfig:
    return LedgerConfig(timezone=TZ)


@pytest.fixture
def sync_config() -> AutoSyncConfig:
    return AutoSyncConfig(interval_seconds=5, system_user_id=SYSTEM_USER_ID)


@pytest.fixture
def app_config(
    tmp_path: Path,
    ledger_config: LedgerConfig,
    sync_config: AutoSyncConfig,
) -> AppConfig:
    """LedgerEngine에 넘기는 설정 (Settings와 같은 속성)"""
    return AppConfig(
        db_path=tmp_path / "test_ledger.db",
        ledger=ledger_config,
        auto_sync=sync_config,
    )


# -------------------------------------------------------------------------
# 서비스
# -------------------------------------------------------------------------


@pytest.fixture
def rates(db: SQLiteAdapter, clock: FakeClock) -> ExchangeRateBook:
    return ExchangeRateBook(db, clock=clock)


@pytest.fixture
def store(
    db: SQLiteAdapter,
    directory: MockDirectory,
    rates: ExchangeRateBook,
    clock: FakeClock,
) -> LedgerStore:
    return LedgerStore(db, directory, rates, clock=clock)


@pytest.fixture
def debts(
    db: SQLiteAdapter,
    store: LedgerStore,
    rates: ExchangeRateBook,
    clock: FakeClock,
) -> DebtLifecycleManager:
    return DebtLifecycleManager(db, store, rates, clock=clock)


@pytest.fixture
def reports(
    db: SQLiteAdapter,
    store: LedgerStore,
    rates: ExchangeRateBook,
    ledger_config: LedgerConfig,
    clock: FakeClock,
) -> DailyReportGenerator:
    return DailyReportGenerator(db, store, rates, ledger_config, clock=clock)


@pytest.fixture
def balance(
    store: LedgerStore,
    ledger_config: LedgerConfig,
    products: MockProductsGateway,
    rates: ExchangeRateBook,
    clock: FakeClock,
) -> BalanceAggregator:
    return BalanceAggregator(store, ledger_config, products, rates, clock=clock)


@pytest.fixture
def config_store(db: SQLiteAdapter) -> ConfigStore:
    return ConfigStore(db)
