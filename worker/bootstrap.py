"""
Worker Bootstrap

설정 로드, 의존성 주입, auto-sync 루프 생명주기 관리.
LedgerEngine은 Web 프로세스에서도 같은 방식으로 조립.
"""

import asyncio
import logging
import signal
import sys

from adapters.db.gateways import SQLiteDirectory, SQLiteOrdersGateway, SQLiteProductsGateway
from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.interfaces import IDirectory, IOrdersGateway, IProductsGateway
from core.config.loader import Settings, SettingsLoadError, get_settings
from core.ledger.balance import BalanceAggregator
from core.ledger.debts import DebtLifecycleManager
from core.ledger.rates import ExchangeRateBook
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from core.logging import setup_logging
from core.storage.config_store import ConfigStore
from core.types import ProcessName
from core.utils.timezone import Clock, now_utc
from worker.reconciler.monitor import Sleep
from worker.scheduler import MonitorRegistry

logger = logging.getLogger("worker")


class LedgerEngine:
    """Ledger 엔진

    모든 서비스를 하나의 DB 연결 위에 조립.
    외부 시스템 게이트웨이를 주지 않으면 같은 DB의 테이블을 읽는 SQLite 구현 사용.

    Args:
        settings: 설정 객체
        db: 연결된 SQLite 어댑터
        orders: 주문/결제 게이트웨이
        directory: 사용자/고객 디렉터리
        products: 상품 게이트웨이
        clock: 현재 시각 함수
        sleep: auto-sync 대기 함수
    """

    def __init__(
        self,
        settings: Settings,
        db: SQLiteAdapter,
        orders: IOrdersGateway | None = None,
        directory: IDirectory | None = None,
        products: IProductsGateway | None = None,
        clock: Clock = now_utc,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.db = db
        self.clock = clock

        self.orders = orders or SQLiteOrdersGateway(db)
        self.directory = directory or SQLiteDirectory(db)
        self.products = products or SQLiteProductsGateway(db)

        self.config_store = ConfigStore(db)
        self.rates = ExchangeRateBook(db, clock=clock)
        self.store = LedgerStore(db, self.directory, self.rates, clock=clock)
        self.debts = DebtLifecycleManager(db, self.store, self.rates, clock=clock)
        self.balance = BalanceAggregator(
            self.store, settings.ledger, self.products, self.rates, clock=clock
        )
        self.reports = DailyReportGenerator(
            db, self.store, self.rates, settings.ledger, clock=clock
        )
        self.monitors = MonitorRegistry(
            orders=self.orders,
            store=self.store,
            ledger_config=settings.ledger,
            sync_config=settings.auto_sync,
            config_store=self.config_store,
            reports=self.reports,
            directory=self.directory,
            clock=clock,
            sleep=sleep,
        )

    async def autostart(self) -> list[int]:
        """설정의 autostart_clients 루프 시작

        Returns:
            시작한 테넌트 ID 목록
        """
        started: list[int] = []
        for client_id in self.settings.auto_sync.autostart_clients:
            await self.monitors.start(client_id)
            started.append(client_id)

        if started:
            logger.info(f"Auto-sync 자동 시작: {started}")
        return started

    async def shutdown(self) -> None:
        """모든 루프 정지"""
        await self.monitors.stop_all()


def _install_signal_handlers(shutdown_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except NotImplementedError:
            # Windows: Ctrl+C는 KeyboardInterrupt로 처리
            pass


async def main() -> None:
    """Worker 메인 함수"""
    setup_logging(ProcessName.WORKER.value)

    logger.info("=" * 60)
    logger.info("CashLedger Worker 시작")
    logger.info("=" * 60)

    # 1. 설정 로드
    try:
        settings = get_settings()
    except SettingsLoadError as e:
        logger.error(f"설정 로드 실패: {e}")
        sys.exit(1)

    logger.info(f"DB: {settings.db_path}")
    logger.info(f"Timezone: {settings.ledger.timezone}")

    # 2. DB 연결 및 스키마 초기화
    async with SQLiteAdapter(settings.db_path) as db:
        await init_schema(db)

        # 3. 엔진 생성
        engine = LedgerEngine(settings, db)

        shutdown_event = asyncio.Event()
        _install_signal_handlers(shutdown_event)

        try:
            # 4. 테넌트 루프 시작
            started = await engine.autostart()
            if not started:
                logger.warning("auto_sync.autostart_clients가 비어 있어 실행할 루프가 없습니다")

            logger.info("Worker 대기 중 (종료: Ctrl+C)")
            await shutdown_event.wait()

        except asyncio.CancelledError:
            logger.info("메인 루프 취소됨")
        except KeyboardInterrupt:
            logger.info("Ctrl+C 감지")
        finally:
            # 5. 루프 정지
            await engine.shutdown()

    logger.info("=" * 60)
    logger.info("CashLedger Worker 정상 종료")
    logger.info("=" * 60)
