"""
Monitor Registry

테넌트별 Reconciliation Monitor를 하나씩만 유지하는 스케줄러.
start/stop/status의 공개 진입점 (Web, Worker 공용).
"""

import asyncio
import logging

from adapters.interfaces import IDirectory, IOrdersGateway
from core.config.loader import AutoSyncConfig, LedgerConfig
from core.constants import Defaults
from core.errors import ValidationError
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from core.storage.config_store import ConfigStore
from core.utils.timezone import Clock, now_utc
from worker.reconciler.monitor import ReconciliationMonitor, ReconciliationStatus, Sleep

logger = logging.getLogger(__name__)


class MonitorRegistry:
    """테넌트별 auto-sync 루프 관리

    Args:
        orders: 주문/결제 게이트웨이
        store: Ledger 저장소
        ledger_config: Ledger 설정 (타임존)
        sync_config: Auto-sync 설정 (기본 간격, 시스템 사용자, 일일 자동 마감 여부)
        config_store: 상태 미러링 저장소
        reports: 리포트 생성기 (backfill_reports 설정 시 일일 자동 마감)
        directory: 디렉터리 (첫 마감 시작일 조회)
        clock: 현재 시각 함수
        sleep: 대기 함수
    """

    def __init__(
        self,
        orders: IOrdersGateway,
        store: LedgerStore,
        ledger_config: LedgerConfig,
        sync_config: AutoSyncConfig,
        config_store: ConfigStore | None = None,
        reports: DailyReportGenerator | None = None,
        directory: IDirectory | None = None,
        clock: Clock = now_utc,
        sleep: Sleep = asyncio.sleep,
    ):
        self.orders = orders
        self.store = store
        self.ledger_config = ledger_config
        self.sync_config = sync_config
        self.config_store = config_store
        self.reports = reports
        self.directory = directory
        self.clock = clock
        self.sleep = sleep

        self._monitors: dict[int, ReconciliationMonitor] = {}
        self._lock = asyncio.Lock()

    def _create_monitor(self, client_id: int, interval_seconds: int) -> ReconciliationMonitor:
        return ReconciliationMonitor(
            client_id=client_id,
            interval_seconds=interval_seconds,
            orders=self.orders,
            store=self.store,
            timezone=self.ledger_config.timezone,
            system_user_id=self.sync_config.system_user_id,
            config_store=self.config_store,
            reports=self.reports if self.sync_config.backfill_reports else None,
            directory=self.directory,
            clock=self.clock,
            sleep=self.sleep,
        )

    async def start(
        self,
        client_id: int,
        interval_seconds: int | None = None,
    ) -> ReconciliationStatus:
        """테넌트 루프 시작

        이미 실행 중이면 새 루프를 만들지 않고 현재 상태를 반환.

        Raises:
            ValidationError: 최소 간격 미만
        """
        interval = (
            self.sync_config.interval_seconds if interval_seconds is None else interval_seconds
        )
        if interval < Defaults.MIN_SYNC_INTERVAL_SEC:
            raise ValidationError(
                f"intervalSeconds는 {Defaults.MIN_SYNC_INTERVAL_SEC} 이상이어야 합니다"
            )

        async with self._lock:
            monitor = self._monitors.get(client_id)
            if monitor is not None and monitor.is_running:
                logger.debug(f"Auto-sync 이미 실행 중: client {client_id}")
                return monitor.status

            monitor = self._create_monitor(client_id, interval)
            self._monitors[client_id] = monitor
            return await monitor.start()

    async def stop(self, client_id: int) -> ReconciliationStatus:
        """테넌트 루프 정지 (실행 중이 아니면 현재 상태 반환)"""
        async with self._lock:
            monitor = self._monitors.get(client_id)
            if monitor is None:
                return ReconciliationStatus(client_id=client_id)
            return await monitor.stop()

    async def status(self, client_id: int) -> ReconciliationStatus:
        """테넌트 상태

        이 프로세스에서 관리하지 않는 테넌트는 ConfigStore에 미러링된 상태
        (다른 프로세스의 Worker가 저장한 값)를 반환.
        """
        monitor = self._monitors.get(client_id)
        if monitor is not None:
            return monitor.status

        if self.config_store is not None:
            stored = await self.config_store.get_sync_status(client_id)
            return ReconciliationStatus.from_dict(client_id, stored)

        return ReconciliationStatus(client_id=client_id)

    def running_clients(self) -> list[int]:
        """실행 중인 테넌트 ID 목록"""
        return sorted(cid for cid, m in self._monitors.items() if m.is_running)

    async def stop_all(self) -> None:
        """모든 루프 정지 (프로세스 종료 시)"""
        for client_id in self.running_clients():
            await self.stop(client_id)
        logger.info("모든 Auto-sync 루프 정지")
