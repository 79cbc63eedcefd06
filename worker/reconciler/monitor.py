"""
Reconciliation Monitor (auto-sync)

테넌트 하나의 주문/결제 기록과 현금 원장을 주기적으로 비교하여
누락된 venta 이동을 원장 API(record_movement)로 보정.

매 반복:
0. 현지 날짜가 바뀌었으면 지난 날짜 일일 자동 마감
1. 현지 오늘 결제된 주문 조회
2. 오늘 원장에 기록된 source_ref 조회
3. 누락된 결제 묶음(주문 + 결제 수단)마다 원 통화 venta 이동 기록 (같은 dedup 키)
4. 모든 보정 시도가 끝난 뒤 카운터 갱신
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable

from adapters.interfaces import IDirectory, IOrdersGateway
from core.errors import LedgerError, ReconciliationRepairError
from core.ledger.models import NewCashMovement
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from core.ledger.types import MovementType
from core.storage.config_store import ConfigStore
from core.types import Currency
from core.utils.timezone import Clock, day_bounds, from_db_ts, local_date, now_utc
from worker.reconciler.drift import DriftDetector, SaleDrift

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class ReconciliationStatus:
    """테넌트별 auto-sync 상태

    카운터는 한 번의 실행(start ~ stop) 동안 감소하지 않음.
    새로 start할 때만 초기화.
    """

    client_id: int
    is_running: bool = False
    interval_seconds: int | None = None
    started_at: datetime | None = None
    last_check: datetime | None = None
    next_check: datetime | None = None
    issues_found: int = 0
    issues_fixed: int = 0
    repair_failures: int = 0
    cycles_run: int = 0
    cycles_skipped: int = 0

    def to_dict(self) -> dict[str, Any]:
        """ConfigStore 저장용 (시각은 ISO 문자열)"""
        data = asdict(self)
        for key in ("started_at", "last_check", "next_check"):
            value = data[key]
            data[key] = value.isoformat() if value else None
        return data

    @classmethod
    def from_dict(cls, client_id: int, data: dict[str, Any]) -> "ReconciliationStatus":
        """ConfigStore 저장값 복원"""
        return cls(
            client_id=client_id,
            is_running=bool(data.get("is_running", False)),
            interval_seconds=data.get("interval_seconds"),
            started_at=from_db_ts(data.get("started_at")),
            last_check=from_db_ts(data.get("last_check")),
            next_check=from_db_ts(data.get("next_check")),
            issues_found=int(data.get("issues_found", 0)),
            issues_fixed=int(data.get("issues_fixed", 0)),
            repair_failures=int(data.get("repair_failures", 0)),
            cycles_run=int(data.get("cycles_run", 0)),
            cycles_skipped=int(data.get("cycles_skipped", 0)),
        )


@dataclass(frozen=True)
class CycleResult:
    """사이클 한 번의 결과"""

    issues_found: int = 0
    issues_fixed: int = 0
    repair_failures: int = 0
    skipped: bool = False


class ReconciliationMonitor:
    """테넌트 하나의 auto-sync 루프

    매 반복마다 현지 날짜가 바뀌었는지 확인하고, 바뀌었으면
    리포트가 없는 지난 날짜를 자동 마감한 뒤 정합 사이클 실행.

    Args:
        client_id: 테넌트 ID
        interval_seconds: 사이클 간격 (초)
        orders: 주문/결제 게이트웨이
        store: Ledger 저장소 (보정 쓰기 경로)
        timezone: 테넌트 현지 타임존
        system_user_id: 보정 이동의 user_id
        config_store: 상태 미러링 대상 (없으면 미러링 안 함)
        reports: 일일 자동 마감용 (없으면 마감 안 함)
        directory: 첫 마감 시작일(테넌트 생성일) 조회용
        clock: 현재 시각 함수
        sleep: 대기 함수 (테스트에서 교체)
    """

    def __init__(
        self,
        client_id: int,
        interval_seconds: int,
        orders: IOrdersGateway,
        store: LedgerStore,
        timezone: str,
        system_user_id: int,
        config_store: ConfigStore | None = None,
        reports: DailyReportGenerator | None = None,
        directory: IDirectory | None = None,
        clock: Clock = now_utc,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client_id = client_id
        self.interval_seconds = interval_seconds
        self.orders = orders
        self.store = store
        self.timezone = timezone
        self.system_user_id = system_user_id
        self.config_store = config_store
        self.reports = reports
        self.directory = directory
        self.clock = clock
        self.sleep = sleep

        self.drift_detector = DriftDetector(client_id)
        self._status = ReconciliationStatus(client_id=client_id)

        self._running = False
        self._in_flight = False
        self._sleeping = False
        self._closure_checked_on: date | None = None
        self._monitor_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def status(self) -> ReconciliationStatus:
        """상태 스냅샷 (복사본)"""
        return replace(self._status)

    # =========================================================================
    # 생명주기
    # =========================================================================

    async def start(self) -> ReconciliationStatus:
        """루프 시작 (이미 실행 중이면 현재 상태 그대로 반환)"""
        if self._running:
            return self.status

        now = self.clock()
        self._status = ReconciliationStatus(
            client_id=self.client_id,
            is_running=True,
            interval_seconds=self.interval_seconds,
            started_at=now,
            next_check=now,
        )
        self._running = True
        self._closure_checked_on = None
        task = asyncio.create_task(self._monitor_loop(), name=f"auto-sync-{self.client_id}")
        task.add_done_callback(self._on_loop_done)
        self._monitor_task = task

        logger.info(
            f"Auto-sync 시작: client {self.client_id}",
            extra={"interval_seconds": self.interval_seconds},
        )
        await self._mirror_status()
        return self.status

    async def stop(self) -> ReconciliationStatus:
        """루프 정지

        진행 중인 사이클은 끝까지 실행한 뒤 종료.
        대기 중이면 대기만 취소.
        """
        if not self._running and self._monitor_task is None:
            return self.status

        self._running = False
        task = self._monitor_task
        if task is not None:
            if self._sleeping:
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(
                    f"Auto-sync 루프 비정상 종료: client {self.client_id}",
                    extra={"error": str(e)},
                )
            self._monitor_task = None

        self._mark_stopped()

        logger.info(
            f"Auto-sync 정지: client {self.client_id}",
            extra={
                "issues_found": self._status.issues_found,
                "issues_fixed": self._status.issues_fixed,
                "cycles_run": self._status.cycles_run,
            },
        )
        await self._mirror_status()
        return self.status

    def _mark_stopped(self) -> None:
        self._running = False
        self._status.is_running = False
        self._status.next_check = None

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        """루프 태스크 종료 콜백 (예외로 끝나도 실행 상태 해제)"""
        if self._monitor_task is task:
            self._monitor_task = None

        error = None if task.cancelled() else task.exception()
        if not self._running:
            return

        self._mark_stopped()
        logger.warning(
            f"Auto-sync 루프가 예기치 않게 종료됨: client {self.client_id}",
            extra={"error": str(error) if error else None},
        )

    async def _monitor_loop(self) -> None:
        """사이클 루프 (매 사이클 시작 전에 _running 확인)

        예상하지 못한 예외로 루프가 끝나면 정지 상태를 미러링.
        """
        try:
            while self._running:
                try:
                    await self._check_daily_closure()
                except Exception as e:
                    logger.warning(
                        f"일일 자동 마감 실패: client {self.client_id}",
                        extra={"error": str(e)},
                    )

                try:
                    await self.run_cycle()
                except Exception as e:
                    logger.error(
                        f"Auto-sync 사이클 실패: client {self.client_id}",
                        extra={"error": str(e)},
                        exc_info=True,
                    )

                if not self._running:
                    break

                self._sleeping = True
                try:
                    await self.sleep(self.interval_seconds)
                finally:
                    self._sleeping = False
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Auto-sync 루프 중단: client {self.client_id}",
                extra={"error": str(e)},
                exc_info=True,
            )
            self._mark_stopped()
            await self._mirror_status()
            raise

    async def _check_daily_closure(self) -> None:
        """현지 날짜가 바뀌었으면 리포트 없는 지난 날짜 자동 마감

        첫 확인은 테넌트 생성일부터, 이후에는 마지막 확인일부터 어제까지.
        """
        if self.reports is None:
            return

        today = local_date(self.clock(), self.timezone)
        if self._closure_checked_on == today:
            return

        since = self._closure_checked_on or today
        if self._closure_checked_on is None and self.directory is not None:
            created_at = await self.directory.get_client_created_at(self.client_id)
            if created_at is not None:
                since = local_date(created_at, self.timezone)

        await self.reports.backfill_missing(
            self.client_id, since, until=today - timedelta(days=1)
        )
        self._closure_checked_on = today

    # =========================================================================
    # 사이클
    # =========================================================================

    async def run_cycle(self) -> CycleResult:
        """정합 검사 + 보정 한 사이클

        이전 사이클이 아직 진행 중이면 건너뜀 (cycles_skipped 증가).
        주문/원장 조회 실패는 예외로 전파되고 카운터는 변하지 않음.
        """
        if self._in_flight:
            self._status.cycles_skipped += 1
            logger.warning(
                f"이전 사이클 진행 중, 건너뜀: client {self.client_id}",
                extra={"cycles_skipped": self._status.cycles_skipped},
            )
            return CycleResult(skipped=True)

        self._in_flight = True
        try:
            now = self.clock()
            start, end = day_bounds(local_date(now, self.timezone), self.timezone)

            orders = await self.orders.get_paid_orders(self.client_id, start, end)
            recorded = await self.store.list_source_refs(self.client_id, start, end)
            candidates = self.drift_detector.detect_missing_sales(orders, recorded)

            drifts: list[SaleDrift] = []
            for drift in candidates:
                # 다른 날 기록된 주문은 drift가 아님
                if await self._recorded_elsewhere(drift):
                    continue
                drifts.append(drift)

            fixed = 0
            failed = 0
            for drift in drifts:
                try:
                    await self._repair(drift)
                    fixed += 1
                except ReconciliationRepairError as e:
                    failed += 1
                    logger.error(
                        f"보정 실패, 건너뜀: {e.source_ref}",
                        extra={"client_id": self.client_id, "error": str(e.cause)},
                    )

            finished = self.clock()
            self._status.issues_found += len(drifts)
            self._status.issues_fixed += fixed
            self._status.repair_failures += failed
            self._status.cycles_run += 1
            self._status.last_check = finished
            self._status.next_check = (
                finished + timedelta(seconds=self.interval_seconds) if self._running else None
            )

            if drifts:
                logger.info(
                    f"Auto-sync 보정: client {self.client_id} 발견 {len(drifts)} / 보정 {fixed}",
                    extra={"repair_failures": failed},
                )
        finally:
            self._in_flight = False

        await self._mirror_status()
        return CycleResult(issues_found=len(drifts), issues_fixed=fixed, repair_failures=failed)

    async def _recorded_elsewhere(self, drift: SaleDrift) -> bool:
        refs = {drift.order_ref, drift.source_ref}
        for ref in refs:
            if await self.store.get_movement_by_source_ref(self.client_id, ref):
                return True
        return False

    async def _repair(self, drift: SaleDrift) -> None:
        """누락된 venta 이동 기록 (정상 기록과 같은 API/dedup 키)

        결제 통화/금액/환율을 그대로 기록. USD는 amount_usd만 전달.

        Raises:
            ReconciliationRepairError: 기록 실패
        """
        is_usd = drift.currency == Currency.USD
        try:
            await self.store.record_movement(
                NewCashMovement(
                    client_id=self.client_id,
                    type=MovementType.VENTA,
                    user_id=self.system_user_id,
                    amount=None if is_usd else drift.amount,
                    currency=drift.currency,
                    amount_usd=drift.amount_usd,
                    exchange_rate=None if is_usd else drift.exchange_rate,
                    customer_id=drift.order.customer_id,
                    description=drift.description,
                    payment_method=drift.payment_method,
                    source_ref=drift.source_ref,
                    created_at=drift.paid_at,
                )
            )
        except LedgerError as e:
            raise ReconciliationRepairError(self.client_id, drift.source_ref, e) from e

    async def _mirror_status(self) -> None:
        """상태를 ConfigStore에 저장 (실패해도 루프는 계속)"""
        if self.config_store is None:
            return
        saved = await self.config_store.save_sync_status(self.client_id, self._status.to_dict())
        if not saved:
            logger.warning(f"Auto-sync 상태 저장 실패: client {self.client_id}")
