"""
고객 채무 생명주기 관리

채무 생성, 결제 적용, 취소.
remaining_amount/paid_amount/status의 유일한 작성자.

동시 결제 직렬화:
1. 채무별 asyncio.Lock (프로세스 내)
2. BEGIN IMMEDIATE 트랜잭션 (프로세스 간)
3. version 컬럼 낙관적 검사 → 불일치 시 새로 읽어서 재시도
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Defaults
from core.domain.state_machines import DebtStateMachine, StateMachineError
from core.errors import ConflictError, ValidationError
from core.ledger.models import (
    CashMovement,
    CustomerDebt,
    DebtPayment,
    NewCashMovement,
    NewDebtPayment,
    PaymentOutcome,
)
from core.ledger.rates import ExchangeRateBook
from core.ledger.store import LedgerStore
from core.ledger.types import DebtStatus, MovementType
from core.types import Currency
from core.utils.dedup import make_debt_payment_source_ref
from core.utils.money import ZERO, quantize_money
from core.utils.timezone import Clock, now_utc

logger = logging.getLogger(__name__)


class _StaleDebtVersion(Exception):
    """읽은 뒤 다른 쓰기가 채무를 먼저 갱신함"""


class DebtLifecycleManager:
    """고객 채무 관리자

    Args:
        db: SQLite 어댑터
        store: Ledger 저장소
        rates: 환율표
        clock: 현재 시각 함수
        max_retries: 버전 충돌 시 최대 시도 횟수
        record_movements: 결제 시 pago_deuda 현금 이동을 함께 기록할지
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        rates: ExchangeRateBook,
        clock: Clock = now_utc,
        max_retries: int = Defaults.DEBT_PAYMENT_MAX_RETRIES,
        record_movements: bool = True,
    ):
        self.db = db
        self.store = store
        self.rates = rates
        self.clock = clock
        self.max_retries = max_retries
        self.record_movements = record_movements
        self._locks: dict[tuple[int, int], asyncio.Lock] = {}

    def _lock_for(self, client_id: int, debt_id: int) -> asyncio.Lock:
        key = (client_id, debt_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # =========================================================================
    # 생성 / 조회
    # =========================================================================

    async def create_debt(
        self,
        client_id: int,
        customer_id: int,
        amount: Any,
        currency: Currency | str = Currency.USD,
        exchange_rate: Any = None,
        order_id: str | None = None,
        notes: str | None = None,
    ) -> CustomerDebt:
        """채무 생성 (vigente, 금액은 USD로 환산하여 보관)

        Raises:
            ValidationError: 금액 0 이하, 통화 오류
            NotFoundError: 고객이 테넌트에 없음
        """
        await self.store.ensure_customer(client_id, customer_id)

        now = self.clock()
        converted = await self.rates.convert(
            client_id, currency, amount=amount, exchange_rate=exchange_rate, at=now
        )
        if converted.amount_usd <= 0:
            raise ValidationError("채무 금액은 0보다 커야 합니다")

        async with self.db.transaction():
            debt_id = await self.store.insert_debt(
                client_id=client_id,
                customer_id=customer_id,
                original_amount=converted.amount_usd,
                currency=Currency.USD.value,
                order_id=order_id,
                notes=notes,
                created_at=now,
            )

        logger.info(
            f"채무 생성: #{debt_id} {converted.amount_usd} USD",
            extra={"client_id": client_id, "customer_id": customer_id, "order_id": order_id},
        )
        return await self.store.get_debt(client_id, debt_id)

    async def get_debt_detail(
        self,
        client_id: int,
        debt_id: int,
    ) -> tuple[CustomerDebt, list[DebtPayment]]:
        """채무와 결제 이력"""
        debt = await self.store.get_debt(client_id, debt_id)
        payments = await self.store.query_debt_payments(client_id, debt_id=debt_id)
        return debt, payments

    async def list_debts(
        self,
        client_id: int,
        status: DebtStatus | str | None = None,
        customer_id: int | None = None,
    ) -> list[CustomerDebt]:
        return await self.store.query_debts(client_id, status=status, customer_id=customer_id)

    # =========================================================================
    # 결제
    # =========================================================================

    async def apply_payment(self, new: NewDebtPayment) -> PaymentOutcome:
        """채무 결제 적용

        결제 금액은 그대로 기록하고 remaining_amount는 0 미만으로 내려가지 않음.
        초과분은 결과(excess_usd)와 결제 메모로 보고.
        remaining이 0이 되면 pagada로 전이.

        Raises:
            NotFoundError: 채무/사용자가 테넌트에 없음
            ValidationError: 금액/통화 오류
            ConflictError: 종료 상태 채무, 재시도 후에도 버전 충돌
        """
        await self.store.ensure_user(new.client_id, new.user_id)

        payment_date = new.payment_date or self.clock()
        converted = await self.rates.convert(
            new.client_id,
            new.currency,
            amount=new.amount,
            amount_usd=new.amount_usd,
            exchange_rate=new.exchange_rate,
            at=payment_date,
        )

        async with self._lock_for(new.client_id, new.debt_id):
            for attempt in range(1, self.max_retries + 1):
                debt = await self.store.get_debt(new.client_id, new.debt_id)
                try:
                    return await self._apply_once(new, debt, converted, payment_date)
                except _StaleDebtVersion:
                    logger.warning(
                        f"채무 버전 충돌, 재시도 {attempt}/{self.max_retries}",
                        extra={"client_id": new.client_id, "debt_id": new.debt_id},
                    )

        raise ConflictError(
            f"채무 #{new.debt_id} 동시 결제 충돌. 잠시 후 다시 시도하세요"
        )

    async def _apply_once(
        self,
        new: NewDebtPayment,
        debt: CustomerDebt,
        converted: Any,
        payment_date: Any,
    ) -> PaymentOutcome:
        machine = DebtStateMachine(debt.status)
        if machine.is_terminal:
            raise ConflictError(
                f"채무 #{debt.id}는 이미 {debt.status.value} 상태입니다"
            )

        amount_usd: Decimal = converted.amount_usd
        remaining_before = debt.remaining_amount
        remaining_after = quantize_money(max(ZERO, remaining_before - amount_usd))
        excess = quantize_money(max(ZERO, amount_usd - remaining_before))
        paid_after = quantize_money(debt.paid_amount + amount_usd)

        status = debt.status
        if remaining_after == ZERO:
            status = DebtStatus(machine.transition(DebtStatus.PAGADA))

        notes = new.notes
        if excess > 0:
            excess_note = f"Excedente de {excess} USD sobre saldo de {remaining_before} USD"
            notes = f"{notes} | {excess_note}" if notes else excess_note

        now = self.clock()
        movement: CashMovement | None = None

        async with self.db.transaction():
            updated = await self.store.update_debt_state(
                client_id=debt.client_id,
                debt_id=debt.id,
                expected_version=debt.version,
                paid_amount=paid_after,
                remaining_amount=remaining_after,
                status=status,
                notes=debt.notes,
                updated_at=now,
            )
            if not updated:
                raise _StaleDebtVersion()

            payment_id = await self.store.insert_debt_payment(
                client_id=debt.client_id,
                debt_id=debt.id,
                amount=converted.amount,
                currency=converted.currency.value,
                exchange_rate=converted.exchange_rate,
                amount_usd=amount_usd,
                user_id=new.user_id,
                payment_method=new.payment_method,
                notes=notes,
                payment_date=payment_date,
                created_at=now,
            )

            if self.record_movements:
                movement = await self.store.record_movement(
                    NewCashMovement(
                        client_id=debt.client_id,
                        type=MovementType.PAGO_DEUDA,
                        user_id=new.user_id,
                        amount=converted.amount,
                        currency=converted.currency,
                        amount_usd=amount_usd,
                        exchange_rate=converted.exchange_rate,
                        customer_id=debt.customer_id,
                        description=f"Pago de deuda #{debt.id}",
                        payment_method=new.payment_method,
                        source_ref=make_debt_payment_source_ref(payment_id),
                        created_at=payment_date,
                    )
                )

        if excess > 0:
            logger.warning(
                f"채무 초과 결제: #{debt.id} 초과 {excess} USD",
                extra={"client_id": debt.client_id, "payment_id": payment_id},
            )

        logger.info(
            f"채무 결제 적용: #{debt.id} {amount_usd} USD, 잔액 {remaining_before} → {remaining_after}",
            extra={"client_id": debt.client_id, "status": status.value},
        )

        return PaymentOutcome(
            payment=await self.store.get_debt_payment(debt.client_id, payment_id),
            debt=await self.store.get_debt(debt.client_id, debt.id),
            excess_usd=excess,
            movement=movement,
        )

    # =========================================================================
    # 취소
    # =========================================================================

    async def cancel_debt(
        self,
        client_id: int,
        debt_id: int,
        reason: str | None = None,
    ) -> CustomerDebt:
        """채무 취소 (관리자 조치, vigente → cancelada)

        Raises:
            NotFoundError: 채무가 테넌트에 없음
            ConflictError: 종료 상태 채무, 동시 갱신
        """
        async with self._lock_for(client_id, debt_id):
            debt = await self.store.get_debt(client_id, debt_id)
            machine = DebtStateMachine(debt.status)
            try:
                machine.transition(DebtStatus.CANCELADA)
            except StateMachineError as e:
                raise ConflictError(
                    f"채무 #{debt_id}는 {debt.status.value} 상태라 취소할 수 없습니다"
                ) from e

            notes = debt.notes
            if reason:
                notes = f"{notes} | Cancelada: {reason}" if notes else f"Cancelada: {reason}"

            async with self.db.transaction():
                updated = await self.store.update_debt_state(
                    client_id=client_id,
                    debt_id=debt_id,
                    expected_version=debt.version,
                    paid_amount=debt.paid_amount,
                    remaining_amount=debt.remaining_amount,
                    status=DebtStatus.CANCELADA,
                    notes=notes,
                    updated_at=self.clock(),
                )

            if not updated:
                raise ConflictError(f"채무 #{debt_id}가 다른 요청에 의해 변경되었습니다")

        logger.info(f"채무 취소: #{debt_id}", extra={"client_id": client_id, "reason": reason})
        return await self.store.get_debt(client_id, debt_id)
