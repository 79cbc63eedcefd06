"""
Ledger 저장소

현금 이동, 지출, 고객 채무, 채무 결제의 저장 및 조회.
모든 조회/쓰기는 client_id(테넌트)로 한정.

현금 이동은 삭제/수정하지 않고 역분개(반대 부호 이동)로만 취소.
source_ref가 있는 이동은 (client_id, source_ref) 기준으로 한 번만 기록.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.errors import ConflictError, NotFoundError, ValidationError
from core.ledger.models import (
    CashMovement,
    CustomerDebt,
    DebtPayment,
    Expense,
    ExpenseFilter,
    ExpenseUpdate,
    MovementFilter,
    NewCashMovement,
    NewExpense,
)
from core.ledger.projections import project_debts, project_expenses, project_movements
from core.ledger.types import DebtStatus, MovementType
from core.utils.dedup import make_reversal_source_ref
from core.utils.money import parse_currency, sum_money
from core.utils.timezone import Clock, now_utc, to_db_ts

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from adapters.interfaces import IDirectory
    from core.ledger.rates import ExchangeRateBook

logger = logging.getLogger(__name__)


def _parse_movement_type(value: MovementType | str) -> MovementType:
    try:
        return MovementType(value)
    except ValueError as e:
        raise ValidationError(
            f"유효하지 않은 이동 유형입니다: '{value}'. 유효한 값: {MovementType.values()}"
        ) from e


def _window(
    column: str,
    start: datetime | None,
    end: datetime | None,
    params: list[Any],
) -> str:
    """[start, end) 조건 SQL 조각"""
    sql = ""
    if start is not None:
        sql += f" AND {column} >= ?"
        params.append(to_db_ts(start))
    if end is not None:
        sql += f" AND {column} < ?"
        params.append(to_db_ts(end))
    return sql


class LedgerStore:
    """Ledger 저장소

    Args:
        db: SQLite 어댑터
        directory: 사용자/고객 디렉터리 (존재 검증, 표시 이름)
        rates: 환율표 (통화 환산)
        clock: 현재 시각 함수
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        directory: IDirectory,
        rates: ExchangeRateBook,
        clock: Clock = now_utc,
    ):
        self.db = db
        self.directory = directory
        self.rates = rates
        self.clock = clock

    # =========================================================================
    # 참조 검증
    # =========================================================================

    async def ensure_user(self, client_id: int, user_id: int) -> None:
        """사용자 존재 확인

        Raises:
            NotFoundError: 테넌트에 사용자가 없음
        """
        if not await self.directory.user_exists(client_id, user_id):
            raise NotFoundError(f"사용자를 찾을 수 없습니다: user_id={user_id}")

    async def ensure_customer(self, client_id: int, customer_id: int) -> None:
        """고객 존재 확인

        Raises:
            NotFoundError: 테넌트에 고객이 없음
        """
        if not await self.directory.customer_exists(client_id, customer_id):
            raise NotFoundError(f"고객을 찾을 수 없습니다: customer_id={customer_id}")

    # =========================================================================
    # CashMovement
    # =========================================================================

    async def record_movement(self, new: NewCashMovement) -> CashMovement:
        """현금 이동 기록

        source_ref가 이미 기록되어 있으면 쓰지 않고 기존 이동을 반환.
        정상 기록과 auto-sync 보정이 모두 이 메서드를 사용.

        Args:
            new: 기록 요청

        Returns:
            기록된 (또는 이미 존재하던) 이동

        Raises:
            ValidationError: 유형/통화/금액 오류, 환율 없음
            NotFoundError: 사용자/고객이 테넌트에 없음
        """
        movement_type = _parse_movement_type(new.type)
        source_ref = (new.source_ref or "").strip() or None

        if source_ref is not None:
            existing = await self.get_movement_by_source_ref(new.client_id, source_ref)
            if existing is not None:
                logger.debug(
                    "중복 source_ref, 기존 이동 반환",
                    extra={"client_id": new.client_id, "source_ref": source_ref},
                )
                return existing

        await self.ensure_user(new.client_id, new.user_id)
        if new.customer_id is not None:
            await self.ensure_customer(new.client_id, new.customer_id)

        created_at = new.created_at or self.clock()
        converted = await self.rates.convert(
            new.client_id,
            new.currency,
            amount=new.amount,
            amount_usd=new.amount_usd,
            exchange_rate=new.exchange_rate,
            at=created_at,
        )

        async with self.db.transaction():
            movement_id = await self._insert_movement(
                client_id=new.client_id,
                movement_type=movement_type,
                amount=converted.amount,
                currency=converted.currency.value,
                exchange_rate=converted.exchange_rate,
                amount_usd=converted.amount_usd,
                user_id=new.user_id,
                customer_id=new.customer_id,
                description=new.description,
                payment_method=new.payment_method,
                source_ref=source_ref,
                reversal_of=None,
                created_at=created_at,
            )

        if movement_id is None:
            # 조회와 삽입 사이에 같은 source_ref가 먼저 기록됨
            existing = await self.get_movement_by_source_ref(new.client_id, source_ref)
            assert existing is not None
            return existing

        logger.info(
            f"현금 이동 기록: {movement_type.value} {converted.amount} {converted.currency.value}",
            extra={
                "client_id": new.client_id,
                "movement_id": movement_id,
                "amount_usd": str(converted.amount_usd),
                "source_ref": source_ref,
            },
        )
        return await self.get_movement(new.client_id, movement_id)

    async def reverse_movement(
        self,
        client_id: int,
        movement_id: int,
        user_id: int,
        reason: str | None = None,
    ) -> CashMovement:
        """역분개 (같은 유형, 반대 부호 이동)

        Raises:
            NotFoundError: 이동이 테넌트에 없음
            ConflictError: 이미 역분개됨 또는 역분개 이동 자체
        """
        original = await self.get_movement(client_id, movement_id)

        if original.is_reversal:
            raise ConflictError(f"역분개 이동은 다시 역분개할 수 없습니다: #{movement_id}")

        source_ref = make_reversal_source_ref(movement_id)
        if await self.get_movement_by_source_ref(client_id, source_ref) is not None:
            raise ConflictError(f"이미 역분개된 이동입니다: #{movement_id}")

        await self.ensure_user(client_id, user_id)

        description = f"Reversión de movimiento #{movement_id}"
        if reason:
            description += f": {reason}"

        async with self.db.transaction():
            reversal_id = await self._insert_movement(
                client_id=client_id,
                movement_type=original.type,
                amount=-original.amount,
                currency=original.currency.value,
                exchange_rate=original.exchange_rate,
                amount_usd=-original.amount_usd,
                user_id=user_id,
                customer_id=original.customer_id,
                description=description,
                payment_method=original.payment_method,
                source_ref=source_ref,
                reversal_of=movement_id,
                created_at=self.clock(),
            )

        if reversal_id is None:
            raise ConflictError(f"이미 역분개된 이동입니다: #{movement_id}")

        logger.info(
            f"역분개 기록: #{movement_id} → #{reversal_id}",
            extra={"client_id": client_id, "user_id": user_id},
        )
        return await self.get_movement(client_id, reversal_id)

    async def _insert_movement(
        self,
        *,
        client_id: int,
        movement_type: MovementType,
        amount: Decimal,
        currency: str,
        exchange_rate: Decimal,
        amount_usd: Decimal,
        user_id: int,
        customer_id: int | None,
        description: str | None,
        payment_method: str | None,
        source_ref: str | None,
        reversal_of: int | None,
        created_at: datetime,
    ) -> int | None:
        """cash_movements INSERT (트랜잭션 내부에서 호출)

        Returns:
            새 이동 ID, source_ref 충돌 시 None
        """
        cursor = await self.db.execute(
            """
            INSERT INTO cash_movements (
                client_id, type, amount, currency, exchange_rate, amount_usd,
                description, payment_method, user_id, customer_id, source_ref, reversal_of,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT DO NOTHING
            """,
            (
                client_id,
                movement_type.value,
                str(amount),
                currency,
                str(exchange_rate),
                str(amount_usd),
                description,
                payment_method,
                user_id,
                customer_id,
                source_ref,
                reversal_of,
                to_db_ts(created_at),
            ),
        )
        if cursor.rowcount == 0:
            return None
        return cursor.lastrowid

    async def get_movement(self, client_id: int, movement_id: int) -> CashMovement:
        """이동 단건 조회 (표시 이름 포함)

        Raises:
            NotFoundError: 테넌트에 없음
        """
        row = await self.db.fetchone(
            "SELECT * FROM cash_movements WHERE client_id = ? AND id = ?",
            (client_id, movement_id),
        )
        if row is None:
            raise NotFoundError(f"현금 이동을 찾을 수 없습니다: #{movement_id}")
        projected = await project_movements(
            self.directory, client_id, [CashMovement.from_row(row)]
        )
        return projected[0]

    async def get_movement_by_source_ref(
        self,
        client_id: int,
        source_ref: str,
    ) -> CashMovement | None:
        row = await self.db.fetchone(
            "SELECT * FROM cash_movements WHERE client_id = ? AND source_ref = ?",
            (client_id, source_ref),
        )
        if row is None:
            return None
        projected = await project_movements(
            self.directory, client_id, [CashMovement.from_row(row)]
        )
        return projected[0]

    async def query_movements(
        self,
        client_id: int,
        filter: MovementFilter | None = None,
        project: bool = True,
    ) -> list[CashMovement]:
        """이동 목록 조회 (최신순)

        Args:
            client_id: 테넌트 ID
            filter: 유형/구간/페이지 조건
            project: 표시 이름 projection 여부 (집계용은 False)
        """
        f = filter or MovementFilter()
        sql = "SELECT * FROM cash_movements WHERE client_id = ?"
        params: list[Any] = [client_id]

        if f.type is not None:
            sql += " AND type = ?"
            params.append(_parse_movement_type(f.type).value)

        sql += _window("created_at", f.start, f.end, params)
        sql += " ORDER BY created_at DESC, id DESC"

        if f.limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([f.limit, f.offset])

        rows = await self.db.fetchall(sql, tuple(params))
        movements = [CashMovement.from_row(row) for row in rows]

        if project:
            return await project_movements(self.directory, client_id, movements)
        return movements

    async def list_source_refs(
        self,
        client_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> set[str]:
        """구간 내 기록된 source_ref 집합 (auto-sync 비교용)"""
        params: list[Any] = [client_id]
        sql = (
            "SELECT source_ref FROM cash_movements "
            "WHERE client_id = ? AND source_ref IS NOT NULL"
        )
        sql += _window("created_at", start, end, params)

        rows = await self.db.fetchall(sql, tuple(params))
        return {row[0] for row in rows}

    async def currency_totals(self, client_id: int) -> dict[str, Decimal]:
        """통화별 부호 적용 합계 (원 통화 단위, 전체 기간)"""
        movements = await self.query_movements(client_id, project=False)
        totals: dict[str, Decimal] = {}
        for m in movements:
            totals[m.currency.value] = totals.get(m.currency.value, Decimal("0.00")) + m.signed_amount
        return totals

    # =========================================================================
    # Expense
    # =========================================================================

    async def record_expense(self, new: NewExpense) -> Expense:
        """지출 기록

        Raises:
            ValidationError: 카테고리 누락, 금액/통화 오류
            NotFoundError: 사용자가 테넌트에 없음
        """
        category = (new.category or "").strip()
        if not category:
            raise ValidationError("category 값이 필요합니다")

        await self.ensure_user(new.client_id, new.user_id)

        now = self.clock()
        expense_date = new.expense_date or now
        converted = await self.rates.convert(
            new.client_id,
            new.currency,
            amount=new.amount,
            amount_usd=new.amount_usd,
            exchange_rate=new.exchange_rate,
            at=expense_date,
        )

        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO expenses (
                    client_id, category, description, amount, currency, exchange_rate,
                    amount_usd, payment_method, user_id, expense_date, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new.client_id,
                    category,
                    new.description,
                    str(converted.amount),
                    converted.currency.value,
                    str(converted.exchange_rate),
                    str(converted.amount_usd),
                    new.payment_method,
                    new.user_id,
                    to_db_ts(expense_date),
                    to_db_ts(now),
                    to_db_ts(now),
                ),
            )
            expense_id = cursor.lastrowid

        logger.info(
            f"지출 기록: {category} {converted.amount} {converted.currency.value}",
            extra={"client_id": new.client_id, "expense_id": expense_id},
        )
        return await self.get_expense(new.client_id, expense_id)

    async def get_expense(self, client_id: int, expense_id: int) -> Expense:
        """지출 단건 조회

        Raises:
            NotFoundError: 테넌트에 없음
        """
        row = await self.db.fetchone(
            "SELECT * FROM expenses WHERE client_id = ? AND id = ?",
            (client_id, expense_id),
        )
        if row is None:
            raise NotFoundError(f"지출을 찾을 수 없습니다: #{expense_id}")
        projected = await project_expenses(self.directory, client_id, [Expense.from_row(row)])
        return projected[0]

    async def query_expenses(
        self,
        client_id: int,
        filter: ExpenseFilter | None = None,
        project: bool = True,
    ) -> list[Expense]:
        """지출 목록 조회 (expense_date 최신순)"""
        f = filter or ExpenseFilter()
        sql = "SELECT * FROM expenses WHERE client_id = ?"
        params: list[Any] = [client_id]

        if f.category:
            sql += " AND category = ?"
            params.append(f.category)

        sql += _window("expense_date", f.start, f.end, params)
        sql += " ORDER BY expense_date DESC, id DESC"

        rows = await self.db.fetchall(sql, tuple(params))
        expenses = [Expense.from_row(row) for row in rows]

        if project:
            return await project_expenses(self.directory, client_id, expenses)
        return expenses

    async def update_expense(
        self,
        client_id: int,
        expense_id: int,
        update: ExpenseUpdate,
    ) -> Expense:
        """지출 수정 (카테고리/설명/금액/날짜)

        Raises:
            NotFoundError: 테넌트에 없음
            ValidationError: 빈 카테고리, 금액 오류
        """
        existing = await self.get_expense(client_id, expense_id)

        category = existing.category
        if update.category is not None:
            category = update.category.strip()
            if not category:
                raise ValidationError("category 값이 필요합니다")

        expense_date = update.expense_date or existing.expense_date

        amount, currency = existing.amount, existing.currency
        exchange_rate, amount_usd = existing.exchange_rate, existing.amount_usd
        if update.touches_amount:
            new_currency = update.currency or existing.currency
            rate = update.exchange_rate
            if rate is None and parse_currency(new_currency) == existing.currency:
                rate = existing.exchange_rate
            new_amount = update.amount
            if new_amount is None and update.amount_usd is None:
                new_amount = existing.amount

            converted = await self.rates.convert(
                client_id,
                new_currency,
                amount=new_amount,
                amount_usd=update.amount_usd,
                exchange_rate=rate,
                at=expense_date,
            )
            amount, currency = converted.amount, converted.currency
            exchange_rate, amount_usd = converted.exchange_rate, converted.amount_usd

        async with self.db.transaction():
            await self.db.execute(
                """
                UPDATE expenses SET
                    category = ?, description = ?, amount = ?, currency = ?,
                    exchange_rate = ?, amount_usd = ?, payment_method = ?,
                    expense_date = ?, updated_at = ?
                WHERE client_id = ? AND id = ?
                """,
                (
                    category,
                    update.description if update.description is not None else existing.description,
                    str(amount),
                    currency.value,
                    str(exchange_rate),
                    str(amount_usd),
                    update.payment_method if update.payment_method is not None else existing.payment_method,
                    to_db_ts(expense_date),
                    to_db_ts(self.clock()),
                    client_id,
                    expense_id,
                ),
            )

        logger.info(
            f"지출 수정: #{expense_id}",
            extra={"client_id": client_id, "amount_usd": str(amount_usd)},
        )
        return await self.get_expense(client_id, expense_id)

    async def delete_expense(self, client_id: int, expense_id: int) -> None:
        """지출 삭제 (물리 삭제)

        Raises:
            NotFoundError: 테넌트에 없음
        """
        async with self.db.transaction():
            cursor = await self.db.execute(
                "DELETE FROM expenses WHERE client_id = ? AND id = ?",
                (client_id, expense_id),
            )
            deleted = cursor.rowcount

        if deleted == 0:
            raise NotFoundError(f"지출을 찾을 수 없습니다: #{expense_id}")

        logger.info(f"지출 삭제: #{expense_id}", extra={"client_id": client_id})

    # =========================================================================
    # CustomerDebt / DebtPayment (행 저장만 담당, 상태 전이는 DebtLifecycleManager)
    # =========================================================================

    async def insert_debt(
        self,
        *,
        client_id: int,
        customer_id: int,
        original_amount: Decimal,
        currency: str,
        order_id: str | None,
        notes: str | None,
        created_at: datetime,
    ) -> int:
        """customer_debts INSERT (트랜잭션 내부에서 호출)"""
        cursor = await self.db.execute(
            """
            INSERT INTO customer_debts (
                client_id, customer_id, order_id, original_amount, paid_amount,
                remaining_amount, currency, status, notes, version, created_at, updated_at
            ) VALUES (?, ?, ?, ?, '0.00', ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                client_id,
                customer_id,
                order_id,
                str(original_amount),
                str(original_amount),
                currency,
                DebtStatus.VIGENTE.value,
                notes,
                to_db_ts(created_at),
                to_db_ts(created_at),
            ),
        )
        return cursor.lastrowid

    async def update_debt_state(
        self,
        *,
        client_id: int,
        debt_id: int,
        expected_version: int,
        paid_amount: Decimal,
        remaining_amount: Decimal,
        status: DebtStatus,
        notes: str | None,
        updated_at: datetime,
    ) -> bool:
        """채무 상태 갱신 (낙관적 버전 검사, 트랜잭션 내부에서 호출)

        Returns:
            갱신 성공 여부 (버전 불일치 시 False)
        """
        cursor = await self.db.execute(
            """
            UPDATE customer_debts SET
                paid_amount = ?, remaining_amount = ?, status = ?, notes = ?,
                version = version + 1, updated_at = ?
            WHERE client_id = ? AND id = ? AND version = ?
            """,
            (
                str(paid_amount),
                str(remaining_amount),
                status.value,
                notes,
                to_db_ts(updated_at),
                client_id,
                debt_id,
                expected_version,
            ),
        )
        return cursor.rowcount == 1

    async def get_debt(self, client_id: int, debt_id: int) -> CustomerDebt:
        """채무 단건 조회

        Raises:
            NotFoundError: 테넌트에 없음
        """
        row = await self.db.fetchone(
            "SELECT * FROM customer_debts WHERE client_id = ? AND id = ?",
            (client_id, debt_id),
        )
        if row is None:
            raise NotFoundError(f"채무를 찾을 수 없습니다: #{debt_id}")
        projected = await project_debts(self.directory, client_id, [CustomerDebt.from_row(row)])
        return projected[0]

    async def query_debts(
        self,
        client_id: int,
        status: DebtStatus | str | None = None,
        customer_id: int | None = None,
    ) -> list[CustomerDebt]:
        """채무 목록 조회 (최신순)"""
        sql = "SELECT * FROM customer_debts WHERE client_id = ?"
        params: list[Any] = [client_id]

        if status is not None:
            try:
                status_value = DebtStatus(status).value
            except ValueError as e:
                raise ValidationError(f"유효하지 않은 채무 상태입니다: '{status}'") from e
            sql += " AND status = ?"
            params.append(status_value)

        if customer_id is not None:
            sql += " AND customer_id = ?"
            params.append(customer_id)

        sql += " ORDER BY created_at DESC, id DESC"

        rows = await self.db.fetchall(sql, tuple(params))
        debts = [CustomerDebt.from_row(row) for row in rows]
        return await project_debts(self.directory, client_id, debts)

    async def sum_active_debts(self, client_id: int) -> Decimal:
        """vigente 채무의 remaining_amount 합계"""
        rows = await self.db.fetchall(
            "SELECT remaining_amount FROM customer_debts WHERE client_id = ? AND status = ?",
            (client_id, DebtStatus.VIGENTE.value),
        )
        return sum_money(Decimal(row[0]) for row in rows)

    async def insert_debt_payment(
        self,
        *,
        client_id: int,
        debt_id: int,
        amount: Decimal,
        currency: str,
        exchange_rate: Decimal,
        amount_usd: Decimal,
        user_id: int,
        payment_method: str | None,
        notes: str | None,
        payment_date: datetime,
        created_at: datetime,
    ) -> int:
        """debt_payments INSERT (트랜잭션 내부에서 호출)"""
        cursor = await self.db.execute(
            """
            INSERT INTO debt_payments (
                debt_id, client_id, amount, currency, exchange_rate, amount_usd,
                payment_method, user_id, notes, payment_date, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                debt_id,
                client_id,
                str(amount),
                currency,
                str(exchange_rate),
                str(amount_usd),
                payment_method,
                user_id,
                notes,
                to_db_ts(payment_date),
                to_db_ts(created_at),
            ),
        )
        return cursor.lastrowid

    async def get_debt_payment(self, client_id: int, payment_id: int) -> DebtPayment:
        row = await self.db.fetchone(
            "SELECT * FROM debt_payments WHERE client_id = ? AND id = ?",
            (client_id, payment_id),
        )
        if row is None:
            raise NotFoundError(f"채무 결제를 찾을 수 없습니다: #{payment_id}")
        return DebtPayment.from_row(row)

    async def query_debt_payments(
        self,
        client_id: int,
        debt_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DebtPayment]:
        """채무 결제 목록 조회 (payment_date 최신순)"""
        sql = "SELECT * FROM debt_payments WHERE client_id = ?"
        params: list[Any] = [client_id]

        if debt_id is not None:
            sql += " AND debt_id = ?"
            params.append(debt_id)

        sql += _window("payment_date", start, end, params)
        sql += " ORDER BY payment_date DESC, id DESC"

        rows = await self.db.fetchall(sql, tuple(params))
        return [DebtPayment.from_row(row) for row in rows]
