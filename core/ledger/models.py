"""
현금 원장 도메인 모델

DB 행을 표준화한 불변 데이터 구조.
모든 금액/환율은 Decimal 타입 사용.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from core.ledger.types import DebtStatus, MovementType, movement_sign
from core.types import Currency
from core.utils.timezone import from_db_ts


def _dec(value: Any) -> Decimal:
    return Decimal(str(value))


def _opt_dec(value: Any) -> Decimal | None:
    return None if value is None else Decimal(str(value))


def _ts(value: str) -> datetime:
    parsed = from_db_ts(value)
    assert parsed is not None
    return parsed


# =========================================================================
# CashMovement
# =========================================================================


@dataclass(frozen=True)
class CashMovement:
    """현금 이동 (불변)

    Attributes:
        amount: 원 통화 금액 (역분개는 음수)
        exchange_rate: 기록 시점에 사용한 환율 (1 USD당 통화 단위)
        amount_usd: USD 환산 금액 (역분개는 음수)
        payment_method: 결제 수단 (예: efectivo_ars, transferencia_usdt)
        source_ref: 원천 주문/결제 식별자 (중복 제거 키)
        reversal_of: 역분개 대상 이동 ID
        user_name: 조회 시 projection으로 채워지는 표시 이름
        customer_name: 조회 시 projection으로 채워지는 표시 이름
    """

    id: int
    client_id: int
    type: MovementType
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal
    user_id: int
    created_at: datetime
    description: str | None = None
    payment_method: str | None = None
    customer_id: int | None = None
    source_ref: str | None = None
    reversal_of: int | None = None
    user_name: str | None = None
    customer_name: str | None = None

    @property
    def is_reversal(self) -> bool:
        """역분개 이동 여부"""
        return self.reversal_of is not None

    @property
    def signed_amount(self) -> Decimal:
        """잔고 부호를 적용한 원 통화 금액"""
        return self.amount * movement_sign(self.type)

    @property
    def signed_amount_usd(self) -> Decimal:
        """잔고 부호를 적용한 USD 금액"""
        return self.amount_usd * movement_sign(self.type)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CashMovement":
        return cls(
            id=row["id"],
            client_id=row["client_id"],
            type=MovementType(row["type"]),
            amount=_dec(row["amount"]),
            currency=Currency(row["currency"]),
            exchange_rate=_dec(row["exchange_rate"]),
            amount_usd=_dec(row["amount_usd"]),
            user_id=row["user_id"],
            created_at=_ts(row["created_at"]),
            description=row["description"],
            payment_method=row["payment_method"],
            customer_id=row["customer_id"],
            source_ref=row["source_ref"],
            reversal_of=row["reversal_of"],
        )

    def to_dict(self) -> dict[str, Any]:
        """리포트 스냅샷용 직렬화 (금액은 문자열)"""
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": str(self.amount),
            "currency": self.currency.value,
            "exchange_rate": str(self.exchange_rate),
            "amount_usd": str(self.amount_usd),
            "description": self.description,
            "payment_method": self.payment_method,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "source_ref": self.source_ref,
            "reversal_of": self.reversal_of,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NewCashMovement:
    """현금 이동 기록 요청

    amount(원 통화)와 amount_usd 중 하나 이상 필요.
    USD가 아니면 exchange_rate를 지정하거나 환율표의 현재 환율을 사용.
    """

    client_id: int
    type: MovementType | str
    user_id: int
    amount: Decimal | None = None
    currency: Currency | str = Currency.USD
    amount_usd: Decimal | None = None
    exchange_rate: Decimal | None = None
    customer_id: int | None = None
    description: str | None = None
    payment_method: str | None = None
    source_ref: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class MovementFilter:
    """현금 이동 조회 조건 ([start, end) UTC)"""

    type: MovementType | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int | None = None
    offset: int = 0


# =========================================================================
# Expense
# =========================================================================


@dataclass(frozen=True)
class Expense:
    """지출 (수정/삭제 가능)"""

    id: int
    client_id: int
    category: str
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal
    user_id: int
    expense_date: datetime
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    payment_method: str | None = None
    user_name: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Expense":
        return cls(
            id=row["id"],
            client_id=row["client_id"],
            category=row["category"],
            amount=_dec(row["amount"]),
            currency=Currency(row["currency"]),
            exchange_rate=_dec(row["exchange_rate"]),
            amount_usd=_dec(row["amount_usd"]),
            user_id=row["user_id"],
            expense_date=_ts(row["expense_date"]),
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
            description=row["description"],
            payment_method=row["payment_method"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "description": self.description,
            "amount": str(self.amount),
            "currency": self.currency.value,
            "exchange_rate": str(self.exchange_rate),
            "amount_usd": str(self.amount_usd),
            "payment_method": self.payment_method,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "expense_date": self.expense_date.isoformat(),
        }


@dataclass(frozen=True)
class NewExpense:
    """지출 기록 요청"""

    client_id: int
    category: str
    user_id: int
    amount: Decimal | None = None
    currency: Currency | str = Currency.USD
    amount_usd: Decimal | None = None
    exchange_rate: Decimal | None = None
    description: str | None = None
    payment_method: str | None = None
    expense_date: datetime | None = None


@dataclass(frozen=True)
class ExpenseUpdate:
    """지출 수정 요청 (None 필드는 유지)

    금액 관련 필드가 하나라도 있으면 USD 환산을 다시 계산.
    """

    category: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    currency: Currency | str | None = None
    amount_usd: Decimal | None = None
    exchange_rate: Decimal | None = None
    payment_method: str | None = None
    expense_date: datetime | None = None

    @property
    def touches_amount(self) -> bool:
        return any(
            v is not None
            for v in (self.amount, self.currency, self.amount_usd, self.exchange_rate)
        )


@dataclass(frozen=True)
class ExpenseFilter:
    """지출 조회 조건 ([start, end) UTC, expense_date 기준)"""

    category: str | None = None
    start: datetime | None = None
    end: datetime | None = None


# =========================================================================
# CustomerDebt / DebtPayment
# =========================================================================


@dataclass(frozen=True)
class CustomerDebt:
    """고객 채무

    remaining_amount = max(0, original_amount - Σ payments.amount_usd)
    paid_amount = Σ payments.amount_usd (원금 초과 가능, 감사용)
    """

    id: int
    client_id: int
    customer_id: int
    original_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    currency: Currency
    status: DebtStatus
    version: int
    created_at: datetime
    updated_at: datetime
    order_id: str | None = None
    notes: str | None = None
    customer_name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == DebtStatus.VIGENTE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CustomerDebt":
        return cls(
            id=row["id"],
            client_id=row["client_id"],
            customer_id=row["customer_id"],
            original_amount=_dec(row["original_amount"]),
            paid_amount=_dec(row["paid_amount"]),
            remaining_amount=_dec(row["remaining_amount"]),
            currency=Currency(row["currency"]),
            status=DebtStatus(row["status"]),
            version=row["version"],
            created_at=_ts(row["created_at"]),
            updated_at=_ts(row["updated_at"]),
            order_id=row["order_id"],
            notes=row["notes"],
        )


@dataclass(frozen=True)
class DebtPayment:
    """채무 결제 (추가 전용)"""

    id: int
    debt_id: int
    client_id: int
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal
    user_id: int
    payment_date: datetime
    created_at: datetime
    payment_method: str | None = None
    notes: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DebtPayment":
        return cls(
            id=row["id"],
            debt_id=row["debt_id"],
            client_id=row["client_id"],
            amount=_dec(row["amount"]),
            currency=Currency(row["currency"]),
            exchange_rate=_dec(row["exchange_rate"]),
            amount_usd=_dec(row["amount_usd"]),
            user_id=row["user_id"],
            payment_date=_ts(row["payment_date"]),
            created_at=_ts(row["created_at"]),
            payment_method=row["payment_method"],
            notes=row["notes"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "debt_id": self.debt_id,
            "amount": str(self.amount),
            "currency": self.currency.value,
            "exchange_rate": str(self.exchange_rate),
            "amount_usd": str(self.amount_usd),
            "payment_method": self.payment_method,
            "user_id": self.user_id,
            "payment_date": self.payment_date.isoformat(),
        }


@dataclass(frozen=True)
class NewDebtPayment:
    """채무 결제 요청"""

    client_id: int
    debt_id: int
    user_id: int
    amount: Decimal | None = None
    currency: Currency | str = Currency.USD
    amount_usd: Decimal | None = None
    exchange_rate: Decimal | None = None
    payment_method: str | None = None
    notes: str | None = None
    payment_date: datetime | None = None


@dataclass(frozen=True)
class PaymentOutcome:
    """결제 적용 결과

    Attributes:
        excess_usd: 잔액을 초과한 금액 (0이면 초과 없음)
        movement: 함께 기록된 pago_deuda 이동 (없으면 None)
    """

    payment: DebtPayment
    debt: CustomerDebt
    excess_usd: Decimal
    movement: CashMovement | None = None


# =========================================================================
# ExchangeRate
# =========================================================================


@dataclass(frozen=True)
class ExchangeRate:
    """관리자 입력 환율 (1 USD당 통화 단위)"""

    id: int
    client_id: int
    currency: Currency
    rate: Decimal
    effective_at: datetime
    created_at: datetime
    set_by: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ExchangeRate":
        return cls(
            id=row["id"],
            client_id=row["client_id"],
            currency=Currency(row["currency"]),
            rate=_dec(row["rate"]),
            effective_at=_ts(row["effective_at"]),
            created_at=_ts(row["created_at"]),
            set_by=row["set_by"],
        )


# =========================================================================
# DailyReport / RealTimeState
# =========================================================================


@dataclass(frozen=True)
class DailyReport:
    """일일 마감 스냅샷

    net_profit = total_income - total_expenses
    closing_balance = opening_balance + net_profit
    """

    id: int
    client_id: int
    report_date: date
    opening_balance: Decimal
    total_income: Decimal
    total_expenses: Decimal
    total_debt_payments: Decimal
    total_active_debts: Decimal
    net_profit: Decimal
    closing_balance: Decimal
    total_movements: int
    report_data: dict[str, Any]
    is_auto_generated: bool
    generated_at: datetime
    exchange_rate_used: Decimal | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DailyReport":
        return cls(
            id=row["id"],
            client_id=row["client_id"],
            report_date=date.fromisoformat(row["report_date"]),
            opening_balance=_dec(row["opening_balance"]),
            total_income=_dec(row["total_income"]),
            total_expenses=_dec(row["total_expenses"]),
            total_debt_payments=_dec(row["total_debt_payments"]),
            total_active_debts=_dec(row["total_active_debts"]),
            net_profit=_dec(row["net_profit"]),
            closing_balance=_dec(row["closing_balance"]),
            total_movements=row["total_movements"],
            report_data=json.loads(row["report_data"]),
            is_auto_generated=bool(row["is_auto_generated"]),
            generated_at=_ts(row["generated_at"]),
            exchange_rate_used=_opt_dec(row["exchange_rate_used"]),
        )


@dataclass(frozen=True)
class RealTimeState:
    """실시간 현금 상태 (매 호출마다 재계산)"""

    total_balance_usd: Decimal
    daily_sales_usd: Decimal
    daily_expenses_usd: Decimal
    total_active_debts_usd: Decimal
    last_updated: datetime
    balances_by_currency: dict[str, Decimal] = field(default_factory=dict)
