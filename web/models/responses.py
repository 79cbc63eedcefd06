"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화.
금액(Decimal)은 JSON 문자열, 시각은 ISO-8601, 키는 camelCase.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.ledger.types import DebtStatus, MovementType
from core.types import Currency


class ResponseModel(BaseModel):
    """도메인 dataclass에서 바로 변환 가능한 camelCase 응답 모델"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(ResponseModel):
    """단순 결과 응답"""

    success: bool = True
    message: str


class HealthResponse(ResponseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    version: str = Field(..., description="API 버전")
    timestamp: datetime = Field(..., description="응답 시간 (UTC)")
    running_monitors: list[int] = Field(default_factory=list, description="실행 중인 auto-sync 테넌트")


# =========================================================================
# 현금 이동 / 지출
# =========================================================================


class CashMovementResponse(ResponseModel):
    """현금 이동 응답"""

    id: int
    client_id: int
    type: MovementType
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal
    description: str | None = None
    payment_method: str | None = None
    user_id: int
    user_name: str | None = None
    customer_id: int | None = None
    customer_name: str | None = None
    source_ref: str | None = None
    reversal_of: int | None = None
    created_at: datetime


class CashMovementListResponse(ResponseModel):
    """현금 이동 목록 응답"""

    movements: list[CashMovementResponse] = Field(default_factory=list)
    limit: int
    offset: int


class ExpenseResponse(ResponseModel):
    """지출 응답"""

    id: int
    client_id: int
    category: str
    description: str | None = None
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal
    payment_method: str | None = None
    user_id: int
    user_name: str | None = None
    expense_date: datetime
    created_at: datetime
    updated_at: datetime


# =========================================================================
# 고객 채무
# =========================================================================


class DebtResponse(ResponseModel):
    """고객 채무 응답"""

    id: int
    client_id: int
    customer_id: int
    customer_name: str | None = None
    order_id: str | None = None
    original_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    currency: Currency
    status: DebtStatus
    notes: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class DebtPaymentResponse(ResponseModel):
    """채무 결제 응답"""

    id: int
    debt_id: int
    client_id: int
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal
    payment_method: str | None = None
    user_id: int
    notes: str | None = None
    payment_date: datetime
    created_at: datetime


class DebtDetailResponse(ResponseModel):
    """채무 상세 (결제 이력 포함)"""

    debt: DebtResponse
    payments: list[DebtPaymentResponse] = Field(default_factory=list)


class PaymentOutcomeResponse(ResponseModel):
    """결제 적용 결과

    excessUsd > 0 이면 잔액을 초과한 결제.
    """

    payment: DebtPaymentResponse
    debt: DebtResponse
    excess_usd: Decimal
    movement: CashMovementResponse | None = None


# =========================================================================
# 잔고 / 환율 / 리포트
# =========================================================================


class RealTimeStateResponse(ResponseModel):
    """실시간 현금 상태"""

    total_balance_usd: Decimal
    daily_sales_usd: Decimal
    daily_expenses_usd: Decimal
    total_active_debts_usd: Decimal
    balances_by_currency: dict[str, Decimal] = Field(default_factory=dict)
    last_updated: datetime


class StockValueResponse(ResponseModel):
    """재고 원가 평가"""

    usd: Decimal
    ars: Decimal | None = None
    rate: Decimal | None = None
    rate_effective_at: datetime | None = None


class ExchangeRateResponse(ResponseModel):
    """환율 응답"""

    id: int
    client_id: int
    currency: Currency
    rate: Decimal
    effective_at: datetime
    set_by: str | None = None
    created_at: datetime


class DailyReportResponse(ResponseModel):
    """일일 리포트 응답"""

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
    exchange_rate_used: Decimal | None = None
    report_data: dict[str, Any] = Field(default_factory=dict)
    is_auto_generated: bool
    generated_at: datetime


class AutoSyncStatusResponse(ResponseModel):
    """auto-sync 상태 응답"""

    client_id: int
    is_running: bool
    interval_seconds: int | None = None
    started_at: datetime | None = None
    last_check: datetime | None = None
    next_check: datetime | None = None
    issues_found: int = 0
    issues_fixed: int = 0
    repair_failures: int = 0
    cycles_run: int = 0
    cycles_skipped: int = 0
