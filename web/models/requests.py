"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증.
JSON 키는 camelCase (clientId, amountUsd 등), snake_case도 허용.
금액의 양수 검증/통화 검증은 core 계층에서 수행 (ValidationError → 400).
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase 별칭 기본 모델"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =========================================================================
# 현금 이동
# =========================================================================


class CashMovementCreateRequest(CamelModel):
    """현금 이동 기록 요청

    amount(원 통화)와 amountUsd 중 하나 이상 필요.
    """

    client_id: int = Field(..., description="테넌트 ID")
    type: str = Field(..., description="이동 유형 (venta, ingreso, egreso 등)")
    user_id: int = Field(..., description="기록 사용자 ID")
    amount: Decimal | None = Field(default=None, description="원 통화 금액")
    amount_usd: Decimal | None = Field(default=None, description="USD 금액")
    currency: str = Field(default="USD", description="통화 (USD, ARS, USDT)")
    exchange_rate: Decimal | None = Field(default=None, description="1 USD당 통화 단위")
    customer_id: int | None = Field(default=None, description="고객 ID")
    description: str | None = Field(default=None, description="설명")
    payment_method: str | None = Field(default=None, description="결제 수단 (예: efectivo_ars)")
    source_ref: str | None = Field(default=None, description="원천 식별자 (중복 제거 키)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "clientId": 1,
                    "type": "venta",
                    "userId": 7,
                    "amount": "120000",
                    "currency": "ARS",
                    "exchangeRate": "1200",
                    "sourceRef": "O1",
                },
            ]
        }
    }


class ReverseMovementRequest(CamelModel):
    """역분개 요청"""

    client_id: int
    user_id: int
    reason: str | None = None


# =========================================================================
# 지출
# =========================================================================


class ExpenseCreateRequest(CamelModel):
    """지출 기록 요청"""

    client_id: int
    category: str
    user_id: int
    amount: Decimal | None = None
    amount_usd: Decimal | None = None
    currency: str = "USD"
    exchange_rate: Decimal | None = None
    description: str | None = None
    payment_method: str | None = None
    expense_date: datetime | None = Field(default=None, description="지출 시각 (기본 현재)")


class ExpenseUpdateRequest(CamelModel):
    """지출 수정 요청 (생략한 필드는 유지)"""

    category: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    amount_usd: Decimal | None = None
    currency: str | None = None
    exchange_rate: Decimal | None = None
    payment_method: str | None = None
    expense_date: datetime | None = None


# =========================================================================
# 고객 채무
# =========================================================================


class DebtCreateRequest(CamelModel):
    """채무 생성 요청 (USD로 환산하여 보관)"""

    client_id: int
    customer_id: int
    amount: Decimal
    currency: str = "USD"
    exchange_rate: Decimal | None = None
    order_id: str | None = None
    notes: str | None = None


class DebtCancelRequest(CamelModel):
    """채무 취소 요청"""

    client_id: int
    reason: str | None = None


class DebtPaymentCreateRequest(CamelModel):
    """채무 결제 요청"""

    client_id: int
    debt_id: int
    user_id: int
    amount: Decimal | None = None
    amount_usd: Decimal | None = None
    currency: str = "USD"
    exchange_rate: Decimal | None = None
    payment_method: str | None = None
    notes: str | None = None
    payment_date: datetime | None = None


# =========================================================================
# 환율 / 리포트 / auto-sync
# =========================================================================


class ExchangeRateCreateRequest(CamelModel):
    """환율 등록 요청"""

    client_id: int
    currency: str
    rate: Decimal = Field(..., description="1 USD당 통화 단위")
    effective_at: datetime | None = Field(default=None, description="적용 시작 시각 (기본 현재)")
    set_by: str | None = None


class DailyReportGenerateRequest(CamelModel):
    """일일 리포트 생성 요청"""

    client_id: int
    report_date: date | None = Field(
        default=None, alias="date", description="현지 날짜 (기본 오늘)"
    )


class AutoSyncStartRequest(CamelModel):
    """auto-sync 시작 요청"""

    client_id: int
    interval_seconds: int | None = Field(default=None, ge=1, description="사이클 간격 (초)")


class AutoSyncStopRequest(CamelModel):
    """auto-sync 정지 요청"""

    client_id: int
