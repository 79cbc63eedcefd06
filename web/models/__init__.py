"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AutoSyncStartRequest,
    AutoSyncStopRequest,
    CamelModel,
    CashMovementCreateRequest,
    DailyReportGenerateRequest,
    DebtCancelRequest,
    DebtCreateRequest,
    DebtPaymentCreateRequest,
    ExchangeRateCreateRequest,
    ExpenseCreateRequest,
    ExpenseUpdateRequest,
    ReverseMovementRequest,
)
from web.models.responses import (
    AutoSyncStatusResponse,
    CashMovementListResponse,
    CashMovementResponse,
    DailyReportResponse,
    DebtDetailResponse,
    DebtPaymentResponse,
    DebtResponse,
    ExchangeRateResponse,
    ExpenseResponse,
    HealthResponse,
    MessageResponse,
    PaymentOutcomeResponse,
    RealTimeStateResponse,
    StockValueResponse,
)

__all__ = [
    # Requests
    "CamelModel",
    "CashMovementCreateRequest",
    "ReverseMovementRequest",
    "ExpenseCreateRequest",
    "ExpenseUpdateRequest",
    "DebtCreateRequest",
    "DebtCancelRequest",
    "DebtPaymentCreateRequest",
    "ExchangeRateCreateRequest",
    "DailyReportGenerateRequest",
    "AutoSyncStartRequest",
    "AutoSyncStopRequest",
    # Responses
    "MessageResponse",
    "HealthResponse",
    "CashMovementResponse",
    "CashMovementListResponse",
    "ExpenseResponse",
    "DebtResponse",
    "DebtPaymentResponse",
    "DebtDetailResponse",
    "PaymentOutcomeResponse",
    "RealTimeStateResponse",
    "StockValueResponse",
    "ExchangeRateResponse",
    "DailyReportResponse",
    "AutoSyncStatusResponse",
]
