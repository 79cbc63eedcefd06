"""
고객 채무 API 라우터

POST /api/customer-debts              - 채무 생성
GET  /api/customer-debts              - 채무 목록
GET  /api/customer-debts/{id}         - 채무 상세 (결제 이력 포함)
POST /api/customer-debts/{id}/cancel  - 채무 취소
POST /api/debt-payments               - 채무 결제
GET  /api/debt-payments               - 결제 목록
"""

import logging

from fastapi import APIRouter, Depends, Query

from core.ledger.debts import DebtLifecycleManager
from core.ledger.models import NewDebtPayment
from core.ledger.store import LedgerStore
from core.ledger.types import DebtStatus
from web.dependencies import get_debts, get_store
from web.models.requests import DebtCancelRequest, DebtCreateRequest, DebtPaymentCreateRequest
from web.models.responses import (
    DebtDetailResponse,
    DebtPaymentResponse,
    DebtResponse,
    PaymentOutcomeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer-debts", tags=["Customer Debts"])
payments_router = APIRouter(prefix="/api/debt-payments", tags=["Customer Debts"])


@router.post("", response_model=DebtResponse, status_code=201)
async def create_debt(
    request: DebtCreateRequest,
    debts: DebtLifecycleManager = Depends(get_debts),
) -> DebtResponse:
    """채무 생성"""
    debt = await debts.create_debt(
        client_id=request.client_id,
        customer_id=request.customer_id,
        amount=request.amount,
        currency=request.currency,
        exchange_rate=request.exchange_rate,
        order_id=request.order_id,
        notes=request.notes,
    )
    return DebtResponse.model_validate(debt)


@router.get("", response_model=list[DebtResponse])
async def list_debts(
    client_id: int = Query(..., alias="clientId"),
    status: DebtStatus | None = Query(default=None),
    customer_id: int | None = Query(default=None, alias="customerId"),
    debts: DebtLifecycleManager = Depends(get_debts),
) -> list[DebtResponse]:
    """채무 목록 조회 (최신순)"""
    result = await debts.list_debts(client_id, status=status, customer_id=customer_id)
    return [DebtResponse.model_validate(d) for d in result]


@router.get("/{debt_id}", response_model=DebtDetailResponse)
async def get_debt(
    debt_id: int,
    client_id: int = Query(..., alias="clientId"),
    debts: DebtLifecycleManager = Depends(get_debts),
) -> DebtDetailResponse:
    """채무 상세 조회"""
    debt, payments = await debts.get_debt_detail(client_id, debt_id)
    return DebtDetailResponse(
        debt=DebtResponse.model_validate(debt),
        payments=[DebtPaymentResponse.model_validate(p) for p in payments],
    )


@router.post("/{debt_id}/cancel", response_model=DebtResponse)
async def cancel_debt(
    debt_id: int,
    request: DebtCancelRequest,
    debts: DebtLifecycleManager = Depends(get_debts),
) -> DebtResponse:
    """채무 취소 (vigente만 가능)"""
    debt = await debts.cancel_debt(request.client_id, debt_id, reason=request.reason)
    return DebtResponse.model_validate(debt)


# =========================================================================
# 채무 결제
# =========================================================================


@payments_router.post("", response_model=PaymentOutcomeResponse, status_code=201)
async def create_debt_payment(
    request: DebtPaymentCreateRequest,
    debts: DebtLifecycleManager = Depends(get_debts),
) -> PaymentOutcomeResponse:
    """채무 결제

    잔액을 넘는 결제는 그대로 기록되고 excessUsd로 초과분을 알림.
    """
    outcome = await debts.apply_payment(
        NewDebtPayment(
            client_id=request.client_id,
            debt_id=request.debt_id,
            user_id=request.user_id,
            amount=request.amount,
            currency=request.currency,
            amount_usd=request.amount_usd,
            exchange_rate=request.exchange_rate,
            payment_method=request.payment_method,
            notes=request.notes,
            payment_date=request.payment_date,
        )
    )
    return PaymentOutcomeResponse.model_validate(outcome)


@payments_router.get("", response_model=list[DebtPaymentResponse])
async def list_debt_payments(
    client_id: int = Query(..., alias="clientId"),
    debt_id: int | None = Query(default=None, alias="debtId"),
    store: LedgerStore = Depends(get_store),
) -> list[DebtPaymentResponse]:
    """채무 결제 목록 (payment_date 최신순)"""
    payments = await store.query_debt_payments(client_id, debt_id=debt_id)
    return [DebtPaymentResponse.model_validate(p) for p in payments]
