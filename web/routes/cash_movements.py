"""
현금 이동 API 라우터

POST /api/cash-movements               - 이동 기록 (sourceRef 중복 시 기존 이동 반환)
GET  /api/cash-movements               - 이동 목록 (최신순)
POST /api/cash-movements/{id}/reverse  - 역분개
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from core.config.loader import LedgerConfig
from core.constants import Defaults
from core.ledger.models import MovementFilter, NewCashMovement
from core.ledger.store import LedgerStore
from core.ledger.types import MovementType
from core.utils.timezone import date_range_bounds
from web.dependencies import get_ledger_config, get_store
from web.models.requests import CashMovementCreateRequest, ReverseMovementRequest
from web.models.responses import CashMovementListResponse, CashMovementResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cash-movements", tags=["Cash Movements"])


@router.post("", response_model=CashMovementResponse, status_code=201)
async def create_cash_movement(
    request: CashMovementCreateRequest,
    store: LedgerStore = Depends(get_store),
) -> CashMovementResponse:
    """현금 이동 기록

    같은 테넌트에 sourceRef가 이미 있으면 새로 쓰지 않고 기존 이동 반환.
    """
    movement = await store.record_movement(
        NewCashMovement(
            client_id=request.client_id,
            type=request.type,
            user_id=request.user_id,
            amount=request.amount,
            currency=request.currency,
            amount_usd=request.amount_usd,
            exchange_rate=request.exchange_rate,
            customer_id=request.customer_id,
            description=request.description,
            payment_method=request.payment_method,
            source_ref=request.source_ref,
        )
    )
    return CashMovementResponse.model_validate(movement)


@router.get("", response_model=CashMovementListResponse)
async def list_cash_movements(
    client_id: int = Query(..., alias="clientId", description="테넌트 ID"),
    movement_type: MovementType | None = Query(default=None, alias="type", description="이동 유형"),
    start_date: date | None = Query(default=None, alias="startDate", description="시작 날짜 (현지, 포함)"),
    end_date: date | None = Query(default=None, alias="endDate", description="끝 날짜 (현지, 포함)"),
    limit: int = Query(default=Defaults.QUERY_LIMIT, ge=1, le=Defaults.MAX_QUERY_LIMIT),
    offset: int = Query(default=0, ge=0),
    store: LedgerStore = Depends(get_store),
    ledger_config: LedgerConfig = Depends(get_ledger_config),
) -> CashMovementListResponse:
    """현금 이동 목록 조회 (사용자/고객 이름 포함)"""
    start, end = date_range_bounds(start_date, end_date, ledger_config.timezone)
    movements = await store.query_movements(
        client_id,
        MovementFilter(type=movement_type, start=start, end=end, limit=limit, offset=offset),
    )
    return CashMovementListResponse(
        movements=[CashMovementResponse.model_validate(m) for m in movements],
        limit=limit,
        offset=offset,
    )


@router.post("/{movement_id}/reverse", response_model=CashMovementResponse, status_code=201)
async def reverse_cash_movement(
    movement_id: int,
    request: ReverseMovementRequest,
    store: LedgerStore = Depends(get_store),
) -> CashMovementResponse:
    """역분개 (같은 유형, 반대 부호 이동 추가)"""
    reversal = await store.reverse_movement(
        request.client_id,
        movement_id,
        user_id=request.user_id,
        reason=request.reason,
    )
    return CashMovementResponse.model_validate(reversal)
