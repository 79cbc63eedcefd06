"""
현금 상태 API 라우터

GET /api/cash/realtime-state - 실시간 잔고 (매 요청 재계산)
GET /api/cash/stock-value    - 재고 원가 평가
"""

from fastapi import APIRouter, Depends, Query

from core.ledger.balance import BalanceAggregator
from web.dependencies import get_balance
from web.models.responses import RealTimeStateResponse, StockValueResponse

router = APIRouter(prefix="/api/cash", tags=["Cash"])


@router.get("/realtime-state", response_model=RealTimeStateResponse)
async def get_realtime_state(
    client_id: int = Query(..., alias="clientId"),
    balance: BalanceAggregator = Depends(get_balance),
) -> RealTimeStateResponse:
    """실시간 현금 상태

    오늘(테넌트 현지) 매출/지출, 전체 잔고, 활성 채무, 통화별 잔고.
    """
    state = await balance.real_time_state(client_id)
    return RealTimeStateResponse.model_validate(state)


@router.get("/stock-value", response_model=StockValueResponse)
async def get_stock_value(
    client_id: int = Query(..., alias="clientId"),
    balance: BalanceAggregator = Depends(get_balance),
) -> StockValueResponse:
    """재고 원가 (USD, 현재 ARS 환율 환산)"""
    value = await balance.stock_value(client_id)
    return StockValueResponse.model_validate(value)
