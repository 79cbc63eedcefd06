"""
환율 API 라우터

POST /api/exchange-rates          - 환율 등록 (추가 전용)
GET  /api/exchange-rates          - 환율 이력
GET  /api/exchange-rates/current  - 현재 적용 환율
"""

from fastapi import APIRouter, Depends, Query

from core.errors import NotFoundError
from core.ledger.rates import ExchangeRateBook
from web.dependencies import get_rates
from web.models.requests import ExchangeRateCreateRequest
from web.models.responses import ExchangeRateResponse

router = APIRouter(prefix="/api/exchange-rates", tags=["Exchange Rates"])


@router.post("", response_model=ExchangeRateResponse, status_code=201)
async def create_exchange_rate(
    request: ExchangeRateCreateRequest,
    rates: ExchangeRateBook = Depends(get_rates),
) -> ExchangeRateResponse:
    """환율 등록 (1 USD당 통화 단위)"""
    rate = await rates.set_rate(
        request.client_id,
        request.currency,
        request.rate,
        effective_at=request.effective_at,
        set_by=request.set_by,
    )
    return ExchangeRateResponse.model_validate(rate)


@router.get("", response_model=list[ExchangeRateResponse])
async def list_exchange_rates(
    client_id: int = Query(..., alias="clientId"),
    currency: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    rates: ExchangeRateBook = Depends(get_rates),
) -> list[ExchangeRateResponse]:
    """환율 이력 (최신순)"""
    result = await rates.list_rates(client_id, currency=currency, limit=limit)
    return [ExchangeRateResponse.model_validate(r) for r in result]


@router.get("/current", response_model=ExchangeRateResponse)
async def get_current_exchange_rate(
    client_id: int = Query(..., alias="clientId"),
    currency: str = Query(default="ARS"),
    rates: ExchangeRateBook = Depends(get_rates),
) -> ExchangeRateResponse:
    """현재 적용 중인 환율"""
    rate = await rates.get_rate(client_id, currency)
    if rate is None:
        raise NotFoundError(f"{currency.upper()} 환율이 등록되어 있지 않습니다")
    return ExchangeRateResponse.model_validate(rate)
