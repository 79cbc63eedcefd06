"""
지출 API 라우터

POST   /api/expenses       - 지출 기록
GET    /api/expenses       - 지출 목록
PATCH  /api/expenses/{id}  - 지출 수정
DELETE /api/expenses/{id}  - 지출 삭제
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from core.config.loader import LedgerConfig
from core.ledger.models import ExpenseFilter, ExpenseUpdate, NewExpense
from core.ledger.store import LedgerStore
from core.utils.timezone import date_range_bounds
from web.dependencies import get_ledger_config, get_store
from web.models.requests import ExpenseCreateRequest, ExpenseUpdateRequest
from web.models.responses import ExpenseResponse, MessageResponse

router = APIRouter(prefix="/api/expenses", tags=["Expenses"])


@router.post("", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    request: ExpenseCreateRequest,
    store: LedgerStore = Depends(get_store),
) -> ExpenseResponse:
    """지출 기록"""
    expense = await store.record_expense(
        NewExpense(
            client_id=request.client_id,
            category=request.category,
            user_id=request.user_id,
            amount=request.amount,
            currency=request.currency,
            amount_usd=request.amount_usd,
            exchange_rate=request.exchange_rate,
            description=request.description,
            payment_method=request.payment_method,
            expense_date=request.expense_date,
        )
    )
    return ExpenseResponse.model_validate(expense)


@router.get("", response_model=list[ExpenseResponse])
async def list_expenses(
    client_id: int = Query(..., alias="clientId"),
    category: str | None = Query(default=None),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    store: LedgerStore = Depends(get_store),
    ledger_config: LedgerConfig = Depends(get_ledger_config),
) -> list[ExpenseResponse]:
    """지출 목록 조회 (expense_date 최신순)"""
    start, end = date_range_bounds(start_date, end_date, ledger_config.timezone)
    expenses = await store.query_expenses(
        client_id, ExpenseFilter(category=category, start=start, end=end)
    )
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    request: ExpenseUpdateRequest,
    client_id: int = Query(..., alias="clientId"),
    store: LedgerStore = Depends(get_store),
) -> ExpenseResponse:
    """지출 수정 (금액/통화가 바뀌면 USD 재계산)"""
    expense = await store.update_expense(
        client_id,
        expense_id,
        ExpenseUpdate(
            category=request.category,
            description=request.description,
            amount=request.amount,
            currency=request.currency,
            amount_usd=request.amount_usd,
            exchange_rate=request.exchange_rate,
            payment_method=request.payment_method,
            expense_date=request.expense_date,
        ),
    )
    return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}", response_model=MessageResponse)
async def delete_expense(
    expense_id: int,
    client_id: int = Query(..., alias="clientId"),
    store: LedgerStore = Depends(get_store),
) -> MessageResponse:
    """지출 삭제"""
    await store.delete_expense(client_id, expense_id)
    return MessageResponse(message=f"지출 #{expense_id} 삭제 완료")
