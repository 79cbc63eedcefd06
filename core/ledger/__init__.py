"""
현금 원장 (Multi-Currency Cash Ledger)

현금 이동/지출/고객 채무를 기록하고 실시간 잔고와 일일 리포트를 계산.

사용 예시:
```python
from core.ledger import ExchangeRateBook, LedgerStore, NewCashMovement

rates = ExchangeRateBook(db)
store = LedgerStore(db, directory, rates)

movement = await store.record_movement(
    NewCashMovement(client_id=1, type="venta", user_id=7, amount_usd=Decimal("100"))
)
```
"""

from core.ledger.balance import BalanceAggregator
from core.ledger.debts import DebtLifecycleManager
from core.ledger.models import (
    CashMovement,
    CustomerDebt,
    DailyReport,
    DebtPayment,
    ExchangeRate,
    Expense,
    ExpenseFilter,
    ExpenseUpdate,
    MovementFilter,
    NewCashMovement,
    NewDebtPayment,
    NewExpense,
    PaymentOutcome,
    RealTimeState,
)
from core.ledger.rates import ConvertedAmount, ExchangeRateBook
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from core.ledger.types import (
    INCOME_TYPES,
    INFLOW_TYPES,
    OUTFLOW_TYPES,
    DebtStatus,
    MovementType,
)

__all__ = [
    # 서비스
    "LedgerStore",
    "ExchangeRateBook",
    "BalanceAggregator",
    "DebtLifecycleManager",
    "DailyReportGenerator",
    # 모델
    "CashMovement",
    "NewCashMovement",
    "MovementFilter",
    "Expense",
    "NewExpense",
    "ExpenseUpdate",
    "ExpenseFilter",
    "CustomerDebt",
    "DebtPayment",
    "NewDebtPayment",
    "PaymentOutcome",
    "ExchangeRate",
    "ConvertedAmount",
    "DailyReport",
    "RealTimeState",
    # Enum / 상수
    "MovementType",
    "DebtStatus",
    "INFLOW_TYPES",
    "OUTFLOW_TYPES",
    "INCOME_TYPES",
]
