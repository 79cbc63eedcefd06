"""
실시간 잔고 집계

매 호출마다 원장에서 다시 계산 (캐시 없음).
"오늘"은 테넌트 타임존 기준 현지 영업일.
"""

import logging
from typing import Any

from adapters.interfaces import IProductsGateway
from core.config.loader import LedgerConfig
from core.ledger.models import ExpenseFilter, MovementFilter, RealTimeState
from core.ledger.rates import ExchangeRateBook
from core.ledger.store import LedgerStore
from core.ledger.types import INCOME_TYPES
from core.types import Currency
from core.utils.money import ZERO, convert_from_usd, quantize_money, sum_money
from core.utils.timezone import Clock, day_bounds, local_date, now_utc

logger = logging.getLogger(__name__)


class BalanceAggregator:
    """잔고 집계기

    Args:
        store: Ledger 저장소
        config: Ledger 설정 (타임존, 기준 잔고)
        products: 상품 재고 원가 조회 (재고 평가용)
        rates: 환율표
        clock: 현재 시각 함수
    """

    def __init__(
        self,
        store: LedgerStore,
        config: LedgerConfig,
        products: IProductsGateway,
        rates: ExchangeRateBook,
        clock: Clock = now_utc,
    ):
        self.store = store
        self.config = config
        self.products = products
        self.rates = rates
        self.clock = clock

    async def real_time_state(self, client_id: int) -> RealTimeState:
        """실시간 현금 상태

        - daily_sales_usd: 오늘 venta/ingreso 이동 합계
        - daily_expenses_usd: 오늘 지출 합계
        - total_balance_usd: 기준 잔고 + 매출 - 지출
        - total_active_debts_usd: vigente 채무 잔액 합계
        - balances_by_currency: 통화별 전체 이동 부호 합계 + 통화별 기준 잔고
        """
        now = self.clock()
        start, end = day_bounds(local_date(now, self.config.timezone), self.config.timezone)

        movements = await self.store.query_movements(
            client_id, MovementFilter(start=start, end=end), project=False
        )
        daily_sales = sum_money(m.amount_usd for m in movements if m.type in INCOME_TYPES)

        expenses = await self.store.query_expenses(
            client_id, ExpenseFilter(start=start, end=end), project=False
        )
        daily_expenses = sum_money(e.amount_usd for e in expenses)

        active_debts = await self.store.sum_active_debts(client_id)

        totals = await self.store.currency_totals(client_id)
        balances = {c.value: self.config.opening_balances.get(c.value, ZERO) for c in Currency}
        for code, amount in totals.items():
            balances[code] = quantize_money(balances.get(code, ZERO) + amount)

        return RealTimeState(
            total_balance_usd=quantize_money(
                self.config.opening_balance_usd + daily_sales - daily_expenses
            ),
            daily_sales_usd=daily_sales,
            daily_expenses_usd=daily_expenses,
            total_active_debts_usd=active_debts,
            last_updated=now,
            balances_by_currency=balances,
        )

    async def stock_value(self, client_id: int) -> dict[str, Any]:
        """재고 원가 평가 (USD + 현재 ARS 환율 환산)

        ARS 환율이 없으면 ars/rate는 None.
        """
        usd = quantize_money(await self.products.get_stock_cost_usd(client_id))
        rate = await self.rates.get_rate(client_id, Currency.ARS, self.clock())

        if rate is None:
            logger.debug("ARS 환율 미등록, 재고 ARS 평가 생략", extra={"client_id": client_id})
            return {"usd": usd, "ars": None, "rate": None, "rate_effective_at": None}

        return {
            "usd": usd,
            "ars": convert_from_usd(usd, Currency.ARS, rate.rate),
            "rate": rate.rate,
            "rate_effective_at": rate.effective_at,
        }
