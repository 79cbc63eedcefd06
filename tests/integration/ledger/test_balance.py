"""BalanceAggregator 통합 테스트"""

from datetime import timedelta
from decimal import Decimal

import pytest

from core.config.loader import LedgerConfig
from core.ledger.balance import BalanceAggregator
from core.ledger.debts import DebtLifecycleManager
from core.ledger.models import NewCashMovement, NewExpense
from core.ledger.store import LedgerStore
from core.ledger.types import MovementType
from tests.support import CLIENT_ID, CUSTOMER_ID, NOW, OTHER_CLIENT_ID, TZ, USER_ID, utc


async def _move(store: LedgerStore, type_: MovementType, amount: str, at, currency: str = "USD", **kwargs):
    return await store.record_movement(
        NewCashMovement(
            client_id=CLIENT_ID,
            type=type_,
            user_id=USER_ID,
            amount=Decimal(amount),
            currency=currency,
            created_at=at,
            **kwargs,
        )
    )


class TestRealTimeState:
    """실시간 상태 테스트"""

    @pytest.mark.asyncio
    async def test_empty(self, balance: BalanceAggregator) -> None:
        state = await balance.real_time_state(CLIENT_ID)

        assert state.total_balance_usd == Decimal("0.00")
        assert state.daily_sales_usd == Decimal("0.00")
        assert state.daily_expenses_usd == Decimal("0.00")
        assert state.total_active_debts_usd == Decimal("0.00")
        assert state.last_updated == NOW
        assert set(state.balances_by_currency) == {"USD", "ARS", "USDT"}

    @pytest.mark.asyncio
    async def test_today_only(
        self,
        store: LedgerStore,
        balance: BalanceAggregator,
        debts: DebtLifecycleManager,
    ) -> None:
        """오늘(현지) 매출/지출만 집계, 채무는 전체 vigente"""
        await _move(store, MovementType.VENTA, "100", NOW - timedelta(hours=2))
        await _move(store, MovementType.INGRESO, "20", NOW - timedelta(hours=1))
        await _move(store, MovementType.VENTA, "999", NOW - timedelta(days=1))
        await store.record_expense(
            NewExpense(client_id=CLIENT_ID, category="luz", user_id=USER_ID, amount=Decimal("30"))
        )
        await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("75"))

        state = await balance.real_time_state(CLIENT_ID)

        assert state.daily_sales_usd == Decimal("120.00")
        assert state.daily_expenses_usd == Decimal("30.00")
        assert state.total_balance_usd == Decimal("90.00")
        assert state.total_active_debts_usd == Decimal("75.00")

    @pytest.mark.asyncio
    async def test_recomputed_each_call(self, store: LedgerStore, balance: BalanceAggregator) -> None:
        before = await balance.real_time_state(CLIENT_ID)
        await _move(store, MovementType.VENTA, "10", NOW)
        after = await balance.real_time_state(CLIENT_ID)

        assert before.daily_sales_usd == Decimal("0.00")
        assert after.daily_sales_usd == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_balances_by_currency(
        self,
        store: LedgerStore,
        products,
        rates,
        clock,
    ) -> None:
        """통화별 부호 합계 + 기준 잔고"""
        config = LedgerConfig(timezone=TZ, opening_balances={"ARS": Decimal("5000")})
        aggregator = BalanceAggregator(store, config, products, rates, clock=clock)

        await _move(store, MovementType.VENTA, "12000", NOW, currency="ARS", exchange_rate=Decimal("1200"))
        await _move(store, MovementType.RETIRO, "2000", NOW, currency="ARS", exchange_rate=Decimal("1000"))
        await _move(store, MovementType.VENTA, "15", utc(2024, 5, 1, 12))

        state = await aggregator.real_time_state(CLIENT_ID)

        assert state.balances_by_currency["ARS"] == Decimal("15000.00")
        assert state.balances_by_currency["USD"] == Decimal("15.00")

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, store: LedgerStore, balance: BalanceAggregator) -> None:
        await _move(store, MovementType.VENTA, "100", NOW)

        state = await balance.real_time_state(OTHER_CLIENT_ID)

        assert state.daily_sales_usd == Decimal("0.00")


class TestStockValue:
    """재고 평가 테스트"""

    @pytest.mark.asyncio
    async def test_without_rate(self, balance: BalanceAggregator, products) -> None:
        products.set_stock_cost(CLIENT_ID, Decimal("250.5"))

        value = await balance.stock_value(CLIENT_ID)

        assert value == {"usd": Decimal("250.50"), "ars": None, "rate": None, "rate_effective_at": None}

    @pytest.mark.asyncio
    async def test_with_rate(self, balance: BalanceAggregator, products, rates) -> None:
        products.set_stock_cost(CLIENT_ID, Decimal("100"))
        await rates.set_rate(CLIENT_ID, "ARS", "1200")

        value = await balance.stock_value(CLIENT_ID)

        assert value["usd"] == Decimal("100.00")
        assert value["ars"] == Decimal("120000.00")
        assert value["rate"] == Decimal("1200")
        assert value["rate_effective_at"] == NOW
