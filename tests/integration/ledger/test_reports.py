"""DailyReportGenerator 통합 테스트"""

from datetime import date
from decimal import Decimal

import pytest

from core.errors import NotFoundError, ValidationError
from core.ledger.debts import DebtLifecycleManager
from core.ledger.models import NewCashMovement, NewDebtPayment, NewExpense
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from core.ledger.types import MovementType
from tests.support import CLIENT_ID, CUSTOMER_ID, OTHER_CLIENT_ID, USER_ID, utc

MAY_1 = date(2024, 5, 1)


async def _sale(store: LedgerStore, amount: str, at, **kwargs):
    return await store.record_movement(
        NewCashMovement(
            client_id=CLIENT_ID,
            type=kwargs.pop("type", MovementType.VENTA),
            user_id=USER_ID,
            amount=Decimal(amount),
            created_at=at,
            **kwargs,
        )
    )


async def _expense(store: LedgerStore, amount: str, at, category: str = "alquiler"):
    return await store.record_expense(
        NewExpense(
            client_id=CLIENT_ID,
            category=category,
            user_id=USER_ID,
            amount=Decimal(amount),
            expense_date=at,
        )
    )


class TestGenerate:
    """리포트 생성 테스트"""

    @pytest.mark.asyncio
    async def test_daily_close(self, store: LedgerStore, reports: DailyReportGenerator) -> None:
        """수입 300, 지출 50 → 순이익 250"""
        await _sale(store, "100", utc(2024, 5, 1, 13))
        await _sale(store, "200", utc(2024, 5, 1, 20))
        await _expense(store, "50", utc(2024, 5, 1, 14))

        report = await reports.generate(CLIENT_ID, MAY_1)

        assert report.report_date == MAY_1
        assert report.total_income == Decimal("300.00")
        assert report.total_expenses == Decimal("50.00")
        assert report.net_profit == Decimal("250.00")
        assert report.opening_balance == Decimal("0.00")
        assert report.closing_balance == Decimal("250.00")
        assert report.total_movements == 2
        assert report.is_auto_generated is False
        assert len(report.report_data["movements"]) == 2
        assert len(report.report_data["expenses"]) == 1

    @pytest.mark.asyncio
    async def test_payment_method_breakdown(
        self,
        store: LedgerStore,
        reports: DailyReportGenerator,
    ) -> None:
        """수입은 결제 수단별로 집계, 수단 없는 이동은 sin_especificar"""
        await _sale(store, "100", utc(2024, 5, 1, 13), payment_method="efectivo_dolar")
        await _sale(store, "20", utc(2024, 5, 1, 14), payment_method="efectivo_dolar")
        await _sale(
            store,
            "50000",
            utc(2024, 5, 1, 15),
            currency="ARS",
            exchange_rate=Decimal("1000"),
            payment_method="efectivo_ars",
        )
        await _sale(store, "7", utc(2024, 5, 1, 16), type=MovementType.INGRESO)
        await _sale(
            store, "30", utc(2024, 5, 1, 17), type=MovementType.RETIRO, payment_method="efectivo_dolar"
        )

        report = await reports.generate(CLIENT_ID, MAY_1)

        assert report.report_data["payment_methods"] == {
            "efectivo_ars": {"count": 1, "amount_usd": "50.00"},
            "efectivo_dolar": {"count": 2, "amount_usd": "120.00"},
            "sin_especificar": {"count": 1, "amount_usd": "7.00"},
        }

    @pytest.mark.asyncio
    async def test_regenerate_overwrites_same_row(
        self,
        store: LedgerStore,
        reports: DailyReportGenerator,
    ) -> None:
        """재생성 시 (client, date) 한 행, 같은 id"""
        await _sale(store, "300", utc(2024, 5, 1, 13))
        await _expense(store, "50", utc(2024, 5, 1, 14))
        first = await reports.generate(CLIENT_ID, MAY_1)

        await _expense(store, "10", utc(2024, 5, 1, 18))
        second = await reports.generate(CLIENT_ID, MAY_1)

        assert second.id == first.id
        assert second.total_expenses == Decimal("60.00")
        assert second.net_profit == Decimal("240.00")
        assert len(await reports.list_reports(CLIENT_ID)) == 1

    @pytest.mark.asyncio
    async def test_local_day_boundaries(
        self,
        store: LedgerStore,
        reports: DailyReportGenerator,
    ) -> None:
        """현지(UTC-3) 하루: 5/1 03:00 UTC ~ 5/2 03:00 UTC"""
        await _sale(store, "1", utc(2024, 5, 1, 2, 59))  # 4/30 현지
        await _sale(store, "2", utc(2024, 5, 1, 3, 0))  # 5/1 00:00 현지
        await _sale(store, "4", utc(2024, 5, 2, 2, 59))  # 5/1 23:59 현지
        await _sale(store, "8", utc(2024, 5, 2, 3, 0))  # 5/2 현지

        report = await reports.generate(CLIENT_ID, MAY_1)

        assert report.total_income == Decimal("6.00")

    @pytest.mark.asyncio
    async def test_only_income_types_counted(
        self,
        store: LedgerStore,
        reports: DailyReportGenerator,
        debts: DebtLifecycleManager,
        clock,
    ) -> None:
        """pago_deuda/retiro는 수입이 아님, 채무 결제는 별도 합계"""
        clock.set(utc(2024, 5, 1, 12))
        await _sale(store, "100", utc(2024, 5, 1, 13))
        await _sale(store, "40", utc(2024, 5, 1, 13), type=MovementType.INGRESO)
        await _sale(store, "30", utc(2024, 5, 1, 14), type=MovementType.RETIRO)
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("80"))
        await debts.apply_payment(
            NewDebtPayment(
                client_id=CLIENT_ID,
                debt_id=debt.id,
                user_id=USER_ID,
                amount=Decimal("20"),
                payment_date=utc(2024, 5, 1, 15),
            )
        )

        report = await reports.generate(CLIENT_ID, MAY_1)

        assert report.total_income == Decimal("140.00")
        assert report.total_debt_payments == Decimal("20.00")
        assert report.total_active_debts == Decimal("60.00")
        assert report.total_movements == 4

    @pytest.mark.asyncio
    async def test_opening_balance_chain(
        self,
        store: LedgerStore,
        reports: DailyReportGenerator,
    ) -> None:
        """시작 잔고 = 직전 리포트의 마감 잔고"""
        await _sale(store, "100", utc(2024, 5, 1, 13))
        await _sale(store, "50", utc(2024, 5, 3, 13))
        await _expense(store, "20", utc(2024, 5, 3, 14))

        await reports.generate(CLIENT_ID, MAY_1)
        may_3 = await reports.generate(CLIENT_ID, date(2024, 5, 3))

        assert may_3.opening_balance == Decimal("100.00")
        assert may_3.closing_balance == Decimal("130.00")

    @pytest.mark.asyncio
    async def test_exchange_rate_used(self, reports: DailyReportGenerator, rates) -> None:
        await rates.set_rate(CLIENT_ID, "ARS", "950", effective_at=utc(2024, 4, 20))
        await rates.set_rate(CLIENT_ID, "ARS", "1000", effective_at=utc(2024, 5, 5))

        report = await reports.generate(CLIENT_ID, MAY_1)

        assert report.exchange_rate_used == Decimal("950.0000")

    @pytest.mark.asyncio
    async def test_future_date(self, reports: DailyReportGenerator) -> None:
        with pytest.raises(ValidationError, match="미래"):
            await reports.generate(CLIENT_ID, date(2024, 5, 11))

    @pytest.mark.asyncio
    async def test_today_allowed(self, reports: DailyReportGenerator) -> None:
        assert reports.today() == date(2024, 5, 10)

        report = await reports.generate(CLIENT_ID, reports.today())

        assert report.net_profit == Decimal("0.00")


class TestQuery:
    """리포트 조회 테스트"""

    @pytest.mark.asyncio
    async def test_not_found(self, reports: DailyReportGenerator) -> None:
        with pytest.raises(NotFoundError):
            await reports.get_report(CLIENT_ID, MAY_1)

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, reports: DailyReportGenerator) -> None:
        await reports.generate(CLIENT_ID, MAY_1)

        with pytest.raises(NotFoundError):
            await reports.get_report(OTHER_CLIENT_ID, MAY_1)

    @pytest.mark.asyncio
    async def test_list_range_newest_first(self, reports: DailyReportGenerator) -> None:
        for day in (1, 2, 3, 4):
            await reports.generate(CLIENT_ID, date(2024, 5, day))

        listed = await reports.list_reports(CLIENT_ID, date(2024, 5, 2), date(2024, 5, 3))

        assert [r.report_date for r in listed] == [date(2024, 5, 3), date(2024, 5, 2)]


class TestBackfill:
    """누락 리포트 백필 테스트"""

    @pytest.mark.asyncio
    async def test_backfill_until_yesterday(self, reports: DailyReportGenerator) -> None:
        existing = await reports.generate(CLIENT_ID, date(2024, 5, 7))

        generated = await reports.backfill_missing(CLIENT_ID, date(2024, 5, 6))

        assert [r.report_date for r in generated] == [date(2024, 5, 6), date(2024, 5, 8), date(2024, 5, 9)]
        assert all(r.is_auto_generated for r in generated)
        # 기존 리포트는 그대로
        assert (await reports.get_report(CLIENT_ID, date(2024, 5, 7))).generated_at == existing.generated_at

    @pytest.mark.asyncio
    async def test_backfill_empty_range(self, reports: DailyReportGenerator) -> None:
        assert await reports.backfill_missing(CLIENT_ID, date(2024, 5, 10)) == []
