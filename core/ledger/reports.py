"""
일일 리포트 (일일 마감)

테넌트 현지 하루 [start, end) 구간의 수입/지출/채무 결제를 스냅샷으로 저장.
(client_id, report_date)당 한 행. 재생성하면 같은 id로 덮어씀.

시작 잔고는 직전 리포트의 마감 잔고, 없으면 설정의 initial_balance_usd.
"""

import json
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import LedgerConfig
from core.errors import NotFoundError, ValidationError
from core.ledger.models import CashMovement, DailyReport, ExpenseFilter, MovementFilter
from core.ledger.rates import ExchangeRateBook
from core.ledger.store import LedgerStore
from core.ledger.types import INCOME_TYPES
from core.types import Currency
from core.utils.money import quantize_money, sum_money
from core.utils.timezone import Clock, day_bounds, local_date, now_utc, to_db_ts

logger = logging.getLogger(__name__)

UNSPECIFIED_PAYMENT_METHOD = "sin_especificar"


def payment_method_breakdown(movements: Iterable[CashMovement]) -> dict[str, dict[str, Any]]:
    """수입 이동의 결제 수단별 집계

    Returns:
        {결제 수단: {"count", "amount_usd"}} (결제 수단 없으면 sin_especificar)
    """
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for movement in movements:
        if movement.type not in INCOME_TYPES:
            continue
        method = movement.payment_method or UNSPECIFIED_PAYMENT_METHOD
        totals[method] = totals.get(method, Decimal("0")) + movement.amount_usd
        counts[method] = counts.get(method, 0) + 1

    return {
        method: {"count": counts[method], "amount_usd": str(quantize_money(total))}
        for method, total in sorted(totals.items())
    }


class DailyReportGenerator:
    """일일 리포트 생성기

    Args:
        db: SQLite 어댑터
        store: Ledger 저장소
        rates: 환율표 (exchange_rate_used 기록)
        config: Ledger 설정 (타임존, 시작 잔고)
        clock: 현재 시각 함수
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        store: LedgerStore,
        rates: ExchangeRateBook,
        config: LedgerConfig,
        clock: Clock = now_utc,
    ):
        self.db = db
        self.store = store
        self.rates = rates
        self.config = config
        self.clock = clock

    def today(self) -> date:
        """테넌트 현지 오늘 날짜"""
        return local_date(self.clock(), self.config.timezone)

    async def generate(
        self,
        client_id: int,
        report_date: date,
        auto: bool = False,
    ) -> DailyReport:
        """리포트 생성 (이미 있으면 같은 id로 재계산)

        Args:
            client_id: 테넌트 ID
            report_date: 현지 날짜
            auto: 자동 마감 여부

        Raises:
            ValidationError: 미래 날짜
        """
        if report_date > self.today():
            raise ValidationError(f"미래 날짜의 리포트는 생성할 수 없습니다: {report_date}")

        start, end = day_bounds(report_date, self.config.timezone)

        movements = await self.store.query_movements(
            client_id, MovementFilter(start=start, end=end)
        )
        expenses = await self.store.query_expenses(
            client_id, ExpenseFilter(start=start, end=end)
        )
        payments = await self.store.query_debt_payments(client_id, start=start, end=end)

        total_income = sum_money(m.amount_usd for m in movements if m.type in INCOME_TYPES)
        total_expenses = sum_money(e.amount_usd for e in expenses)
        total_debt_payments = sum_money(p.amount_usd for p in payments)
        net_profit = quantize_money(total_income - total_expenses)

        opening_balance = await self._opening_balance(client_id, report_date)
        closing_balance = quantize_money(opening_balance + net_profit)
        total_active_debts = await self.store.sum_active_debts(client_id)

        ars_rate = await self.rates.get_rate(
            client_id, Currency.ARS, end - timedelta(microseconds=1)
        )
        exchange_rate_used = ars_rate.rate if ars_rate else None

        report_data = {
            "movements": [m.to_dict() for m in movements],
            "expenses": [e.to_dict() for e in expenses],
            "debt_payments": [p.to_dict() for p in payments],
            "payment_methods": payment_method_breakdown(movements),
        }

        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO daily_reports (
                    client_id, report_date, opening_balance, total_income, total_expenses,
                    total_debt_payments, total_active_debts, net_profit, closing_balance,
                    total_movements, exchange_rate_used, report_data, is_auto_generated,
                    generated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(client_id, report_date) DO UPDATE SET
                    opening_balance = excluded.opening_balance,
                    total_income = excluded.total_income,
                    total_expenses = excluded.total_expenses,
                    total_debt_payments = excluded.total_debt_payments,
                    total_active_debts = excluded.total_active_debts,
                    net_profit = excluded.net_profit,
                    closing_balance = excluded.closing_balance,
                    total_movements = excluded.total_movements,
                    exchange_rate_used = excluded.exchange_rate_used,
                    report_data = excluded.report_data,
                    is_auto_generated = excluded.is_auto_generated,
                    generated_at = excluded.generated_at
                """,
                (
                    client_id,
                    report_date.isoformat(),
                    str(opening_balance),
                    str(total_income),
                    str(total_expenses),
                    str(total_debt_payments),
                    str(total_active_debts),
                    str(net_profit),
                    str(closing_balance),
                    len(movements),
                    str(exchange_rate_used) if exchange_rate_used is not None else None,
                    json.dumps(report_data, ensure_ascii=False),
                    1 if auto else 0,
                    to_db_ts(self.clock()),
                ),
            )

        logger.info(
            f"일일 리포트 생성: {report_date} 순이익 {net_profit} USD",
            extra={
                "client_id": client_id,
                "auto": auto,
                "movements": len(movements),
                "closing_balance": str(closing_balance),
            },
        )
        return await self.get_report(client_id, report_date)

    async def _opening_balance(self, client_id: int, report_date: date) -> Decimal:
        row = await self.db.fetchone(
            """
            SELECT closing_balance FROM daily_reports
            WHERE client_id = ? AND report_date < ?
            ORDER BY report_date DESC
            LIMIT 1
            """,
            (client_id, report_date.isoformat()),
        )
        if row is None:
            return self.config.initial_balance_usd
        return Decimal(row[0])

    async def get_report(self, client_id: int, report_date: date) -> DailyReport:
        """리포트 조회

        Raises:
            NotFoundError: 해당 날짜 리포트 없음
        """
        row = await self.db.fetchone(
            "SELECT * FROM daily_reports WHERE client_id = ? AND report_date = ?",
            (client_id, report_date.isoformat()),
        )
        if row is None:
            raise NotFoundError(f"일일 리포트가 없습니다: {report_date}")
        return DailyReport.from_row(row)

    async def list_reports(
        self,
        client_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[DailyReport]:
        """리포트 목록 (report_date 최신순, 양 끝 포함)"""
        sql = "SELECT * FROM daily_reports WHERE client_id = ?"
        params: list[Any] = [client_id]
        if start is not None:
            sql += " AND report_date >= ?"
            params.append(start.isoformat())
        if end is not None:
            sql += " AND report_date <= ?"
            params.append(end.isoformat())
        sql += " ORDER BY report_date DESC"

        rows = await self.db.fetchall(sql, tuple(params))
        return [DailyReport.from_row(row) for row in rows]

    async def backfill_missing(
        self,
        client_id: int,
        since: date,
        until: date | None = None,
    ) -> list[DailyReport]:
        """리포트가 없는 날짜를 오래된 순으로 자동 생성

        기존 리포트는 건드리지 않음.

        Args:
            client_id: 테넌트 ID
            since: 시작 날짜 (포함)
            until: 끝 날짜 (포함, 기본 어제)
        """
        if until is None:
            until = self.today() - timedelta(days=1)
        if since > until:
            return []

        existing = {r.report_date for r in await self.list_reports(client_id, since, until)}

        generated: list[DailyReport] = []
        day = since
        while day <= until:
            if day not in existing:
                generated.append(await self.generate(client_id, day, auto=True))
            day += timedelta(days=1)

        if generated:
            logger.info(
                f"일일 리포트 백필: {len(generated)}일",
                extra={"client_id": client_id, "since": since.isoformat(), "until": until.isoformat()},
            )
        return generated
