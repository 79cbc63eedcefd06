"""
환율표

관리자가 입력한 환율을 시각과 함께 보관 (추가 전용).
시각 T의 환율 = effective_at ≤ T 인 가장 최근 행.
모든 환산은 사용한 환율을 함께 반환하여 기록에 남김.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import ValidationError
from core.ledger.models import ExchangeRate
from core.types import BASE_CURRENCY, Currency
from core.utils.money import (
    convert_from_usd,
    convert_to_usd,
    parse_currency,
    to_positive_money,
    to_rate,
)
from core.utils.timezone import Clock, now_utc, to_db_ts

logger = logging.getLogger(__name__)

USD_RATE = Decimal("1.0000")


@dataclass(frozen=True)
class ConvertedAmount:
    """환산 결과 (원 통화 금액 + 사용 환율 + USD 금액)"""

    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    amount_usd: Decimal


class ExchangeRateBook:
    """환율표

    Args:
        db: SQLiteAdapter 인스턴스
        clock: 현재 시각 함수 (테스트에서 고정)
    """

    def __init__(self, db: SQLiteAdapter, clock: Clock = now_utc):
        self.db = db
        self.clock = clock

    async def set_rate(
        self,
        client_id: int,
        currency: Currency | str,
        rate: Any,
        effective_at: datetime | None = None,
        set_by: str | None = None,
    ) -> ExchangeRate:
        """환율 등록

        Raises:
            ValidationError: USD 환율 등록, 0 이하 환율
        """
        cur = parse_currency(currency)
        if cur == BASE_CURRENCY:
            raise ValidationError("USD는 기준 통화이므로 환율을 등록할 수 없습니다")

        value = to_rate(rate, "rate")
        now = self.clock()
        effective = effective_at or now

        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                INSERT INTO exchange_rates (client_id, currency, rate, effective_at, set_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (client_id, cur.value, str(value), to_db_ts(effective), set_by, to_db_ts(now)),
            )
            rate_id = cursor.lastrowid

        logger.info(
            f"환율 등록: {cur.value} = {value}",
            extra={"client_id": client_id, "effective_at": effective.isoformat()},
        )

        row = await self.db.fetchone("SELECT * FROM exchange_rates WHERE id = ?", (rate_id,))
        return ExchangeRate.from_row(row)

    async def get_rate(
        self,
        client_id: int,
        currency: Currency | str,
        at: datetime | None = None,
    ) -> ExchangeRate | None:
        """시각 at에 유효한 환율 (없으면 None)"""
        cur = parse_currency(currency)
        moment = at or self.clock()

        row = await self.db.fetchone(
            """
            SELECT * FROM exchange_rates
            WHERE client_id = ? AND currency = ? AND effective_at <= ?
            ORDER BY effective_at DESC, id DESC
            LIMIT 1
            """,
            (client_id, cur.value, to_db_ts(moment)),
        )
        return ExchangeRate.from_row(row) if row else None

    async def require_rate(
        self,
        client_id: int,
        currency: Currency | str,
        at: datetime | None = None,
    ) -> Decimal:
        """환산에 쓸 환율 (USD는 1)

        Raises:
            ValidationError: 등록된 환율이 없음
        """
        cur = parse_currency(currency)
        if cur == BASE_CURRENCY:
            return USD_RATE

        found = await self.get_rate(client_id, cur, at)
        if found is None:
            raise ValidationError(
                f"{cur.value} 환율이 등록되어 있지 않습니다. exchange_rate를 지정하거나 환율을 먼저 등록하세요"
            )
        return found.rate

    async def list_rates(
        self,
        client_id: int,
        currency: Currency | str | None = None,
        limit: int = 50,
    ) -> list[ExchangeRate]:
        """환율 이력 (최신순)"""
        sql = "SELECT * FROM exchange_rates WHERE client_id = ?"
        params: list[Any] = [client_id]
        if currency is not None:
            sql += " AND currency = ?"
            params.append(parse_currency(currency).value)
        sql += " ORDER BY effective_at DESC, id DESC LIMIT ?"
        params.append(limit)

        rows = await self.db.fetchall(sql, tuple(params))
        return [ExchangeRate.from_row(row) for row in rows]

    async def convert(
        self,
        client_id: int,
        currency: Currency | str,
        amount: Any = None,
        amount_usd: Any = None,
        exchange_rate: Any = None,
        at: datetime | None = None,
    ) -> ConvertedAmount:
        """원 통화 금액/USD 금액 중 주어진 쪽으로 나머지를 계산

        - amount만: USD = amount / rate
        - amount_usd만: amount = amount_usd * rate
        - 둘 다: 그대로 사용 (rate 미지정 시 amount / amount_usd)
        - USD는 두 금액이 같아야 함

        Raises:
            ValidationError: 금액 누락/0 이하, 환율 없음, USD 금액 불일치
        """
        cur = parse_currency(currency)

        if amount is None and amount_usd is None:
            raise ValidationError("amount 또는 amountUsd 중 하나는 필요합니다")

        original = to_positive_money(amount, "amount") if amount is not None else None
        usd = to_positive_money(amount_usd, "amount_usd") if amount_usd is not None else None

        if cur == BASE_CURRENCY:
            if original is not None and usd is not None and original != usd:
                raise ValidationError(
                    f"USD 금액 불일치: amount {original} != amountUsd {usd}"
                )
            value = original if original is not None else usd
            return ConvertedAmount(value, cur, USD_RATE, value)

        if original is not None and usd is not None:
            rate = (
                to_rate(exchange_rate)
                if exchange_rate is not None
                else to_rate(original / usd)
            )
            return ConvertedAmount(original, cur, rate, usd)

        if exchange_rate is not None:
            rate = to_rate(exchange_rate)
        else:
            rate = await self.require_rate(client_id, cur, at)

        if original is not None:
            return ConvertedAmount(original, cur, rate, convert_to_usd(original, cur, rate))
        return ConvertedAmount(convert_from_usd(usd, cur, rate), cur, rate, usd)
