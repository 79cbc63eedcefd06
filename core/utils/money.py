"""
금액/환율 정규화

모든 금액은 Decimal, 소수점 2자리 ROUND_HALF_UP.
환율은 "1 USD당 해당 통화 단위" 기준, 소수점 4자리.
float는 입력 단계에서 문자열을 거쳐 변환 (이진 오차 방지).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from core.constants import Precision
from core.errors import ValidationError
from core.types import BASE_CURRENCY, Currency

ZERO = Decimal("0.00")


def _to_decimal(value: Any, field: str) -> Decimal:
    if value is None or value == "":
        raise ValidationError(f"{field} 값이 필요합니다")
    if isinstance(value, bool):
        raise ValidationError(f"{field} 값이 올바르지 않습니다: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"{field} 값이 올바르지 않습니다: {value!r}") from e
    if not result.is_finite():
        raise ValidationError(f"{field} 값이 올바르지 않습니다: {value!r}")
    return result


def quantize_money(value: Decimal) -> Decimal:
    """금액 2자리 반올림"""
    return value.quantize(Precision.MONEY, rounding=ROUND_HALF_UP)


def to_money(value: Any, field: str = "amount") -> Decimal:
    """임의 입력을 금액 Decimal로 변환

    Raises:
        ValidationError: 숫자가 아니거나 비어 있는 경우
    """
    return quantize_money(_to_decimal(value, field))


def to_positive_money(value: Any, field: str = "amount") -> Decimal:
    """0보다 큰 금액만 허용

    Raises:
        ValidationError: 0 이하 금액
    """
    amount = to_money(value, field)
    if amount <= 0:
        raise ValidationError(f"{field}은(는) 0보다 커야 합니다: {amount}")
    return amount


def to_rate(value: Any, field: str = "exchange_rate") -> Decimal:
    """환율 Decimal 변환 (양수, 4자리)"""
    rate = _to_decimal(value, field).quantize(Precision.RATE, rounding=ROUND_HALF_UP)
    if rate <= 0:
        raise ValidationError(f"{field}은(는) 0보다 커야 합니다: {rate}")
    return rate


def parse_currency(value: Any) -> Currency:
    """통화 코드 검증

    Raises:
        ValidationError: 지원하지 않는 통화
    """
    if isinstance(value, Currency):
        return value
    try:
        return Currency(str(value).upper())
    except ValueError as e:
        raise ValidationError(
            f"지원하지 않는 통화입니다: '{value}'. 유효한 값: {Currency.values()}"
        ) from e


def convert_to_usd(amount: Decimal, currency: Currency, rate: Decimal) -> Decimal:
    """원 통화 금액 → USD

    Args:
        amount: 원 통화 금액
        currency: 원 통화
        rate: 1 USD당 원 통화 단위 (USD면 무시)
    """
    if currency == BASE_CURRENCY:
        return quantize_money(amount)
    return quantize_money(amount / rate)


def convert_from_usd(amount_usd: Decimal, currency: Currency, rate: Decimal) -> Decimal:
    """USD → 대상 통화"""
    if currency == BASE_CURRENCY:
        return quantize_money(amount_usd)
    return quantize_money(amount_usd * rate)


def sum_money(values: Any) -> Decimal:
    """Decimal 합계 (빈 시퀀스는 0.00)"""
    total = ZERO
    for value in values:
        total += value
    return quantize_money(total)
