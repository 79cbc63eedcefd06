"""
어댑터 공통 데이터 모델

외부 시스템(주문/결제, 사용자, 고객, 상품) 조회 결과를 표준화한 도메인 모델.
모든 금액은 Decimal 타입 사용.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from core.types import Currency


@dataclass(frozen=True)
class OrderPayment:
    """주문에 기록된 결제 한 건

    Attributes:
        payment_method: 결제 수단 (예: efectivo_dolar, transferencia_pesos)
        amount: 결제 통화 금액
        exchange_rate: 결제 당시 환율 (없으면 None)
        amount_usd: USD 환산 금액
    """

    payment_id: int
    payment_method: str
    amount: Decimal
    amount_usd: Decimal
    paid_at: datetime
    exchange_rate: Decimal | None = None

    @property
    def currency(self) -> Currency:
        """결제 수단 이름으로 통화 추정 (pesos/_ars → ARS, usdt → USDT)"""
        method = self.payment_method.lower()
        if "usdt" in method:
            return Currency.USDT
        if "pesos" in method or "_ars" in method:
            return Currency.ARS
        return Currency.USD


@dataclass(frozen=True)
class PaidOrder:
    """결제가 기록된 주문

    Attributes:
        order_id: 주문 시스템의 안정적인 ID (source_ref로 사용)
        order_number: 화면 표시용 주문 번호
        payments: 주문의 결제 목록
    """

    order_id: str
    client_id: int
    created_at: datetime
    order_number: str | None = None
    customer_id: int | None = None
    vendor_id: int | None = None
    payments: tuple[OrderPayment, ...] = field(default_factory=tuple)

    @property
    def paid_usd(self) -> Decimal:
        """결제 합계 (USD)"""
        total = Decimal("0.00")
        for payment in self.payments:
            total += payment.amount_usd
        return total
