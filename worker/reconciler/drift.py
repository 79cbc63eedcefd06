"""
Drift Detector

주문/결제 시스템과 현금 원장을 비교하여 누락된 venta 이동 감지.
주문의 결제는 결제 수단(= 통화)별로 묶어 원 통화 그대로 기록.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from adapters.models import OrderPayment, PaidOrder
from core.types import Currency
from core.utils.dedup import make_order_source_ref

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleDrift:
    """원장에 venta 이동이 없는 결제 묶음 (주문 + 결제 수단)

    Attributes:
        order_ref: 주문 전체의 source_ref
        source_ref: 기록할 이동의 source_ref (결제 수단이 하나면 order_ref와 같음)
        amount: 결제 통화 금액 합계
        exchange_rate: 결제에 기록된 환율 (묶음 안에서 하나일 때만)
    """

    order: PaidOrder
    order_ref: str
    source_ref: str
    payment_method: str
    currency: Currency
    amount: Decimal
    amount_usd: Decimal
    paid_at: datetime
    exchange_rate: Decimal | None = None
    split: bool = False

    @property
    def description(self) -> str:
        label = self.order.order_number or self.order.order_id
        if self.split:
            return f"Venta orden {label} - {self.payment_method} (auto-sync)"
        return f"Venta orden {label} (auto-sync)"


def group_payments(payments: Iterable[OrderPayment]) -> dict[str, list[OrderPayment]]:
    """결제 수단별 묶음 (처음 나온 순서 유지)"""
    groups: dict[str, list[OrderPayment]] = {}
    for payment in payments:
        groups.setdefault(payment.payment_method, []).append(payment)
    return groups


class DriftDetector:
    """Drift 감지기

    결제된 주문의 source_ref가 원장에 없으면 drift로 판단.
    같은 주문이 여러 번 나와도 한 번만 보고.
    주문 전체 source_ref가 기록되어 있으면 결제 수단별 묶음도 기록된 것으로 봄.

    Args:
        client_id: 테넌트 ID
    """

    def __init__(self, client_id: int):
        self.client_id = client_id

    def detect_missing_sales(
        self,
        orders: Iterable[PaidOrder],
        recorded_refs: set[str],
    ) -> list[SaleDrift]:
        """누락된 venta 이동 감지

        Args:
            orders: 구간 내 결제된 주문 목록
            recorded_refs: 원장에 기록된 source_ref 집합

        Returns:
            SaleDrift 목록 (주문/결제 순서 유지)
        """
        drifts: list[SaleDrift] = []
        seen: set[str] = set()

        for order in orders:
            order_ref = make_order_source_ref(order.order_id)
            if order_ref in recorded_refs or order_ref in seen:
                continue
            seen.add(order_ref)

            groups = group_payments(order.payments)
            split = len(groups) > 1

            for method, payments in groups.items():
                source_ref = make_order_source_ref(order.order_id, method if split else None)
                if source_ref in recorded_refs:
                    continue

                drift = self._build(order, order_ref, source_ref, method, payments, split)
                if drift.amount_usd <= 0:
                    logger.debug(
                        f"결제 합계 0 제외: {source_ref}",
                        extra={"client_id": self.client_id},
                    )
                    continue
                drifts.append(drift)

        if drifts:
            logger.info(
                f"venta 누락 감지: {len(drifts)}건",
                extra={"client_id": self.client_id, "source_refs": [d.source_ref for d in drifts]},
            )
        return drifts

    @staticmethod
    def _build(
        order: PaidOrder,
        order_ref: str,
        source_ref: str,
        method: str,
        payments: list[OrderPayment],
        split: bool,
    ) -> SaleDrift:
        amount = sum((p.amount for p in payments), Decimal("0"))
        amount_usd = sum((p.amount_usd for p in payments), Decimal("0"))
        rates = {p.exchange_rate for p in payments}
        exchange_rate = rates.pop() if len(rates) == 1 else None

        return SaleDrift(
            order=order,
            order_ref=order_ref,
            source_ref=source_ref,
            payment_method=method,
            currency=payments[0].currency,
            amount=amount,
            amount_usd=amount_usd,
            paid_at=max(p.paid_at for p in payments),
            exchange_rate=exchange_rate,
            split=split,
        )
