"""
현금 원장 타입 정의

이동 유형, 채무 상태 등 Ledger 시스템에서 사용하는 Enum 정의
"""

from decimal import Decimal
from enum import Enum


class MovementType(str, Enum):
    """현금 이동 유형

    str을 상속하여 JSON 직렬화 가능.
    """

    # 유입
    INGRESO = "ingreso"  # 기타 입금
    VENTA = "venta"  # 판매 대금
    PAGO_DEUDA = "pago_deuda"  # 고객 채무 상환

    # 유출
    EGRESO = "egreso"  # 기타 출금
    RETIRO = "retiro"  # 인출
    GASTO = "gasto"  # 지출
    COMISION_VENDEDOR = "comision_vendedor"  # 판매자 수수료

    @classmethod
    def values(cls) -> list[str]:
        """허용 유형 목록"""
        return [t.value for t in cls]


class DebtStatus(str, Enum):
    """고객 채무 상태

    전이 규칙:
    - vigente → pagada: 누적 결제 ≥ 원금
    - vigente → cancelada: 관리자 취소
    pagada, cancelada는 종료 상태.
    """

    VIGENTE = "vigente"
    PAGADA = "pagada"
    CANCELADA = "cancelada"


# 잔고 부호 + (유입)
INFLOW_TYPES: frozenset[MovementType] = frozenset({
    MovementType.INGRESO,
    MovementType.VENTA,
    MovementType.PAGO_DEUDA,
})

# 잔고 부호 - (유출)
OUTFLOW_TYPES: frozenset[MovementType] = frozenset({
    MovementType.EGRESO,
    MovementType.RETIRO,
    MovementType.GASTO,
    MovementType.COMISION_VENDEDOR,
})

# 일일 매출/리포트 수입 집계 대상 (채무 상환은 별도 합계)
INCOME_TYPES: frozenset[MovementType] = frozenset({
    MovementType.VENTA,
    MovementType.INGRESO,
})


def movement_sign(movement_type: MovementType | str) -> Decimal:
    """이동 유형의 잔고 부호 (+1 / -1)"""
    if MovementType(movement_type) in INFLOW_TYPES:
        return Decimal("1")
    return Decimal("-1")
