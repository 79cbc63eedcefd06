"""
source_ref 생성 유틸리티

CashMovement 중복 제거 키 (client_id, source_ref) 생성 함수 제공.
정상 기록 경로와 auto-sync 보정 경로가 반드시 같은 함수를 사용해야 함.
"""


def make_order_source_ref(order_id: str | int, payment_method: str | None = None) -> str:
    """주문 결제로 생성되는 venta 이동의 source_ref

    주문 ID 그대로 사용 (주문 시스템의 안정적인 ID).
    한 주문을 결제 수단별로 나눠 기록할 때만 결제 수단을 붙임.

    Example:
        >>> make_order_source_ref("O1")
        'O1'
        >>> make_order_source_ref(42)
        '42'
        >>> make_order_source_ref("O1", "efectivo_ars")
        'O1:efectivo_ars'
    """
    if payment_method:
        return f"{order_id}:{payment_method}"
    return str(order_id)


def make_debt_payment_source_ref(payment_id: int) -> str:
    """채무 결제로 생성되는 pago_deuda 이동의 source_ref

    Example:
        >>> make_debt_payment_source_ref(7)
        'debt_payment:7'
    """
    return f"debt_payment:{payment_id}"


def make_reversal_source_ref(movement_id: int) -> str:
    """역분개 이동의 source_ref (원 이동당 1회만 허용)

    Example:
        >>> make_reversal_source_ref(15)
        'reversal:15'
    """
    return f"reversal:{movement_id}"
