"""
어댑터 레이어

외부 서비스(DB, 주문/결제, 사용자/고객, 상품)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import (
    IDirectory,
    IOrdersGateway,
    IProductsGateway,
)
from adapters.models import (
    OrderPayment,
    PaidOrder,
)

__all__ = [
    # Interfaces
    "IDirectory",
    "IOrdersGateway",
    "IProductsGateway",
    # Models
    "OrderPayment",
    "PaidOrder",
]
