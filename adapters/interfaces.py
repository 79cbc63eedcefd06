"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
모든 조회는 client_id(테넌트)로 한정.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol, runtime_checkable

from adapters.models import PaidOrder


@runtime_checkable
class IOrdersGateway(Protocol):
    """주문/결제 시스템 인터페이스

    Reconciliation Monitor가 원장과 비교할 기준 데이터.
    """

    async def get_paid_orders(
        self,
        client_id: int,
        start: datetime,
        end: datetime,
    ) -> list[PaidOrder]:
        """[start, end) 구간에 결제가 기록된 주문 목록

        Args:
            client_id: 테넌트 ID
            start: 구간 시작 (UTC, 포함)
            end: 구간 끝 (UTC, 미포함)

        Returns:
            결제가 하나 이상 있는 주문 목록
        """
        ...


@runtime_checkable
class IDirectory(Protocol):
    """사용자/고객/테넌트 디렉터리 인터페이스

    존재 여부 검증과 표시 이름 projection에 사용.
    """

    async def user_exists(self, client_id: int, user_id: int) -> bool:
        """테넌트에 사용자가 존재하는지"""
        ...

    async def customer_exists(self, client_id: int, customer_id: int) -> bool:
        """테넌트에 고객이 존재하는지"""
        ...

    async def get_user_names(
        self,
        client_id: int,
        user_ids: Iterable[int],
    ) -> dict[int, str]:
        """사용자 ID → 표시 이름 (없는 ID는 결과에서 제외)"""
        ...

    async def get_customer_names(
        self,
        client_id: int,
        customer_ids: Iterable[int],
    ) -> dict[int, str]:
        """고객 ID → 표시 이름 (없는 ID는 결과에서 제외)"""
        ...

    async def get_client_created_at(self, client_id: int) -> datetime | None:
        """테넌트 생성 시각 (리포트 backfill 시작점)"""
        ...


@runtime_checkable
class IProductsGateway(Protocol):
    """상품 시스템 인터페이스 (읽기 전용)"""

    async def get_stock_cost_usd(self, client_id: int) -> Decimal:
        """판매 가능 재고(disponible, reservado)의 원가 합계 (USD)"""
        ...
