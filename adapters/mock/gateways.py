"""
Mock 외부 시스템 게이트웨이

테스트용 인메모리 주문/디렉터리/상품 게이트웨이.
IOrdersGateway, IDirectory, IProductsGateway Protocol 준수.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from adapters.models import OrderPayment, PaidOrder
from core.utils.timezone import ensure_utc


@dataclass
class MockState:
    """Mock 상태 (메모리 내 저장)"""

    # (client_id, order_id) -> PaidOrder
    orders: dict[tuple[int, str], PaidOrder] = field(default_factory=dict)

    # (client_id, user_id) -> username
    users: dict[tuple[int, int], str] = field(default_factory=dict)

    # (client_id, customer_id) -> name
    customers: dict[tuple[int, int], str] = field(default_factory=dict)

    # client_id -> 생성 시각
    clients: dict[int, datetime] = field(default_factory=dict)

    # client_id -> 재고 원가 합계
    stock_cost: dict[int, Decimal] = field(default_factory=dict)

    # 시뮬레이션 옵션
    should_fail_orders: bool = False
    orders_error_message: str = "Mock orders gateway error"

    payment_counter: int = 0


class MockOrdersGateway:
    """Mock 주문/결제 게이트웨이

    사용 예시:
    ```python
    orders = MockOrdersGateway()
    orders.add_paid_order(1, "O1", Decimal("100.00"), paid_at=now)
    ```
    """

    def __init__(self, state: MockState | None = None):
        self.state = state or MockState()
        self.call_count = 0

    def add_paid_order(
        self,
        client_id: int,
        order_id: str,
        amount_usd: Decimal,
        paid_at: datetime,
        customer_id: int | None = None,
        payment_method: str = "efectivo_dolar",
        amount: Decimal | None = None,
        exchange_rate: Decimal | None = None,
    ) -> PaidOrder:
        """결제 1건이 있는 주문 추가 (같은 주문이면 결제 추가)

        amount는 결제 통화 금액 (기본값은 amount_usd, USD 결제).
        """
        self.state.payment_counter += 1
        payment = OrderPayment(
            payment_id=self.state.payment_counter,
            payment_method=payment_method,
            amount=amount_usd if amount is None else amount,
            amount_usd=amount_usd,
            paid_at=ensure_utc(paid_at),
            exchange_rate=exchange_rate,
        )

        key = (client_id, order_id)
        existing = self.state.orders.get(key)
        if existing is None:
            order = PaidOrder(
                order_id=order_id,
                client_id=client_id,
                created_at=ensure_utc(paid_at),
                order_number=f"ORD-{order_id}",
                customer_id=customer_id,
                payments=(payment,),
            )
        else:
            order = PaidOrder(
                order_id=existing.order_id,
                client_id=existing.client_id,
                created_at=existing.created_at,
                order_number=existing.order_number,
                customer_id=existing.customer_id,
                vendor_id=existing.vendor_id,
                payments=existing.payments + (payment,),
            )

        self.state.orders[key] = order
        return order

    def fail_next_calls(self, should_fail: bool = True) -> None:
        """이후 get_paid_orders 호출을 실패시킴"""
        self.state.should_fail_orders = should_fail

    async def get_paid_orders(
        self,
        client_id: int,
        start: datetime,
        end: datetime,
    ) -> list[PaidOrder]:
        self.call_count += 1

        if self.state.should_fail_orders:
            raise ConnectionError(self.state.orders_error_message)

        return [
            order
            for (cid, _), order in self.state.orders.items()
            if cid == client_id
            and any(start <= p.paid_at < end for p in order.payments)
        ]


class MockDirectory:
    """Mock 사용자/고객 디렉터리"""

    def __init__(self, state: MockState | None = None):
        self.state = state or MockState()

    def add_user(self, client_id: int, user_id: int, username: str) -> None:
        self.state.users[(client_id, user_id)] = username

    def remove_user(self, client_id: int, user_id: int) -> None:
        self.state.users.pop((client_id, user_id), None)

    def add_customer(self, client_id: int, customer_id: int, name: str) -> None:
        self.state.customers[(client_id, customer_id)] = name

    def add_client(self, client_id: int, created_at: datetime) -> None:
        self.state.clients[client_id] = ensure_utc(created_at)

    async def user_exists(self, client_id: int, user_id: int) -> bool:
        return (client_id, user_id) in self.state.users

    async def customer_exists(self, client_id: int, customer_id: int) -> bool:
        return (client_id, customer_id) in self.state.customers

    async def get_user_names(
        self,
        client_id: int,
        user_ids: Iterable[int],
    ) -> dict[int, str]:
        return {
            uid: self.state.users[(client_id, uid)]
            for uid in set(user_ids)
            if (client_id, uid) in self.state.users
        }

    async def get_customer_names(
        self,
        client_id: int,
        customer_ids: Iterable[int],
    ) -> dict[int, str]:
        return {
            cid: self.state.customers[(client_id, cid)]
            for cid in set(customer_ids)
            if cid is not None and (client_id, cid) in self.state.customers
        }

    async def get_client_created_at(self, client_id: int) -> datetime | None:
        return self.state.clients.get(client_id)


class MockProductsGateway:
    """Mock 상품 게이트웨이"""

    def __init__(self, state: MockState | None = None):
        self.state = state or MockState()

    def set_stock_cost(self, client_id: int, total_usd: Decimal) -> None:
        self.state.stock_cost[client_id] = total_usd

    async def get_stock_cost_usd(self, client_id: int) -> Decimal:
        return self.state.stock_cost.get(client_id, Decimal("0.00"))
