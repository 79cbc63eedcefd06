"""
SQLite 게이트웨이 통합 테스트

같은 DB 파일의 외부 시스템 테이블(orders/payments/users/customers/products) 조회
"""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from adapters.db.gateways import SQLiteDirectory, SQLiteOrdersGateway, SQLiteProductsGateway
from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IDirectory, IOrdersGateway, IProductsGateway
from core.utils.timezone import to_db_ts
from tests.support import CLIENT_ID, NOW, OTHER_CLIENT_ID, utc


@pytest_asyncio.fixture
async def seeded_db(db: SQLiteAdapter) -> SQLiteAdapter:
    """테넌트 1/2의 외부 시스템 데이터"""
    async with db.transaction():
        await db.executemany(
            "INSERT INTO clients (id, name, created_at) VALUES (?, ?, ?)",
            [
                (CLIENT_ID, "Tienda Centro", to_db_ts(utc(2024, 1, 15, 12))),
                (OTHER_CLIENT_ID, "Tienda Norte", to_db_ts(utc(2024, 3, 1, 12))),
            ],
        )
        await db.executemany(
            "INSERT INTO users (id, client_id, username) VALUES (?, ?, ?)",
            [(1, CLIENT_ID, "system"), (7, CLIENT_ID, "ana"), (8, OTHER_CLIENT_ID, "luis")],
        )
        await db.executemany(
            "INSERT INTO customers (id, client_id, name) VALUES (?, ?, ?)",
            [(10, CLIENT_ID, "Carlos"), (11, OTHER_CLIENT_ID, "Marta")],
        )
        await db.executemany(
            """
            INSERT INTO orders (id, client_id, order_number, customer_id, vendor_id,
                                total_usd, payment_status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (1, CLIENT_ID, "A-001", 10, 7, "100.00", "pagado", to_db_ts(NOW - timedelta(days=1))),
                (2, CLIENT_ID, "A-002", None, 7, "50.00", "pagado", to_db_ts(NOW - timedelta(days=3))),
                (3, OTHER_CLIENT_ID, "B-001", 11, 8, "70.00", "pagado", to_db_ts(NOW)),
            ],
        )
        await db.executemany(
            """
            INSERT INTO payments (id, client_id, order_id, payment_method, amount,
                                  exchange_rate, amount_usd, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                # 주문 1: 어제 40 + 오늘 ARS 60
                (1, CLIENT_ID, 1, "efectivo_dolar", "40.00", None, "40.00",
                 to_db_ts(NOW - timedelta(days=1))),
                (2, CLIENT_ID, 1, "transferencia_pesos", "72000.00", "1200", "60.00",
                 to_db_ts(NOW - timedelta(hours=1))),
                # 주문 2: 사흘 전 결제
                (3, CLIENT_ID, 2, "efectivo_dolar", "50.00", None, "50.00",
                 to_db_ts(NOW - timedelta(days=3))),
                (4, OTHER_CLIENT_ID, 3, "usdt", "70.00", None, "70.00", to_db_ts(NOW)),
            ],
        )
        await db.executemany(
            "INSERT INTO products (client_id, model, cost_price, status) VALUES (?, ?, ?, ?)",
            [
                (CLIENT_ID, "iPhone 13", "300.50", "disponible"),
                (CLIENT_ID, "iPhone 14", "420.00", "reservado"),
                (CLIENT_ID, "iPhone 12", "250.00", "vendido"),
                (OTHER_CLIENT_ID, "iPhone 15", "800.00", "disponible"),
            ],
        )
    return db


class TestSQLiteOrdersGateway:
    """SQLiteOrdersGateway 테스트"""

    def test_protocol(self, temp_dir) -> None:
        assert isinstance(SQLiteOrdersGateway(SQLiteAdapter(temp_dir / "x.db")), IOrdersGateway)

    @pytest.mark.asyncio
    async def test_orders_with_payment_in_window(self, seeded_db: SQLiteAdapter) -> None:
        """구간 안에 결제가 있는 주문만, 결제 목록은 전체"""
        gateway = SQLiteOrdersGateway(seeded_db)

        orders = await gateway.get_paid_orders(
            CLIENT_ID, NOW - timedelta(hours=12), NOW + timedelta(hours=1)
        )

        assert len(orders) == 1
        order = orders[0]
        assert order.order_id == "1"
        assert order.order_number == "A-001"
        assert order.customer_id == 10
        assert order.vendor_id == 7
        assert len(order.payments) == 2
        assert order.paid_usd == Decimal("100.00")

        pesos = order.payments[1]
        assert pesos.exchange_rate == Decimal("1200")
        assert pesos.paid_at == NOW - timedelta(hours=1)
        assert pesos.currency.value == "ARS"

    @pytest.mark.asyncio
    async def test_window_end_exclusive(self, seeded_db: SQLiteAdapter) -> None:
        gateway = SQLiteOrdersGateway(seeded_db)

        orders = await gateway.get_paid_orders(
            CLIENT_ID, NOW - timedelta(days=4), NOW - timedelta(days=3)
        )

        assert orders == []

    @pytest.mark.asyncio
    async def test_tenant_scoped(self, seeded_db: SQLiteAdapter) -> None:
        gateway = SQLiteOrdersGateway(seeded_db)

        orders = await gateway.get_paid_orders(
            OTHER_CLIENT_ID, NOW - timedelta(days=5), NOW + timedelta(hours=1)
        )

        assert [o.order_id for o in orders] == ["3"]

    @pytest.mark.asyncio
    async def test_empty_tables(self, db: SQLiteAdapter) -> None:
        gateway = SQLiteOrdersGateway(db)

        assert await gateway.get_paid_orders(CLIENT_ID, NOW - timedelta(days=1), NOW) == []


class TestSQLiteDirectory:
    """SQLiteDirectory 테스트"""

    def test_protocol(self, temp_dir) -> None:
        assert isinstance(SQLiteDirectory(SQLiteAdapter(temp_dir / "x.db")), IDirectory)

    @pytest.mark.asyncio
    async def test_exists_is_tenant_scoped(self, seeded_db: SQLiteAdapter) -> None:
        directory = SQLiteDirectory(seeded_db)

        assert await directory.user_exists(CLIENT_ID, 7) is True
        assert await directory.user_exists(OTHER_CLIENT_ID, 7) is False
        assert await directory.customer_exists(CLIENT_ID, 10) is True
        assert await directory.customer_exists(CLIENT_ID, 11) is False

    @pytest.mark.asyncio
    async def test_names(self, seeded_db: SQLiteAdapter) -> None:
        directory = SQLiteDirectory(seeded_db)

        users = await directory.get_user_names(CLIENT_ID, [1, 7, 8, 7, None])
        customers = await directory.get_customer_names(CLIENT_ID, [10, 11])

        assert users == {1: "system", 7: "ana"}
        assert customers == {10: "Carlos"}
        assert await directory.get_user_names(CLIENT_ID, []) == {}

    @pytest.mark.asyncio
    async def test_client_created_at(self, seeded_db: SQLiteAdapter) -> None:
        directory = SQLiteDirectory(seeded_db)

        assert await directory.get_client_created_at(CLIENT_ID) == utc(2024, 1, 15, 12)
        assert await directory.get_client_created_at(99) is None


class TestSQLiteProductsGateway:
    """SQLiteProductsGateway 테스트"""

    def test_protocol(self, temp_dir) -> None:
        assert isinstance(SQLiteProductsGateway(SQLiteAdapter(temp_dir / "x.db")), IProductsGateway)

    @pytest.mark.asyncio
    async def test_stock_cost_counts_available_and_reserved(self, seeded_db: SQLiteAdapter) -> None:
        products = SQLiteProductsGateway(seeded_db)

        assert await products.get_stock_cost_usd(CLIENT_ID) == Decimal("720.50")
        assert await products.get_stock_cost_usd(OTHER_CLIENT_ID) == Decimal("800.00")
        assert await products.get_stock_cost_usd(99) == Decimal("0.00")
