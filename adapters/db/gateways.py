"""
SQLite 기반 외부 시스템 게이트웨이

주문/결제, 사용자, 고객, 상품 테이블은 상위 애플리케이션 소유.
같은 DB 파일에 있으며 여기서는 읽기만 수행.
테이블 생성 함수는 단독 실행과 테스트를 위해 제공.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.models import OrderPayment, PaidOrder
from core.utils.timezone import from_db_ts, to_db_ts

logger = logging.getLogger(__name__)

# 재고 평가 대상 상품 상태
STOCK_STATUSES = ("disponible", "reservado")


async def init_collaborator_schema(db: SQLiteAdapter) -> None:
    """외부 시스템 테이블 생성 (IF NOT EXISTS)"""
    await db.execute("""
        CREATE TABLE IF NOT EXISTS clients (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            name             TEXT NOT NULL,
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            username         TEXT NOT NULL,
            role             TEXT NOT NULL DEFAULT 'vendor',
            is_active        INTEGER NOT NULL DEFAULT 1
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS customers (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            name             TEXT NOT NULL,
            phone            TEXT
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS orders (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            order_number     TEXT NOT NULL,
            customer_id      INTEGER,
            vendor_id        INTEGER,
            total_usd        TEXT NOT NULL,
            payment_status   TEXT NOT NULL DEFAULT 'pendiente',
            created_at       TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS payments (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            order_id         INTEGER NOT NULL REFERENCES orders(id),
            payment_method   TEXT NOT NULL,
            amount           TEXT NOT NULL,
            exchange_rate    TEXT,
            amount_usd       TEXT NOT NULL,
            created_at       TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS products (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            model            TEXT NOT NULL,
            cost_price       TEXT NOT NULL,
            status           TEXT NOT NULL DEFAULT 'disponible'
        )
    """)

    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_payments_client_created "
        "ON payments(client_id, created_at)"
    )


class SQLiteOrdersGateway:
    """orders/payments 테이블 조회

    Args:
        db: SQLiteAdapter 인스턴스
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def get_paid_orders(
        self,
        client_id: int,
        start: datetime,
        end: datetime,
    ) -> list[PaidOrder]:
        """[start, end)에 결제가 기록된 주문과 그 주문의 전체 결제 목록"""
        order_rows = await self.db.fetchall(
            """
            SELECT DISTINCT o.id, o.order_number, o.customer_id, o.vendor_id, o.created_at
            FROM orders o
            JOIN payments p ON p.order_id = o.id AND p.client_id = o.client_id
            WHERE o.client_id = ?
              AND p.created_at >= ? AND p.created_at < ?
            ORDER BY o.id
            """,
            (client_id, to_db_ts(start), to_db_ts(end)),
        )
        if not order_rows:
            return []

        order_ids = [row["id"] for row in order_rows]
        placeholders = ",".join("?" for _ in order_ids)
        payment_rows = await self.db.fetchall(
            f"""
            SELECT id, order_id, payment_method, amount, exchange_rate, amount_usd, created_at
            FROM payments
            WHERE client_id = ? AND order_id IN ({placeholders})
            ORDER BY id
            """,
            (client_id, *order_ids),
        )

        payments_by_order: dict[int, list[OrderPayment]] = {}
        for row in payment_rows:
            payments_by_order.setdefault(row["order_id"], []).append(
                OrderPayment(
                    payment_id=row["id"],
                    payment_method=row["payment_method"],
                    amount=Decimal(row["amount"]),
                    amount_usd=Decimal(row["amount_usd"]),
                    paid_at=from_db_ts(row["created_at"]),
                    exchange_rate=(
                        Decimal(row["exchange_rate"]) if row["exchange_rate"] else None
                    ),
                )
            )

        return [
            PaidOrder(
                order_id=str(row["id"]),
                client_id=client_id,
                created_at=from_db_ts(row["created_at"]),
                order_number=row["order_number"],
                customer_id=row["customer_id"],
                vendor_id=row["vendor_id"],
                payments=tuple(payments_by_order.get(row["id"], [])),
            )
            for row in order_rows
        ]


class SQLiteDirectory:
    """users/customers/clients 테이블 조회"""

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def user_exists(self, client_id: int, user_id: int) -> bool:
        row = await self.db.fetchone(
            "SELECT 1 FROM users WHERE client_id = ? AND id = ?",
            (client_id, user_id),
        )
        return row is not None

    async def customer_exists(self, client_id: int, customer_id: int) -> bool:
        row = await self.db.fetchone(
            "SELECT 1 FROM customers WHERE client_id = ? AND id = ?",
            (client_id, customer_id),
        )
        return row is not None

    async def get_user_names(
        self,
        client_id: int,
        user_ids: Iterable[int],
    ) -> dict[int, str]:
        return await self._names("users", "username", client_id, user_ids)

    async def get_customer_names(
        self,
        client_id: int,
        customer_ids: Iterable[int],
    ) -> dict[int, str]:
        return await self._names("customers", "name", client_id, customer_ids)

    async def get_client_created_at(self, client_id: int) -> datetime | None:
        row = await self.db.fetchone(
            "SELECT created_at FROM clients WHERE id = ?",
            (client_id,),
        )
        return from_db_ts(row["created_at"]) if row else None

    async def _names(
        self,
        table: str,
        column: str,
        client_id: int,
        ids: Iterable[int],
    ) -> dict[int, str]:
        unique_ids = sorted({i for i in ids if i is not None})
        if not unique_ids:
            return {}

        placeholders = ",".join("?" for _ in unique_ids)
        rows = await self.db.fetchall(
            f"SELECT id, {column} FROM {table} "
            f"WHERE client_id = ? AND id IN ({placeholders})",
            (client_id, *unique_ids),
        )
        return {row[0]: row[1] for row in rows}


class SQLiteProductsGateway:
    """products 테이블 조회 (재고 평가)"""

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def get_stock_cost_usd(self, client_id: int) -> Decimal:
        placeholders = ",".join("?" for _ in STOCK_STATUSES)
        rows = await self.db.fetchall(
            f"""
            SELECT cost_price FROM products
            WHERE client_id = ? AND status IN ({placeholders})
            """,
            (client_id, *STOCK_STATUSES),
        )
        # TEXT 금액은 SQL SUM 대신 Decimal로 합산
        total = Decimal("0.00")
        for row in rows:
            total += Decimal(row["cost_price"])
        return total
