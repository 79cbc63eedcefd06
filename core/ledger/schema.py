"""
현금 원장 스키마 초기화

Worker/Web 시작 시 자동으로 Ledger 테이블 생성.
CREATE IF NOT EXISTS 패턴으로 안전하게 동작.

금액/환율은 Decimal 문자열(TEXT)로 저장, 시각은 UTC ISO 문자열.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # 현금 이동 (불변, 역분개로만 취소)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS cash_movements (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            type             TEXT NOT NULL,
            amount           TEXT NOT NULL,
            currency         TEXT NOT NULL,
            exchange_rate    TEXT NOT NULL,
            amount_usd       TEXT NOT NULL,
            description      TEXT,
            payment_method   TEXT,
            user_id          INTEGER NOT NULL,
            customer_id      INTEGER,
            source_ref       TEXT,
            reversal_of      INTEGER REFERENCES cash_movements(id),
            created_at       TEXT NOT NULL
        )
    """)

    # 지출 (수정/삭제 가능)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS expenses (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            category         TEXT NOT NULL,
            description      TEXT,
            amount           TEXT NOT NULL,
            currency         TEXT NOT NULL,
            exchange_rate    TEXT NOT NULL,
            amount_usd       TEXT NOT NULL,
            payment_method   TEXT,
            user_id          INTEGER NOT NULL,
            expense_date     TEXT NOT NULL,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # 고객 채무 (version: 낙관적 동시성 제어)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS customer_debts (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            customer_id      INTEGER NOT NULL,
            order_id         TEXT,
            original_amount  TEXT NOT NULL,
            paid_amount      TEXT NOT NULL DEFAULT '0.00',
            remaining_amount TEXT NOT NULL,
            currency         TEXT NOT NULL DEFAULT 'USD',
            status           TEXT NOT NULL DEFAULT 'vigente',
            notes            TEXT,
            version          INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL,
            updated_at       TEXT NOT NULL
        )
    """)

    # 채무 결제 (추가 전용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS debt_payments (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            debt_id          INTEGER NOT NULL REFERENCES customer_debts(id),
            client_id        INTEGER NOT NULL,
            amount           TEXT NOT NULL,
            currency         TEXT NOT NULL,
            exchange_rate    TEXT NOT NULL,
            amount_usd       TEXT NOT NULL,
            payment_method   TEXT,
            user_id          INTEGER NOT NULL,
            notes            TEXT,
            payment_date     TEXT NOT NULL,
            created_at       TEXT NOT NULL
        )
    """)

    # 일일 리포트 (client_id + report_date 당 1행)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS daily_reports (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id           INTEGER NOT NULL,
            report_date         TEXT NOT NULL,
            opening_balance     TEXT NOT NULL,
            total_income        TEXT NOT NULL,
            total_expenses      TEXT NOT NULL,
            total_debt_payments TEXT NOT NULL,
            total_active_debts  TEXT NOT NULL,
            net_profit          TEXT NOT NULL,
            closing_balance     TEXT NOT NULL,
            total_movements     INTEGER NOT NULL,
            exchange_rate_used  TEXT,
            report_data         TEXT NOT NULL,
            is_auto_generated   INTEGER NOT NULL DEFAULT 0,
            generated_at        TEXT NOT NULL,
            UNIQUE(client_id, report_date)
        )
    """)

    # 환율 이력 (1 USD당 통화 단위, 추가 전용)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS exchange_rates (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            client_id        INTEGER NOT NULL,
            currency         TEXT NOT NULL,
            rate             TEXT NOT NULL,
            effective_at     TEXT NOT NULL,
            set_by           TEXT,
            created_at       TEXT NOT NULL
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """Ledger 인덱스 생성"""
    # (client_id, source_ref) 중복 방지 키. NULL은 서로 다른 값으로 취급됨
    await db.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_cash_movements_source_ref "
        "ON cash_movements(client_id, source_ref)"
    )
    await db.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS ux_cash_movements_reversal_of "
        "ON cash_movements(reversal_of)"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_cash_movements_client_created "
        "ON cash_movements(client_id, created_at)"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_expenses_client_date "
        "ON expenses(client_id, expense_date)"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_customer_debts_client_status "
        "ON customer_debts(client_id, status)"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_debt_payments_debt "
        "ON debt_payments(debt_id)"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_debt_payments_client_date "
        "ON debt_payments(client_id, payment_date)"
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_exchange_rates_lookup "
        "ON exchange_rates(client_id, currency, effective_at)"
    )
