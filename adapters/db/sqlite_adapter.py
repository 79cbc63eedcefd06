"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
Worker와 Web 프로세스가 같은 DB 파일에 동시에 접근.
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.errors import PersistenceError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


async def create_connection(db_path: Path | str) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)

    Returns:
        aiosqlite 연결 객체 (row_factory = aiosqlite.Row)
    """
    db_path_str = str(db_path)

    if db_path_str != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path_str)

    conn.row_factory = aiosqlite.Row

    # WAL 모드 설정
    await conn.execute("PRAGMA journal_mode=WAL")

    # 동시 접근 설정
    await conn.execute("PRAGMA busy_timeout=30000")  # 30초 대기

    # 외래 키 제약 활성화
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info("SQLite 연결 생성", extra={"db_path": db_path_str})

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    쓰기 트랜잭션은 프로세스 내 asyncio.Lock + BEGIN IMMEDIATE로 직렬화.
    같은 태스크에서 transaction()을 중첩 호출하면 바깥 트랜잭션에 합류.
    다른 태스크의 SQL은 열린 트랜잭션이 커밋/롤백될 때까지 대기 (read-committed).

    Args:
        db_path: DB 파일 경로

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        try:
            self._conn = await create_connection(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"DB 연결 실패: {e}") from e

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise PersistenceError("Not connected to database")
        return self._conn

    def _owns_transaction(self) -> bool:
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    @asynccontextmanager
    async def _statement_guard(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 밖의 SQL은 진행 중인 쓰기 트랜잭션이 끝난 뒤 실행

        연결이 하나뿐이라 다른 태스크의 트랜잭션 도중에 읽으면
        커밋되지 않은 (롤백될 수 있는) 행이 보임.
        """
        conn = self._require_conn()
        if self._owns_transaction():
            yield conn
            return

        async with self._write_lock:
            yield conn

    @staticmethod
    async def _run(
        conn: aiosqlite.Connection,
        sql: str,
        parameters: tuple[Any, ...] | None,
    ) -> aiosqlite.Cursor:
        try:
            if parameters:
                return await conn.execute(sql, parameters)
            return await conn.execute(sql)
        except sqlite3.Error as e:
            raise PersistenceError(f"SQL 실행 실패: {e}") from e

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행

        Raises:
            PersistenceError: SQLite 오류
        """
        async with self._statement_guard() as conn:
            return await self._run(conn, sql, parameters)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        async with self._statement_guard() as conn:
            try:
                return await conn.executemany(sql, parameters)
            except sqlite3.Error as e:
                raise PersistenceError(f"SQL 실행 실패: {e}") from e

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Row | None:
        """단일 행 조회 (커밋된 데이터만)"""
        async with self._statement_guard() as conn:
            cursor = await self._run(conn, sql, parameters)
            try:
                return await cursor.fetchone()
            except sqlite3.Error as e:
                raise PersistenceError(f"조회 실패: {e}") from e

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[aiosqlite.Row]:
        """전체 행 조회 (커밋된 데이터만)"""
        async with self._statement_guard() as conn:
            cursor = await self._run(conn, sql, parameters)
            try:
                return list(await cursor.fetchall())
            except sqlite3.Error as e:
                raise PersistenceError(f"조회 실패: {e}") from e

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """쓰기 트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외 시 자동 롤백.
        BEGIN IMMEDIATE로 시작하여 다른 프로세스의 쓰기와도 직렬화.

        사용 예시:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        conn = self._require_conn()

        # 같은 태스크의 중첩 호출은 바깥 트랜잭션에 합류
        if self._owns_transaction():
            yield conn
            return

        async with self._write_lock:
            self._tx_owner = asyncio.current_task()
            try:
                try:
                    if not conn.in_transaction:
                        await conn.execute("BEGIN IMMEDIATE")
                except sqlite3.Error as e:
                    raise PersistenceError(f"트랜잭션 시작 실패: {e}") from e

                try:
                    yield conn
                    await conn.commit()
                except sqlite3.Error as e:
                    await conn.rollback()
                    raise PersistenceError(f"트랜잭션 실패: {e}") from e
                except BaseException:
                    await conn.rollback()
                    raise
            finally:
                self._tx_owner = None

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """스키마 초기화 (테이블 생성)

    외부 시스템 테이블 → config_store → Ledger 테이블 순서로 생성.
    외부 시스템 테이블은 Ledger 외래 키가 참조하므로 먼저 생성.

    Args:
        adapter: 연결된 SQLiteAdapter
    """
    from adapters.db.gateways import init_collaborator_schema
    from core.ledger.schema import init_ledger_schema

    await init_collaborator_schema(adapter)

    # config_store
    await adapter.execute("""
        CREATE TABLE IF NOT EXISTS config_store (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            config_key   TEXT NOT NULL UNIQUE,
            value_json   TEXT NOT NULL,
            version      INTEGER NOT NULL DEFAULT 1,

            updated_by   TEXT NOT NULL,
            created_at   TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at   TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await init_ledger_schema(adapter)

    await adapter.commit()

    logger.info("스키마 초기화 완료")
