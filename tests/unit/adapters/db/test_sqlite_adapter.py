"""
SQLite 어댑터 테스트

SQLiteAdapter 및 관련 함수 테스트.
"""

import asyncio
from pathlib import Path

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter, create_connection, init_schema
from core.errors import PersistenceError


class TestCreateConnection:
    """create_connection 테스트"""

    @pytest.mark.asyncio
    async def test_create_connection(self, tmp_path: Path) -> None:
        """연결 생성"""
        db_path = tmp_path / "test.db"

        conn = await create_connection(db_path)

        assert conn is not None

        # WAL 모드 확인
        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].upper() == "WAL"

        await conn.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """부모 디렉토리 생성"""
        db_path = tmp_path / "subdir" / "test.db"

        conn = await create_connection(db_path)

        assert db_path.parent.exists()

        await conn.close()


class TestSQLiteAdapter:
    """SQLiteAdapter 테스트"""

    @pytest.mark.asyncio
    async def test_context_manager(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            assert db.is_connected

        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_not_connected(self, tmp_path: Path) -> None:
        db = SQLiteAdapter(tmp_path / "test.db")

        with pytest.raises(PersistenceError, match="Not connected"):
            await db.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_sql_error_wrapped(self, tmp_path: Path) -> None:
        """sqlite3 오류는 PersistenceError로 변환"""
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            with pytest.raises(PersistenceError, match="SQL 실행 실패"):
                await db.execute("SELECT * FROM missing_table")


class TestTransaction:
    """transaction() 테스트"""

    @pytest.mark.asyncio
    async def test_commit(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")

            async with db.transaction():
                await db.execute("INSERT INTO t (v) VALUES (?)", (1,))

            row = await db.fetchone("SELECT COUNT(*) FROM t")
            assert row[0] == 1

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")

            with pytest.raises(RuntimeError):
                async with db.transaction():
                    await db.execute("INSERT INTO t (v) VALUES (?)", (1,))
                    raise RuntimeError("boom")

            row = await db.fetchone("SELECT COUNT(*) FROM t")
            assert row[0] == 0

    @pytest.mark.asyncio
    async def test_nested_joins_outer(self, tmp_path: Path) -> None:
        """같은 태스크의 중첩 호출은 바깥 트랜잭션에 합류 (함께 롤백)"""
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")

            with pytest.raises(RuntimeError):
                async with db.transaction():
                    await db.execute("INSERT INTO t (v) VALUES (1)")
                    async with db.transaction():
                        await db.execute("INSERT INTO t (v) VALUES (2)")
                    raise RuntimeError("boom")

            row = await db.fetchone("SELECT COUNT(*) FROM t")
            assert row[0] == 0

    @pytest.mark.asyncio
    async def test_concurrent_writers_serialized(self, tmp_path: Path) -> None:
        """다른 태스크의 트랜잭션은 순서대로 실행"""
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")
            order: list[str] = []

            async def writer(name: str) -> None:
                async with db.transaction():
                    order.append(f"{name}:begin")
                    await db.execute("INSERT INTO t (v) VALUES (1)")
                    await asyncio.sleep(0.01)
                    order.append(f"{name}:end")

            await asyncio.gather(writer("a"), writer("b"))

            assert order in (
                ["a:begin", "a:end", "b:begin", "b:end"],
                ["b:begin", "b:end", "a:begin", "a:end"],
            )
            row = await db.fetchone("SELECT COUNT(*) FROM t")
            assert row[0] == 2


class TestReadCommitted:
    """다른 태스크의 열린 트랜잭션 중 조회"""

    @pytest.mark.asyncio
    async def test_reader_waits_and_never_sees_rolled_back_rows(self, tmp_path: Path) -> None:
        """트랜잭션이 대기 중이면 조회는 롤백 후에 실행"""
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")
            inserted = asyncio.Event()
            release = asyncio.Event()

            async def writer() -> None:
                async with db.transaction():
                    await db.execute("INSERT INTO t (v) VALUES (1)")
                    inserted.set()
                    await release.wait()
                    raise RuntimeError("boom")

            writer_task = asyncio.create_task(writer())
            await inserted.wait()

            reader_task = asyncio.create_task(db.fetchone("SELECT COUNT(*) FROM t"))
            await asyncio.sleep(0.05)
            assert not reader_task.done()

            release.set()
            with pytest.raises(RuntimeError):
                await writer_task

            row = await reader_task
            assert row[0] == 0

    @pytest.mark.asyncio
    async def test_reader_sees_committed_rows(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")
            inserted = asyncio.Event()
            release = asyncio.Event()

            async def writer() -> None:
                async with db.transaction():
                    await db.execute("INSERT INTO t (v) VALUES (1)")
                    inserted.set()
                    await release.wait()

            writer_task = asyncio.create_task(writer())
            await inserted.wait()
            reader_task = asyncio.create_task(db.fetchall("SELECT v FROM t"))
            await asyncio.sleep(0.05)
            release.set()
            await writer_task

            rows = await reader_task
            assert [r["v"] for r in rows] == [1]

    @pytest.mark.asyncio
    async def test_owner_reads_its_own_writes(self, tmp_path: Path) -> None:
        """트랜잭션을 연 태스크는 대기 없이 자신의 쓰기를 조회"""
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await db.execute("CREATE TABLE t (v INTEGER)")

            async with db.transaction():
                await db.execute("INSERT INTO t (v) VALUES (1)")
                row = await db.fetchone("SELECT COUNT(*) FROM t")
                assert row[0] == 1


class TestInitSchema:
    """init_schema 테스트"""

    @pytest.mark.asyncio
    async def test_creates_tables(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await init_schema(db)

            for table in (
                "cash_movements",
                "expenses",
                "customer_debts",
                "debt_payments",
                "daily_reports",
                "exchange_rates",
                "config_store",
                "orders",
                "payments",
            ):
                assert await db.table_exists(table), table

    @pytest.mark.asyncio
    async def test_idempotent(self, tmp_path: Path) -> None:
        """두 번 실행해도 오류 없음"""
        async with SQLiteAdapter(tmp_path / "test.db") as db:
            await init_schema(db)
            await init_schema(db)

            columns = await db.fetchall("PRAGMA table_info(cash_movements)")
            assert "source_ref" in {col["name"] for col in columns}
