"""
ConfigStore - 런타임 상태 저장소

config_store 테이블을 통해 런타임 상태 관리.
Worker와 Web이 공유하는 테넌트별 auto-sync 상태를 저장/조회.

설정 키 구조:
- "auto_sync:{client_id}": 테넌트별 Reconciliation Monitor 상태
"""

import json
import logging
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import PersistenceError
from core.utils.timezone import now_utc, to_db_ts

logger = logging.getLogger(__name__)

AUTO_SYNC_PREFIX = "auto_sync"


# 기본 설정값 (키의 ':' 앞부분 기준)
DEFAULT_CONFIGS: dict[str, dict[str, Any]] = {
    AUTO_SYNC_PREFIX: {
        "is_running": False,
        "last_check": None,  # 마지막 사이클 시각 (ISO 형식)
        "next_check": None,  # 다음 사이클 예정 시각 (ISO 형식)
        "issues_found": 0,
        "issues_fixed": 0,
        "repair_failures": 0,
        "cycles_run": 0,
        "cycles_skipped": 0,
        "interval_seconds": None,
        "started_at": None,
    },
}


def sync_status_key(client_id: int) -> str:
    return f"{AUTO_SYNC_PREFIX}:{client_id}"


class ConfigStore:
    """설정 저장소

    config_store 테이블을 읽고 쓰는 클래스.

    Args:
        db: SQLiteAdapter 인스턴스

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        config_store = ConfigStore(db)

        # 테넌트 1 auto-sync 상태 조회
        status = await config_store.get_sync_status(1)
        status.get("issues_fixed", 0)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        self._cache: dict[str, dict[str, Any]] = {}
        self._cache_version: dict[str, int] = {}

    @staticmethod
    def _default_for(key: str) -> dict[str, Any]:
        return dict(DEFAULT_CONFIGS.get(key.split(":", 1)[0], {}))

    async def get(self, key: str, use_cache: bool = True) -> dict[str, Any]:
        """설정 조회

        Args:
            key: 설정 키
            use_cache: 캐시 사용 여부 (기본 True)

        Returns:
            설정 값 (dict). 없으면 기본값 반환.
        """
        if use_cache and key in self._cache:
            return self._cache[key]

        try:
            row = await self.db.fetchone(
                """
                SELECT value_json, version
                FROM config_store
                WHERE config_key = ?
                """,
                (key,),
            )

            if row:
                value = json.loads(row[0])

                self._cache[key] = value
                self._cache_version[key] = row[1]

                return value

        except PersistenceError as e:
            logger.warning(f"Failed to get config '{key}': {e}")

        return self._default_for(key)

    async def set(
        self,
        key: str,
        value: dict[str, Any],
        updated_by: str = "worker:system",
    ) -> bool:
        """설정 저장 (UPSERT, version 증가)

        Args:
            key: 설정 키
            value: 설정 값
            updated_by: 업데이트 주체

        Returns:
            성공 여부
        """
        now = to_db_ts(now_utc())
        value_json = json.dumps(value, ensure_ascii=False)

        try:
            async with self.db.transaction():
                await self.db.execute(
                    """
                    INSERT INTO config_store (config_key, value_json, version, updated_by, created_at, updated_at)
                    VALUES (?, ?, 1, ?, ?, ?)
                    ON CONFLICT(config_key) DO UPDATE SET
                        value_json = excluded.value_json,
                        version = config_store.version + 1,
                        updated_by = excluded.updated_by,
                        updated_at = excluded.updated_at
                    """,
                    (key, value_json, updated_by, now, now),
                )
        except PersistenceError as e:
            logger.error(f"Failed to set config '{key}': {e}")
            return False

        # 캐시 무효화
        self._cache.pop(key, None)
        self._cache_version.pop(key, None)

        logger.debug(f"Config '{key}' updated by {updated_by}")
        return True

    async def get_all(self, prefix: str | None = None) -> dict[str, dict[str, Any]]:
        """모든 설정 조회

        Args:
            prefix: 키 접두어 필터 (예: "auto_sync")

        Returns:
            {키: 값} 딕셔너리
        """
        sql = "SELECT config_key, value_json FROM config_store"
        params: tuple[Any, ...] = ()
        if prefix is not None:
            sql += " WHERE config_key LIKE ?"
            params = (f"{prefix}:%",)
        sql += " ORDER BY config_key"

        result: dict[str, dict[str, Any]] = {}
        try:
            rows = await self.db.fetchall(sql, params)
            for row in rows:
                result[row[0]] = json.loads(row[1])
        except PersistenceError as e:
            logger.warning(f"Failed to get all configs: {e}")

        return result

    def clear_cache(self) -> None:
        """캐시 초기화"""
        self._cache.clear()
        self._cache_version.clear()

    # =========================================================================
    # auto-sync 상태 (Worker가 저장, Web이 조회)
    # =========================================================================

    async def get_sync_status(self, client_id: int) -> dict[str, Any]:
        """테넌트 auto-sync 상태 조회 (없으면 기본값)"""
        return await self.get(sync_status_key(client_id), use_cache=False)

    async def save_sync_status(self, client_id: int, status: dict[str, Any]) -> bool:
        """테넌트 auto-sync 상태 저장"""
        return await self.set(
            sync_status_key(client_id), status, updated_by="worker:auto_sync"
        )

    async def list_sync_statuses(self) -> dict[int, dict[str, Any]]:
        """저장된 모든 테넌트의 auto-sync 상태"""
        stored = await self.get_all(prefix=AUTO_SYNC_PREFIX)
        return {int(key.split(":", 1)[1]): value for key, value in stored.items()}
