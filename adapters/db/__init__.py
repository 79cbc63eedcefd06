"""
데이터베이스 어댑터

SQLite WAL 모드 연결 관리 및 외부 시스템 테이블 게이트웨이.
"""

from adapters.db.gateways import (
    SQLiteDirectory,
    SQLiteOrdersGateway,
    SQLiteProductsGateway,
    init_collaborator_schema,
)
from adapters.db.sqlite_adapter import (
    SQLiteAdapter,
    create_connection,
    init_schema,
)

__all__ = [
    "SQLiteAdapter",
    "create_connection",
    "init_schema",
    "init_collaborator_schema",
    "SQLiteOrdersGateway",
    "SQLiteDirectory",
    "SQLiteProductsGateway",
]
