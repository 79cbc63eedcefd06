"""
스토리지 모듈

Config Store 등 런타임 상태 저장소 인터페이스 제공
"""

from core.storage.config_store import ConfigStore, sync_status_key

__all__ = [
    "ConfigStore",
    "sync_status_key",
]
