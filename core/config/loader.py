"""
설정 로더

settings.yaml 로드 및 Ledger/Auto-sync 설정 생성.
파일이 없으면 기본값으로 동작.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths
from core.errors import ValidationError
from core.types import Currency
from core.utils.money import to_money
from core.utils.timezone import get_zone


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger 집계 설정

    Attributes:
        timezone: 테넌트 현지 영업일 타임존
        initial_balance_usd: 이전 리포트가 없을 때 일일 리포트 시작 잔고
        opening_balance_usd: 실시간 잔고 기준값
        opening_balances: 통화별 기준 잔고 (원 통화 단위)
    """

    timezone: str = Defaults.TIMEZONE
    initial_balance_usd: Decimal = Defaults.INITIAL_BALANCE_USD
    opening_balance_usd: Decimal = Defaults.OPENING_BALANCE_USD
    opening_balances: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class AutoSyncConfig:
    """Reconciliation Monitor 설정"""

    interval_seconds: int = Defaults.SYNC_INTERVAL_SEC
    system_user_id: int = Defaults.SYSTEM_USER_ID
    backfill_reports: bool = False
    autostart_clients: tuple[int, ...] = ()


@dataclass(frozen=True)
class WebConfig:
    """Web 서버 설정"""

    host: str = Defaults.WEB_HOST
    port: int = Defaults.WEB_PORT


@dataclass(frozen=True)
class AppConfig:
    """전체 설정 (불변)"""

    db_path: Path = Paths.DEFAULT_DB
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    auto_sync: AutoSyncConfig = field(default_factory=AutoSyncConfig)
    web: WebConfig = field(default_factory=WebConfig)


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"settings.yaml의 '{key}' 섹션은 매핑이어야 합니다")
    return value


def _parse_ledger(data: dict[str, Any]) -> LedgerConfig:
    tz_name = data.get("timezone", Defaults.TIMEZONE)
    try:
        get_zone(tz_name)
    except ValueError as e:
        raise SettingsLoadError(str(e)) from e

    raw_balances = data.get("opening_balances") or {}
    if not isinstance(raw_balances, dict):
        raise SettingsLoadError("ledger.opening_balances는 매핑이어야 합니다")

    try:
        opening_balances = {
            Currency(str(code).upper()).value: to_money(amount, f"opening_balances.{code}")
            for code, amount in raw_balances.items()
        }
        return LedgerConfig(
            timezone=tz_name,
            initial_balance_usd=to_money(
                data.get("initial_balance_usd", Defaults.INITIAL_BALANCE_USD),
                "initial_balance_usd",
            ),
            opening_balance_usd=to_money(
                data.get("opening_balance_usd", Defaults.OPENING_BALANCE_USD),
                "opening_balance_usd",
            ),
            opening_balances=opening_balances,
        )
    except (ValidationError, ValueError) as e:
        raise SettingsLoadError(f"ledger 설정 오류: {e}") from e


def _parse_auto_sync(data: dict[str, Any]) -> AutoSyncConfig:
    try:
        interval = int(data.get("interval_seconds", Defaults.SYNC_INTERVAL_SEC))
        system_user_id = int(data.get("system_user_id", Defaults.SYSTEM_USER_ID))
        autostart = tuple(int(c) for c in data.get("autostart_clients") or [])
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"auto_sync 설정 오류: {e}") from e

    if interval < Defaults.MIN_SYNC_INTERVAL_SEC:
        raise SettingsLoadError(
            f"auto_sync.interval_seconds는 {Defaults.MIN_SYNC_INTERVAL_SEC} 이상이어야 합니다"
        )

    return AutoSyncConfig(
        interval_seconds=interval,
        system_user_id=system_user_id,
        backfill_reports=bool(data.get("backfill_reports", False)),
        autostart_clients=autostart,
    )


def load_config(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스 (파일이 없으면 기본값)

    Raises:
        SettingsLoadError: 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        return AppConfig()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return AppConfig()
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    database = _section(data, "database")
    db_path = Path(database.get("path", Paths.DEFAULT_DB))
    if not db_path.is_absolute() and str(db_path) != ":memory:":
        db_path = PROJECT_ROOT / db_path

    web = _section(data, "web")

    return AppConfig(
        db_path=db_path,
        ledger=_parse_ledger(_section(data, "ledger")),
        auto_sync=_parse_auto_sync(_section(data, "auto_sync")),
        web=WebConfig(
            host=str(web.get("host", Defaults.WEB_HOST)),
            port=int(web.get("port", Defaults.WEB_PORT)),
        ),
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_config(settings_path)

    @property
    def config(self) -> AppConfig:
        """전체 설정"""
        assert self._config is not None
        return self._config

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        return self.config.db_path

    @property
    def ledger(self) -> LedgerConfig:
        """Ledger 집계 설정"""
        return self.config.ledger

    @property
    def auto_sync(self) -> AutoSyncConfig:
        """Auto-sync 설정"""
        return self.config.auto_sync

    @property
    def web(self) -> WebConfig:
        """Web 서버 설정"""
        return self.config.web

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
