"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → cashledger/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # 테넌트 현지 영업일 기준 타임존
    TIMEZONE: str = "America/Argentina/Buenos_Aires"

    # Auto-sync (Reconciliation Monitor)
    SYNC_INTERVAL_SEC: int = 5
    MIN_SYNC_INTERVAL_SEC: int = 1
    SYSTEM_USER_ID: int = 1

    # 잔고 기준값
    INITIAL_BALANCE_USD: Decimal = Decimal("0.00")
    OPENING_BALANCE_USD: Decimal = Decimal("0.00")

    # 조회 기본 페이지 크기
    QUERY_LIMIT: int = 200
    MAX_QUERY_LIMIT: int = 1000

    # 채무 결제 낙관적 재시도 횟수
    DEBT_PAYMENT_MAX_RETRIES: int = 3


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"
    WORKER_LOGS_DIR: Path = LOGS_DIR / "worker"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    DEFAULT_DB: Path = DATA_DIR / "cashledger.db"


class Precision:
    """Decimal 정밀도 (quantize 기준)"""

    MONEY: Decimal = Decimal("0.01")
    RATE: Decimal = Decimal("0.0001")
