"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
LedgerEngine은 lifespan(또는 같은 프로세스의 Worker/테스트)에서 등록.
"""

from typing import Any

from fastapi import Depends, HTTPException

from core.config.loader import LedgerConfig, Settings, get_settings
from core.ledger.balance import BalanceAggregator
from core.ledger.debts import DebtLifecycleManager
from core.ledger.rates import ExchangeRateBook
from core.ledger.reports import DailyReportGenerator
from core.ledger.store import LedgerStore
from worker.scheduler import MonitorRegistry


def get_app_settings() -> Settings:
    """애플리케이션 설정 반환"""
    return get_settings()


# =========================================================================
# LedgerEngine (Worker와 같은 조립 방식)
# =========================================================================

# 프로세스 전역 엔진 인스턴스
_engine: Any = None


def set_engine(engine: Any) -> None:
    """LedgerEngine 설정

    Args:
        engine: LedgerEngine 인스턴스 (None이면 해제)
    """
    global _engine
    _engine = engine


def peek_engine() -> Any | None:
    """등록된 LedgerEngine (없으면 None)"""
    return _engine


def get_engine() -> Any:
    """LedgerEngine 반환

    Raises:
        HTTPException: 엔진이 초기화되지 않은 경우 503
    """
    if _engine is None:
        raise HTTPException(status_code=503, detail="Ledger 엔진이 초기화되지 않았습니다")
    return _engine


def get_store(engine: Any = Depends(get_engine)) -> LedgerStore:
    return engine.store


def get_rates(engine: Any = Depends(get_engine)) -> ExchangeRateBook:
    return engine.rates


def get_debts(engine: Any = Depends(get_engine)) -> DebtLifecycleManager:
    return engine.debts


def get_balance(engine: Any = Depends(get_engine)) -> BalanceAggregator:
    return engine.balance


def get_reports(engine: Any = Depends(get_engine)) -> DailyReportGenerator:
    return engine.reports


def get_monitors(engine: Any = Depends(get_engine)) -> MonitorRegistry:
    return engine.monitors


def get_ledger_config(engine: Any = Depends(get_engine)) -> LedgerConfig:
    """테넌트 현지 날짜 변환용 Ledger 설정"""
    return engine.settings.ledger
