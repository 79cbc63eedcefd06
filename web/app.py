"""
FastAPI 애플리케이션

라우터 등록, 예외 응답 형식, 앱 생명주기.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config.loader import get_settings
from core.errors import LedgerError
from core.logging import setup_logging
from core.types import ProcessName

# 로깅 설정 (콘솔 + 파일)
setup_logging(ProcessName.WEB.value)

from web.dependencies import peek_engine, set_engine
from web.routes import (
    auto_sync,
    cash,
    cash_movements,
    daily_reports,
    debts,
    exchange_rates,
    expenses,
    health,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리

    엔진이 이미 등록되어 있으면(같은 프로세스의 Worker/테스트) 그대로 사용.
    auto-sync 루프는 API 요청이 있을 때만 시작.
    """
    from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
    from worker.bootstrap import LedgerEngine

    owned_db = None
    owned_engine = None

    if peek_engine() is None:
        settings = get_settings()
        owned_db = SQLiteAdapter(settings.db_path)
        await owned_db.connect()
        await init_schema(owned_db)

        owned_engine = LedgerEngine(settings, owned_db)
        set_engine(owned_engine)
        logger.info(f"Web: LedgerEngine 초기화 완료 (DB: {settings.db_path})")

    yield

    # 종료 시 - 루프 정지 및 DB 연결 종료
    if owned_engine is not None:
        await owned_engine.shutdown()
        set_engine(None)
    if owned_db is not None:
        await owned_db.close()
        logger.info("Web: DB 연결 종료 완료")


app = FastAPI(
    title="CashLedger API",
    description="다중 통화 현금 원장 및 주문 정합 API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS 설정 (개발용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================================================================
# 예외 응답: {"success": false, "message": ...}
# =========================================================================


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 실패: {exc.message}", exc_info=exc)
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return _error_response(400, f"요청 형식 오류: {details}")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} 처리 중 예외")
    return _error_response(500, "내부 서버 오류")


# =========================================================================
# API 라우터 등록
# =========================================================================

app.include_router(health.router)
app.include_router(cash_movements.router)
app.include_router(expenses.router)
app.include_router(debts.router)
app.include_router(debts.payments_router)
app.include_router(cash.router)
app.include_router(exchange_rates.router)
app.include_router(daily_reports.router)
app.include_router(auto_sync.router)
