"""
헬스 체크 엔드포인트

GET /health - 서버 상태 확인
"""

from fastapi import APIRouter

from core.utils.timezone import now_utc
from web.dependencies import peek_engine
from web.models.responses import HealthResponse

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """서버 상태 확인

    Returns:
        HealthResponse: status, version, 실행 중인 auto-sync 테넌트
    """
    engine = peek_engine()
    if engine is None:
        return HealthResponse(status="starting", version=API_VERSION, timestamp=now_utc())

    return HealthResponse(
        status="ok",
        version=API_VERSION,
        timestamp=now_utc(),
        running_monitors=engine.monitors.running_clients(),
    )
