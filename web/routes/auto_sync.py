"""
Auto-sync API 라우터

POST /api/auto-sync/start   - 테넌트 정합 루프 시작 (이미 실행 중이면 현재 상태)
POST /api/auto-sync/stop    - 루프 정지
GET  /api/auto-sync/status  - 상태 조회
"""

from fastapi import APIRouter, Depends, Query

from web.dependencies import get_monitors
from web.models.requests import AutoSyncStartRequest, AutoSyncStopRequest
from web.models.responses import AutoSyncStatusResponse
from worker.scheduler import MonitorRegistry

router = APIRouter(prefix="/api/auto-sync", tags=["Auto Sync"])


@router.post("/start", response_model=AutoSyncStatusResponse)
async def start_auto_sync(
    request: AutoSyncStartRequest,
    monitors: MonitorRegistry = Depends(get_monitors),
) -> AutoSyncStatusResponse:
    """auto-sync 시작"""
    status = await monitors.start(request.client_id, request.interval_seconds)
    return AutoSyncStatusResponse.model_validate(status)


@router.post("/stop", response_model=AutoSyncStatusResponse)
async def stop_auto_sync(
    request: AutoSyncStopRequest,
    monitors: MonitorRegistry = Depends(get_monitors),
) -> AutoSyncStatusResponse:
    """auto-sync 정지 (진행 중인 사이클은 끝까지 실행)"""
    status = await monitors.stop(request.client_id)
    return AutoSyncStatusResponse.model_validate(status)


@router.get("/status", response_model=AutoSyncStatusResponse)
async def get_auto_sync_status(
    client_id: int = Query(..., alias="clientId"),
    monitors: MonitorRegistry = Depends(get_monitors),
) -> AutoSyncStatusResponse:
    """auto-sync 상태"""
    status = await monitors.status(client_id)
    return AutoSyncStatusResponse.model_validate(status)
