"""
일일 리포트 API 라우터

POST /api/daily-reports/generate  - 리포트 생성/재생성
GET  /api/daily-reports           - 리포트 목록
GET  /api/daily-reports/{date}    - 특정 날짜 리포트
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from core.ledger.reports import DailyReportGenerator
from web.dependencies import get_reports
from web.models.requests import DailyReportGenerateRequest
from web.models.responses import DailyReportResponse

router = APIRouter(prefix="/api/daily-reports", tags=["Daily Reports"])


@router.post("/generate", response_model=DailyReportResponse, status_code=201)
async def generate_daily_report(
    request: DailyReportGenerateRequest,
    reports: DailyReportGenerator = Depends(get_reports),
) -> DailyReportResponse:
    """일일 리포트 생성

    같은 날짜 리포트가 있으면 같은 id로 다시 계산.
    date를 생략하면 테넌트 현지 오늘.
    """
    report_date = request.report_date or reports.today()
    report = await reports.generate(request.client_id, report_date)
    return DailyReportResponse.model_validate(report)


@router.get("", response_model=list[DailyReportResponse])
async def list_daily_reports(
    client_id: int = Query(..., alias="clientId"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    reports: DailyReportGenerator = Depends(get_reports),
) -> list[DailyReportResponse]:
    """리포트 목록 (최신 날짜순)"""
    result = await reports.list_reports(client_id, start_date, end_date)
    return [DailyReportResponse.model_validate(r) for r in result]


@router.get("/{report_date}", response_model=DailyReportResponse)
async def get_daily_report(
    report_date: date,
    client_id: int = Query(..., alias="clientId"),
    reports: DailyReportGenerator = Depends(get_reports),
) -> DailyReportResponse:
    """특정 날짜 리포트"""
    report = await reports.get_report(client_id, report_date)
    return DailyReportResponse.model_validate(report)
