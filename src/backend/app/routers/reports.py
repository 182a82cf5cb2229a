# app/routers/reports.py
from fastapi import APIRouter, Depends, Query, status

from app.constants.spot_reports import REPORT_CATEGORIES, ReportStatus
from app.core.auth import CurrentUser, get_current_user
from app.schemas import report as schemas_report
from app.services.report_service import ReportService, get_report_service

router = APIRouter()

@router.get("/api/v1/reports/categories", response_model=list[str])
def list_report_categories():
    return REPORT_CATEGORIES

@router.post("/api/v1/spots/{spot_id}/reports", response_model=schemas_report.SpotReport, status_code=status.HTTP_201_CREATED)
def submit_report(
        spot_id: str,
        request: schemas_report.SpotReportCreate,
        user: CurrentUser = Depends(get_current_user),
        service: ReportService = Depends(get_report_service)):
    return service.submit_report(spot_id, request, user)

@router.get("/api/v1/moderation/reports", response_model=schemas_report.SpotReportsResponse)
def list_reports(
        report_status: ReportStatus | None = Query(None, alias="status"),
        user: CurrentUser = Depends(get_current_user),
        service: ReportService = Depends(get_report_service)):
    """
    通報キュー．古い順．
    """
    reports = service.list_reports(user, status=report_status)
    return {"total": len(reports), "reports": reports}

@router.put("/api/v1/moderation/reports/{report_id}/status", response_model=schemas_report.SpotReport)
def update_report_status(
        report_id: str,
        request: schemas_report.ReportStatusUpdate,
        user: CurrentUser = Depends(get_current_user),
        service: ReportService = Depends(get_report_service)):
    return service.update_status(report_id, request.status, user)
