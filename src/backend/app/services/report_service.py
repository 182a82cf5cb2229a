# app/services/report_service.py
"""
利用者からのスポット通報と，モデレーターによる処理状況の管理．
"""
import logging
from fastapi import Depends
from sqlalchemy.orm import Session
from app.constants.spot_reports import CATEGORY_DUPLICATE, CATEGORY_OTHER, REPORT_CATEGORIES, ReportStatus
from app.core.auth import CurrentUser, require_moderator
from app.core.errors import NotFoundError, SpotValidationError
from app.crud import spot as crud_spot
from app.crud import spot_report as crud_spot_report
from app.db import session
from app.models import AuditAction, SpotReport
from app.schemas.report import SpotReportCreate
from app.services import audit_service
from app.services.spot_service import backend_read, backend_write

logger = logging.getLogger(__name__)

def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None

class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def _get_spot(self, spot_id: str):
        with backend_read(self.db, "スポットの取得"):
            spot = crud_spot.get_spot(self.db, spot_id)
        if spot is None:
            raise NotFoundError(f"スポットが見つかりません: {spot_id}")
        return spot

    def submit_report(self, spot_id: str, request: SpotReportCreate, user: CurrentUser) -> SpotReport:
        """
        未ログインでも通報できる．その場合reporter_user_idは空．
        """
        spot = self._get_spot(spot_id)

        categories = []
        for category in request.categories:
            if category not in categories:
                categories.append(category)

        errors = {}
        if not categories:
            errors['categories'] = "通報の区分を1つ以上選んでください．"
        unknown = [c for c in categories if c not in REPORT_CATEGORIES]
        if unknown:
            errors['categories'] = f"未知の区分です: {', '.join(unknown)}"

        duplicate_of = _blank_to_none(request.duplicate_of_spot_id)
        if duplicate_of is not None:
            if CATEGORY_DUPLICATE not in categories:
                errors['duplicate_of_spot_id'] = f"'{CATEGORY_DUPLICATE}'を選んだ時のみ指定できます．"
            elif duplicate_of == spot_id:
                errors['duplicate_of_spot_id'] = "スポットを自分自身の重複にはできません．"
            else:
                with backend_read(self.db, "スポットの取得"):
                    if crud_spot.get_spot(self.db, duplicate_of) is None:
                        errors['duplicate_of_spot_id'] = f"スポットが見つかりません: {duplicate_of}"
        if errors:
            raise SpotValidationError(errors)

        values = {
            'spot_id': spot.id,
            'spot_name': spot.name,
            'spot_city': spot.city,
            'spot_country_code': spot.country_code,
            'categories': categories,
            'other_category': _blank_to_none(request.other_category) if CATEGORY_OTHER in categories else None,
            'details': _blank_to_none(request.details),
            'contact_email': _blank_to_none(request.contact_email),
            'reporter_user_id': user.user_id,
            'duplicate_of_spot_id': duplicate_of,
            'status': ReportStatus.NEW.value,
        }
        with backend_write(self.db, "通報の送信"):
            report = crud_spot_report.create_report(self.db, values)
        logger.info("spot %s reported (%s) as %s", spot.id, report.id, categories)
        return report

    def list_reports(self, user: CurrentUser, status: ReportStatus | None = None) -> list[SpotReport]:
        require_moderator(user)
        with backend_read(self.db, "通報の取得"):
            return crud_spot_report.list_reports(self.db, status=status.value if status is not None else None)

    def update_status(self, report_id: str, status: ReportStatus, user: CurrentUser) -> SpotReport:
        """
        状態が変わった時のみ監査ログに（旧状態→新状態）を残す．
        """
        require_moderator(user)
        with backend_read(self.db, "通報の取得"):
            report = crud_spot_report.get_report(self.db, report_id)
        if report is None:
            raise NotFoundError(f"通報が見つかりません: {report_id}")

        old_status = report.status
        if old_status == status.value:
            return report

        with backend_write(self.db, "通報の状態変更"):
            audit_service.record(
                self.db, AuditAction.SPOT_REPORT_STATUS_CHANGE, report.spot_id, user,
                changes={'status': {'from': old_status, 'to': status.value}},
                report_id=report.id,
            )
            report = crud_spot_report.update_report(self.db, report, {'status': status.value})
        logger.info("report %s: %s -> %s by %s", report_id, old_status, status.value, user.user_id)
        return report

def get_report_service(db: Session = Depends(session.get_db)) -> ReportService:
    return ReportService(db=db)
