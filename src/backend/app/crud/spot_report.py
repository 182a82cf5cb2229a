# app/crud/spot_report.py
from sqlalchemy.orm import Session
from app.models import SpotReport

def create_report(db: Session, values: dict) -> SpotReport:
    report = SpotReport(**values)
    db.add(report)
    db.commit()
    db.refresh(report)
    return report

def get_report(db: Session, report_id: str) -> SpotReport | None:
    return db.get(SpotReport, report_id)

def list_reports(db: Session, status: str | None = None) -> list[SpotReport]:
    query = db.query(SpotReport)
    if status is not None:
        query = query.filter(SpotReport.status == status)
    return query.order_by(SpotReport.created_at.asc()).all() # 古い通報から処理する

def update_report(db: Session, report: SpotReport, values: dict) -> SpotReport:
    for key, value in values.items():
        setattr(report, key, value)
    db.commit()
    db.refresh(report)
    return report
