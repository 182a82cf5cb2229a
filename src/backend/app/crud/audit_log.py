# app/crud/audit_log.py
from sqlalchemy.orm import Session
from app.models import AuditLog

def add_entry(db: Session, values: dict) -> AuditLog:
    """
    コミットはしない．記録の対象となる書き込みと同じトランザクションで確定させる．
    """
    entry = AuditLog(**values)
    db.add(entry)
    return entry

def list_entries(db: Session, spot_id: str | None = None, user_id: str | None = None, limit: int = 100) -> list[AuditLog]:
    query = db.query(AuditLog)
    if spot_id is not None:
        query = query.filter(AuditLog.spot_id == spot_id)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
