# app/services/audit_service.py
"""
モデレーション操作の監査ログ．
記録はセッションに追加するだけで，対象の書き込みと一緒にコミットされる（書き込みが失敗すれば記録も残らない）．
"""
from sqlalchemy.orm import Session
from app.core.auth import CurrentUser
from app.crud import audit_log as crud_audit_log
from app.models import AuditAction

def spot_changes(spot, values: dict) -> dict:
    """
    {フィールド名: {'from': 旧値, 'to': 新値}}．値が変わらないフィールドは含めない．
    """
    changes = {}
    for name, new in values.items():
        old = getattr(spot, name, None)
        if old != new:
            changes[name] = {'from': old, 'to': new}
    return changes

def record(
        db: Session,
        action: AuditAction,
        spot_id: str,
        user: CurrentUser,
        changes: dict | None = None,
        details: dict | None = None,
        report_id: str | None = None) -> None:
    crud_audit_log.add_entry(db, {
        'action': action.value,
        'spot_id': spot_id,
        'report_id': report_id,
        'user_id': user.user_id,
        'user_name': user.display_name,
        'changes': changes,
        'details': details,
    })
