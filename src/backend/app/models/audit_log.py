# app/models/audit_log.py
import uuid
from enum import Enum
from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from app.db.base_class import Base

class AuditAction(str, Enum):
    SPOT_EDIT = 'spot_edit'
    SPOT_DELETE = 'spot_delete'
    SPOT_MARKED_AS_DUPLICATE = 'spot_marked_as_duplicate'
    SPOT_HIDDEN = 'spot_hidden'
    SPOT_UNHIDDEN = 'spot_unhidden'
    SPOT_REPORT_STATUS_CHANGE = 'spot_report_status_change'

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    action = Column(String, index=True, nullable=False) # AuditActionの値
    spot_id = Column(String(32), index=True, nullable=False) # スポット削除後も記録は残すので外部キーにしない
    report_id = Column(String(32), nullable=True)
    user_id = Column(String, index=True, nullable=True)
    user_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    changes = Column(JSONB, nullable=True) # {フィールド名: {'from': 旧値, 'to': 新値}}
    details = Column('metadata', JSONB, nullable=True) # 重複登録時の元スポットIDなど．metadataはDeclarativeの予約名．
