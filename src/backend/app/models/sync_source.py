# app/models/sync_source.py
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ARRAY, func
from sqlalchemy.dialects.postgresql import JSONB
from app.db.base_class import Base

class SyncSource(Base):
    __tablename__ = "sync_sources"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(String, nullable=False)
    kmz_url = Column(String, nullable=False) # KMZ・KML・GeoJSONのいずれか
    description = Column(Text, nullable=True, default='')
    public_url = Column(String, nullable=True)

    is_public = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)

    include_folders = Column(ARRAY(String), nullable=True) # 指定があればこのKMLフォルダのみ取り込む
    record_folder_name = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    last_sync_stats = Column(JSONB, nullable=True)
