# app/crud/sync_source.py
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from app.models import SyncSource

def list_sources(db: Session, include_inactive: bool = False) -> list[SyncSource]:
    query = db.query(SyncSource)
    if not include_inactive:
        query = query.filter(SyncSource.is_active.is_(True))
    return query.order_by(SyncSource.created_at.desc()).all()

def get_source(db: Session, source_id: str) -> SyncSource | None:
    return db.get(SyncSource, source_id)

def create_source(db: Session, values: dict) -> SyncSource:
    source = SyncSource(**values)
    db.add(source)
    db.commit()
    db.refresh(source)
    return source

def update_source(db: Session, source: SyncSource, values: dict) -> SyncSource:
    for key, value in values.items():
        setattr(source, key, value)
    db.commit()
    db.refresh(source)
    return source

def delete_source(db: Session, source_id: str) -> bool:
    num_deleted = db.query(SyncSource).filter(SyncSource.id == source_id).delete()
    db.commit()
    return num_deleted > 0

def record_sync(db: Session, source: SyncSource, stats: dict) -> SyncSource:
    source.last_sync_at = datetime.now(timezone.utc)
    source.last_sync_stats = stats
    db.commit()
    db.refresh(source)
    return source

def get_source_names(db: Session) -> dict[str, str]:
    return {row.id: row.name for row in db.query(SyncSource.id, SyncSource.name).all()}
