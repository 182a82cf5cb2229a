# app/schemas/moderation.py
from datetime import datetime
from typing import Any
from pydantic import BaseModel, Base64Bytes, ConfigDict

class DeleteSpotsRequest(BaseModel):
    spot_ids: list[str]

class DeleteResult(BaseModel):
    deleted: int
    failed: int

class CleanupResult(BaseModel):
    scanned: int
    unused: list[str]
    deleted: int
    dry_run: bool

class MissingImage(BaseModel):
    spot_id: str
    spot_name: str
    image_url: str

class MissingImagesResult(BaseModel):
    checked_spots: int
    missing: list[MissingImage]

class OrphanedSpot(BaseModel):
    spot_id: str
    spot_name: str
    spot_source: str

class OrphanedSpotsResult(BaseModel):
    orphaned: list[OrphanedSpot]

class ReplacementImageRequest(BaseModel):
    old_image_url: str
    image: Base64Bytes

class SourceNamesResult(BaseModel):
    updated: int

class RecomputeResult(BaseModel):
    recomputed: int

class AuditLogEntry(BaseModel):
    id: str
    action: str
    spot_id: str
    report_id: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    created_at: datetime | None = None
    changes: dict[str, Any] | None = None
    details: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)

class AuditLogResponse(BaseModel):
    total: int
    entries: list[AuditLogEntry]
