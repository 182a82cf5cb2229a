# app/schemas/sync_source.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict

class SyncStats(BaseModel):
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    geocoded: int = 0

    def add(self, other: "SyncStats") -> "SyncStats":
        return SyncStats(**{name: getattr(self, name) + getattr(other, name) for name in SyncStats.model_fields})

class SyncSourceCreate(BaseModel):
    name: str
    kmz_url: str
    description: str = ''
    public_url: str | None = None
    is_public: bool = True
    is_active: bool = True
    include_folders: list[str] | None = None
    record_folder_name: bool = False

class SyncSourceUpdate(BaseModel):
    # 指定されたフィールドのみ更新する（exclude_unset）．
    name: str | None = None
    kmz_url: str | None = None
    description: str | None = None
    public_url: str | None = None
    is_public: bool | None = None
    is_active: bool | None = None
    include_folders: list[str] | None = None
    record_folder_name: bool | None = None

class SyncSource(BaseModel):
    id: str
    name: str
    kmz_url: str
    description: str | None = None
    public_url: str | None = None
    is_public: bool = True
    is_active: bool = True
    include_folders: list[str] | None = None
    record_folder_name: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_sync_at: datetime | None = None
    last_sync_stats: SyncStats | None = None

    model_config = ConfigDict(from_attributes=True)

class SyncSourcesResponse(BaseModel):
    count: int
    sources: list[SyncSource]

class SyncResult(BaseModel):
    source_id: str
    source_name: str
    success: bool
    stats: SyncStats
    error: str | None = None

class SyncAllResult(BaseModel):
    message: str
    total_stats: SyncStats
    results: list[SyncResult]
