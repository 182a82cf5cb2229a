# app/schemas/report.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from app.constants.spot_reports import ReportStatus

class SpotReportCreate(BaseModel):
    categories: list[str] = Field(default_factory=list)
    other_category: str | None = None
    details: str | None = None
    contact_email: str | None = None
    duplicate_of_spot_id: str | None = None

class SpotReport(BaseModel):
    id: str
    spot_id: str
    spot_name: str
    spot_city: str | None = None
    spot_country_code: str | None = None
    categories: list[str]
    other_category: str | None = None
    details: str | None = None
    contact_email: str | None = None
    reporter_user_id: str | None = None
    duplicate_of_spot_id: str | None = None
    status: ReportStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

class SpotReportsResponse(BaseModel):
    total: int
    reports: list[SpotReport]

class ReportStatusUpdate(BaseModel):
    status: ReportStatus
