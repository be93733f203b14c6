"""
Property Report Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime


class ReportCheckoutRequest(BaseModel):
    property_id: str
    # Generated server-side when the client doesn't supply one
    report_id: Optional[str] = Field(None, min_length=1, max_length=100)


class ReportCheckoutResponse(BaseModel):
    report_id: str
    session_id: Optional[str] = None
    session_url: Optional[str] = None


class ReportVerifyRequest(BaseModel):
    session_id: str
    property_id: str
    report_id: str


class ReportVerifyResponse(BaseModel):
    report_id: str
    property_id: str
    report_url: str
    purchased_at: datetime


class ReportProperty(BaseModel):
    id: str
    nickname: str
    address: str
    zip_code: Optional[str] = None
    property_type: str
    year_built: Optional[int] = None
    square_feet: Optional[int] = None
    region: str


class ReportTaskStats(BaseModel):
    total: int
    completed: int
    pending: int
    overdue: int
    completion_rate: float
    diy: int
    professional: int


class ReportHistoryEntry(BaseModel):
    title: str
    completed_at: datetime
    source: str
    confidence: float
    notes: Optional[str] = None


class ReportUpcomingTask(BaseModel):
    id: str
    title: str
    category: Optional[str] = None
    due_date: date


class PropertyReport(BaseModel):
    generated_at: datetime
    property: ReportProperty
    tasks: ReportTaskStats
    history: list[ReportHistoryEntry] = []
    upcoming: list[ReportUpcomingTask] = []
