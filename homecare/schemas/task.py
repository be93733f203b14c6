"""
Maintenance Task Schemas
"""
from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import date, datetime


class TaskCreate(BaseModel):
    """A custom task the homeowner adds by hand."""
    property_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: date


class TaskCompleteRequest(BaseModel):
    completed_by: Literal["diy", "professional"]
    notes: Optional[str] = None


class TaskResponse(BaseModel):
    id: str
    property_id: str
    master_task_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: date
    status: str
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None

    class Config:
        from_attributes = True


class TaskHistoryResponse(BaseModel):
    id: str
    property_id: str
    user_task_id: Optional[str] = None
    title: str
    completed_at: datetime
    source: str
    confidence: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ReminderRunResponse(BaseModel):
    due_tomorrow: int
    due_in_7_days: int
    users_notified: int
