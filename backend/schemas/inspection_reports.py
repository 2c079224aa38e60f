from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from enum import Enum


class ReportStatus(str, Enum):
    DAMAGED = "damaged"
    NEEDS_REPLACEMENT = "needs-replacement"


class ChecklistMark(BaseModel):
    checklist_item_id: int
    status: ReportStatus
    comments: Optional[str] = None


class OpenIssue(BaseModel):
    report_id: int
    tool_id: int
    tool_number: Optional[str] = None
    tool_name: Optional[str] = None
    custody_event_id: int
    checklist_item_id: int
    item_name: Optional[str] = None
    status: str
    comments: Optional[str] = None
    created_at: datetime


class InspectionReportEntry(OpenIssue):
    from_user_name: Optional[str] = None
    to_user_name: Optional[str] = None
    reported_by: Optional[str] = None
    event_timestamp: Optional[datetime] = None


class InspectionReportPage(BaseModel):
    data: List[InspectionReportEntry]
    total: int
