from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from schemas.inspection_reports import OpenIssue


class ToolNotification(BaseModel):
    id: int  # id of the custody event that handed the tool over
    tool_id: int
    tool_number: str
    tool_name: str
    from_user_id: Optional[str] = None
    from_user_name: str
    timestamp: datetime
    location: str
    stored_at: str
    notes: Optional[str] = None
    has_issues: bool
    issue_count: int
    dismissible: bool
    reports: List[OpenIssue] = []
