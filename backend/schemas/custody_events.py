from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from enum import Enum


class StoredAt(str, Enum):
    ON_TRUCK = "on-truck"
    ON_SITE = "on-site"
    NOT_APPLICABLE = "n/a"


class EventReport(BaseModel):
    id: int
    checklist_item_id: int
    item_name: Optional[str] = None
    status: str
    comments: Optional[str] = None
    created_at: datetime


class CustodyEvent(BaseModel):
    id: int
    tool_id: int
    tool_number: Optional[str] = None
    tool_name: Optional[str] = None
    batch_id: Optional[int] = None
    from_user_id: Optional[str] = None
    to_user_id: Optional[str] = None
    from_user_name: Optional[str] = None
    to_user_name: Optional[str] = None
    location: str
    stored_at: str
    notes: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class CustodyEventWithReports(CustodyEvent):
    reports: List[EventReport] = []


class CustodyHistory(BaseModel):
    data: List[CustodyEventWithReports]
    total: int


class CustodyState(BaseModel):
    """Current owner/location of a tool as derived from the ledger."""
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    location: Optional[str] = None
    stored_at: Optional[str] = None
    last_event_id: Optional[int] = None
    last_transfer_at: Optional[datetime] = None
