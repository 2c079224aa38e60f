from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ToolGroupBase(BaseModel):
    name: str
    description: Optional[str] = None


class ToolGroupCreate(ToolGroupBase):
    tool_ids: List[int] = []


class ToolGroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ToolGroupMembers(BaseModel):
    tool_ids: List[int]


class ToolGroup(ToolGroupBase):
    id: int
    member_count: int = 0
    tool_ids: List[int] = []
    created_at: Optional[datetime] = None
