from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime


class ToolBase(BaseModel):
    number: str
    name: str
    description: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("number", "name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value


class ToolCreate(ToolBase):
    pass


class ToolUpdate(BaseModel):
    number: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None


class Tool(ToolBase):
    id: int
    current_owner: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ToolListEntry(BaseModel):
    """A tool with its ledger-derived custody state, for list views."""
    id: int
    number: str
    name: str
    description: Optional[str] = None
    photo_url: Optional[str] = None
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    location: Optional[str] = None
    stored_at: Optional[str] = None
    last_transfer_at: Optional[datetime] = None
    checklist_count: int = 0
    open_issue_count: int = 0
