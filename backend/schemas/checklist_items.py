from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime


class ChecklistItemBase(BaseModel):
    item_name: str
    required: bool = False

    @field_validator("item_name")
    @classmethod
    def item_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("item_name must not be empty")
        return value


class ChecklistItemCreate(ChecklistItemBase):
    pass


class ChecklistItemUpdate(BaseModel):
    item_name: Optional[str] = None
    required: Optional[bool] = None


class ChecklistItem(ChecklistItemBase):
    id: int
    tool_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
