from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class LocationAliasCreate(BaseModel):
    alias: str
    normalized_location: str


class LocationAlias(LocationAliasCreate):
    id: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
