from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum

from schemas.inspection_reports import OpenIssue


class TransferState(str, Enum):
    """Lifecycle of one transfer attempt.

    The server only ever answers ``warned`` or ``committed``. ``draft`` (form
    being filled), ``confirmed`` (warning acknowledged, sent again with
    ``acknowledge_issues``) and ``abandoned`` (cancelled at ``warned``) live on
    the client and are never stored.
    """
    DRAFT = "draft"
    WARNED = "warned"
    CONFIRMED = "confirmed"
    COMMITTED = "committed"
    ABANDONED = "abandoned"


class ChecklistReportInput(BaseModel):
    tool_id: int
    checklist_item_id: int
    status: str
    comments: Optional[str] = None


class TransferRequestBase(BaseModel):
    to_user_id: Optional[str] = None
    claim_for_self: bool = False
    location: str = ""
    # Plain string so an unknown value surfaces as a ValidationError from the orchestrator
    stored_at: str = ""
    notes: Optional[str] = None
    checklist_reports: List[ChecklistReportInput] = Field(default_factory=list)
    acknowledge_issues: bool = False


class TransferRequest(TransferRequestBase):
    tool_ids: List[int] = Field(default_factory=list)


class TransferOutcome(BaseModel):
    success: bool
    state: TransferState
    batch_id: Optional[int] = None
    transaction_ids: List[int] = Field(default_factory=list)
    requires_acknowledgement: bool = False
    open_issues: List[OpenIssue] = Field(default_factory=list)
