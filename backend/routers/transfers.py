# Standard library imports
import logging
from datetime import datetime
from typing import List, Optional

# Third-party imports
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

# Local application imports
from crud import custody_events as crud_custody_events
from crud import transfers as crud_transfers
from database import get_db
from schemas.custody_events import CustodyHistory
from schemas.inspection_reports import OpenIssue
from schemas.transfers import TransferOutcome, TransferRequest, TransferRequestBase, TransferState
from utils.errors import OpenIssuesWarning
from utils.tenancy import Principal, get_principal

router = APIRouter(
    prefix="/transfers",
    tags=["Transfers"],
)
logger = logging.getLogger("transfers")


def _warned(warning: OpenIssuesWarning) -> TransferOutcome:
    return TransferOutcome(
        success=False,
        state=TransferState.WARNED,
        requires_acknowledgement=True,
        open_issues=warning.issues,
    )


@router.post("/batch", response_model=TransferOutcome)
def create_transfer_batch(
    data: TransferRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """
    Transfer one or many tools to a recipient as a single all-or-nothing batch.

    When any tool has open inspection reports and ``acknowledge_issues`` is false,
    nothing is written and the issues are returned for review.
    """
    try:
        return crud_transfers.request_transfer(db, principal, data)
    except OpenIssuesWarning as warning:
        return _warned(warning)


@router.post("/tools/{tool_id}", response_model=TransferOutcome)
def create_single_transfer(
    tool_id: int,
    data: TransferRequestBase,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    try:
        return crud_transfers.transfer_single_tool(db, principal, tool_id, data)
    except OpenIssuesWarning as warning:
        return _warned(warning)


@router.post("/groups/{group_id}", response_model=TransferOutcome)
def create_group_transfer(
    group_id: int,
    data: TransferRequestBase,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Transfer every tool of a tool group as one batch."""
    try:
        return crud_transfers.transfer_group(db, principal, group_id, data)
    except OpenIssuesWarning as warning:
        return _warned(warning)


@router.get("/open-issues", response_model=List[OpenIssue])
def get_open_issues_for_selection(
    tool_ids: List[int] = Query(...),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return crud_transfers.preview_open_issues(db, principal, tool_ids)


@router.get("/", response_model=CustodyHistory)
def read_transfers(
    tool_id: Optional[int] = None,
    user_id: Optional[str] = None,
    stored_at: Optional[str] = None,
    q: Optional[str] = Query(None, description="Matches tool, user names, location, storage and notes"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """All transfers of the company, newest first. Admins only."""
    page = crud_custody_events.list_events(
        db, principal, tool_id=tool_id, user_id=user_id, stored_at=stored_at, search=q,
        start=start_date, end=end_date, offset=offset, limit=limit,
    )
    return {
        "data": [crud_custody_events.event_to_dict(e) for e in page["data"]],
        "total": page["total"],
    }
