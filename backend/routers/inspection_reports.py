from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from crud import inspection_reports as crud_inspection_reports
from database import get_db
from schemas.inspection_reports import InspectionReportPage
from utils.tenancy import Principal, get_principal

router = APIRouter(prefix="/inspection-reports", tags=["Inspection Reports"])


@router.get("/", response_model=InspectionReportPage)
def read_inspection_reports(
    tool_id: Optional[int] = None,
    user_id: Optional[str] = None,
    status: Optional[str] = Query(None, description="damaged or needs-replacement"),
    q: Optional[str] = Query(None, description="Matches tool, checklist item, status, comments and user names"),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """All inspection reports of the company, newest first. Admins only."""
    return crud_inspection_reports.list_reports(
        db, principal, tool_id=tool_id, user_id=user_id, status=status, search=q, offset=offset, limit=limit,
    )
