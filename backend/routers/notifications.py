from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crud.notifications import notifications_for
from database import get_db
from schemas.notifications import ToolNotification
from utils.tenancy import Principal, get_principal

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=List[ToolNotification])
def get_my_notifications(
    dismissed: List[int] = Query(default=[], description="Event ids the device has already acknowledged"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Tools most recently handed to the caller. Notices with open issues ignore ``dismissed``."""
    return notifications_for(db, principal.tenant_id, principal.user_id, dismissed_event_ids=dismissed, limit=limit)
