from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from crud import custody_events as crud_custody_events
from crud import inspection_reports as crud_inspection_reports
from crud import tools as crud_tools
from crud.audit_log import get_audit_log
from database import get_db
from schemas.audit_log import AuditLog
from schemas.custody_events import CustodyHistory
from schemas.inspection_reports import OpenIssue
from schemas.tools import Tool, ToolCreate, ToolListEntry, ToolUpdate
from utils.auth_utils import require_group
from utils.tenancy import Principal, get_principal, get_tenant_id

router = APIRouter(prefix="/tools", tags=["Tools"])
logger = logging.getLogger("tools")


def _get_tool_or_404(db: Session, tenant_id: str, tool_id: int):
    db_tool = crud_tools.get_tool(db, tenant_id, tool_id)
    if db_tool is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    return db_tool


@router.get("/", response_model=List[ToolListEntry])
def read_tools(
    skip: int = 0,
    limit: int = 100,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """All tools of the tenant with their current custody, ordered by tool number."""
    return crud_tools.list_tools(db, principal.tenant_id, search=q, skip=skip, limit=limit)


@router.get("/mine", response_model=List[ToolListEntry])
def read_my_tools(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return crud_tools.list_tools(db, principal.tenant_id, owner_id=principal.user_id)


@router.get("/search", response_model=List[ToolListEntry])
def search_tools(
    q: str = Query(..., description="Matches tool number, name or description"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return crud_tools.search_tools(db, principal.tenant_id, q, skip=skip, limit=limit)


@router.post("/", response_model=Tool, status_code=status.HTTP_201_CREATED)
def create_tool(
    tool: ToolCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    new_tool = crud_tools.create_tool(db, principal, tool)
    logger.info(f"Tool '{new_tool.number}' created by user {principal.user_id} for tenant {principal.tenant_id}")
    return new_tool


@router.get("/{tool_id}", response_model=ToolListEntry)
def read_tool(
    tool_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    db_tool = _get_tool_or_404(db, principal.tenant_id, tool_id)
    return crud_tools.with_custody_state(db, principal.tenant_id, [db_tool])[0]


@router.patch("/{tool_id}", response_model=Tool)
def update_tool(
    tool_id: int,
    tool: ToolUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    updated = crud_tools.update_tool(db, principal, tool_id, tool)
    if updated is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    logger.info(f"Tool '{updated.number}' (ID: {tool_id}) updated by user {principal.user_id} for tenant {principal.tenant_id}")
    return updated


@router.delete("/{tool_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tool(
    tool_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Delete a tool together with its custody history, checklist and reports."""
    if not crud_tools.delete_tool(db, principal, tool_id):
        raise HTTPException(status_code=404, detail="Tool not found")
    logger.info(f"Tool ID {tool_id} deleted by user {principal.user_id} for tenant {principal.tenant_id}")


@router.get("/{tool_id}/history", response_model=CustodyHistory)
def read_tool_history(
    tool_id: int,
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    _get_tool_or_404(db, principal.tenant_id, tool_id)
    history = crud_custody_events.history_for(db, principal.tenant_id, tool_id, offset=offset, limit=limit)
    return {
        "data": [crud_custody_events.event_to_dict(e) for e in history["data"]],
        "total": history["total"],
    }


@router.get("/{tool_id}/open-issues", response_model=List[OpenIssue])
def read_tool_open_issues(
    tool_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    _get_tool_or_404(db, principal.tenant_id, tool_id)
    return crud_inspection_reports.open_issues_for(db, principal.tenant_id, tool_id)


@router.get("/{tool_id}/audit-log", response_model=List[AuditLog])
def read_tool_audit_log(
    tool_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_group("admin")),
    tenant_id: str = Depends(get_tenant_id),
):
    """Catalog edits of a tool, newest first. Admin group only."""
    _get_tool_or_404(db, tenant_id, tool_id)
    return get_audit_log(db, tenant_id, "tools", tool_id)
