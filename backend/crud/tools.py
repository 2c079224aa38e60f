from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from crud import checklist_items as crud_checklist_items
from crud import custody_events as crud_custody_events
from crud import inspection_reports as crud_inspection_reports
from crud.audit_log import create_audit_log
from models.tools import Tool
from schemas.audit_log import AuditLogCreate
from schemas.tools import ToolCreate, ToolUpdate
from utils import sqlalchemy_to_dict, tool_number_sort_key
from utils.errors import AuthorizationError, ValidationError
from utils.tenancy import Principal


def _require_admin(principal: Principal):
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can manage tools")


def get_tool(db: Session, tenant_id: str, tool_id: int) -> Optional[Tool]:
    return db.query(Tool).filter(Tool.id == tool_id, Tool.tenant_id == tenant_id).first()


def _number_taken(db: Session, tenant_id: str, number: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Tool).filter(Tool.tenant_id == tenant_id, Tool.number == number)
    if exclude_id is not None:
        query = query.filter(Tool.id != exclude_id)
    return query.first() is not None


def sort_tools(tools: List) -> List:
    """Order by tool number: numeric numbers ascending first, then the rest."""
    return sorted(tools, key=lambda t: (tool_number_sort_key(t.number), t.id))


def with_custody_state(db: Session, tenant_id: str, tools: List[Tool]) -> List[dict]:
    """Attach the ledger-derived owner/location plus checklist and issue counts."""
    ids = [t.id for t in tools]
    latest = crud_custody_events.latest_batch(db, tenant_id, ids)
    checklist_counts = crud_checklist_items.counts_for(db, tenant_id, ids)
    issue_counts = crud_inspection_reports.issue_counts_for(db, tenant_id, ids)

    entries = []
    for tool in tools:
        state = crud_custody_events.current_state(latest.get(tool.id))
        entries.append({
            "id": tool.id,
            "number": tool.number,
            "name": tool.name,
            "description": tool.description,
            "photo_url": tool.photo_url,
            "owner_id": state.owner_id,
            "owner_name": state.owner_name,
            "location": state.location,
            "stored_at": state.stored_at,
            "last_transfer_at": state.last_transfer_at,
            "checklist_count": checklist_counts.get(tool.id, 0),
            "open_issue_count": issue_counts.get(tool.id, 0),
        })
    return entries


def list_tools(db: Session, tenant_id: str, owner_id: Optional[str] = None, search: Optional[str] = None,
               skip: int = 0, limit: Optional[int] = None) -> List[dict]:
    query = db.query(Tool).filter(Tool.tenant_id == tenant_id)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            Tool.number.ilike(pattern),
            Tool.name.ilike(pattern),
            Tool.description.ilike(pattern),
        ))
    entries = with_custody_state(db, tenant_id, sort_tools(query.all()))
    if owner_id is not None:
        entries = [e for e in entries if e["owner_id"] == owner_id]
    if limit is None:
        return entries[skip:]
    return entries[skip:skip + limit]


def search_tools(db: Session, tenant_id: str, term: str, skip: int = 0, limit: int = 50) -> List[dict]:
    term = (term or "").strip()
    if not term:
        raise ValidationError("Query too short")
    return list_tools(db, tenant_id, search=term, skip=skip, limit=min(limit, 100))


def create_tool(db: Session, principal: Principal, tool: ToolCreate) -> Tool:
    _require_admin(principal)
    if _number_taken(db, principal.tenant_id, tool.number):
        raise ValidationError("Tool with this number already exists")
    db_tool = Tool(**tool.model_dump(), tenant_id=principal.tenant_id, created_by=principal.user_id, updated_by=principal.user_id)
    db.add(db_tool)
    db.flush()
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='tools',
        record_id=db_tool.id,
        changed_by=principal.user_id,
        action='INSERT',
        tenant_id=principal.tenant_id,
        new_values=sqlalchemy_to_dict(db_tool),
    ))
    db.commit()
    db.refresh(db_tool)
    return db_tool


def update_tool(db: Session, principal: Principal, tool_id: int, tool: ToolUpdate) -> Optional[Tool]:
    """Edit catalog fields. Custody is never changed here, only through a transfer."""
    _require_admin(principal)
    db_tool = get_tool(db, principal.tenant_id, tool_id)
    if db_tool is None:
        return None
    old_values = sqlalchemy_to_dict(db_tool)
    update_data = tool.model_dump(exclude_unset=True)
    for field in ("number", "name"):
        if field in update_data:
            value = (update_data[field] or "").strip()
            if not value:
                raise ValidationError(f"{field} must not be empty")
            update_data[field] = value
    if "number" in update_data and _number_taken(db, principal.tenant_id, update_data["number"], exclude_id=tool_id):
        raise ValidationError("Tool with this number already exists")
    for key, value in update_data.items():
        setattr(db_tool, key, value)
    db_tool.updated_by = principal.user_id
    db.flush()
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='tools',
        record_id=tool_id,
        changed_by=principal.user_id,
        action='UPDATE',
        tenant_id=principal.tenant_id,
        old_values=old_values,
        new_values=sqlalchemy_to_dict(db_tool),
    ))
    db.commit()
    db.refresh(db_tool)
    return db_tool


def delete_tool(db: Session, principal: Principal, tool_id: int) -> bool:
    """Delete a tool with its ledger, checklist and reports."""
    _require_admin(principal)
    db_tool = get_tool(db, principal.tenant_id, tool_id)
    if db_tool is None:
        return False
    old_values = sqlalchemy_to_dict(db_tool)
    db.delete(db_tool)
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='tools',
        record_id=tool_id,
        changed_by=principal.user_id,
        action='DELETE',
        tenant_id=principal.tenant_id,
        old_values=old_values,
    ))
    db.commit()
    return True
