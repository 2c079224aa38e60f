from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from models.checklist_items import ChecklistItem
from models.tools import Tool
from schemas.audit_log import AuditLogCreate
from schemas.checklist_items import ChecklistItemCreate, ChecklistItemUpdate
from utils import sqlalchemy_to_dict
from utils.errors import AuthorizationError, ValidationError
from utils.tenancy import Principal


def _require_admin(principal: Principal):
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can change checklists")


def _get_tool(db: Session, tenant_id: str, tool_id: int) -> Tool:
    tool = db.query(Tool).filter(Tool.id == tool_id, Tool.tenant_id == tenant_id).first()
    if tool is None:
        raise AuthorizationError("Tool not found or not in the same company")
    return tool


def get_item(db: Session, tenant_id: str, item_id: int) -> Optional[ChecklistItem]:
    return db.query(ChecklistItem).filter(ChecklistItem.id == item_id, ChecklistItem.tenant_id == tenant_id).first()


def items_for(db: Session, tenant_id: str, tool_id: int) -> List[ChecklistItem]:
    return db.query(ChecklistItem).filter(
        ChecklistItem.tenant_id == tenant_id,
        ChecklistItem.tool_id == tool_id,
    ).order_by(ChecklistItem.item_name, ChecklistItem.id).all()


def counts_for(db: Session, tenant_id: str, tool_ids: Iterable[int]) -> Dict[int, int]:
    """Number of checklist items per tool, for list badges. Tools without items map to 0."""
    ids = list({int(t) for t in tool_ids})
    if not ids:
        return {}
    rows = db.query(ChecklistItem.tool_id, func.count(ChecklistItem.id)).filter(
        ChecklistItem.tenant_id == tenant_id,
        ChecklistItem.tool_id.in_(ids),
    ).group_by(ChecklistItem.tool_id).all()
    counts = {tool_id: 0 for tool_id in ids}
    counts.update({tool_id: count for tool_id, count in rows})
    return counts


def item_ids_by_tool(db: Session, tenant_id: str, tool_ids: Iterable[int]) -> Dict[int, set]:
    ids = list({int(t) for t in tool_ids})
    result = {tool_id: set() for tool_id in ids}
    if not ids:
        return result
    rows = db.query(ChecklistItem.tool_id, ChecklistItem.id).filter(
        ChecklistItem.tenant_id == tenant_id,
        ChecklistItem.tool_id.in_(ids),
    ).all()
    for tool_id, item_id in rows:
        result[tool_id].add(item_id)
    return result


def add_item(db: Session, principal: Principal, tool_id: int, item: ChecklistItemCreate) -> ChecklistItem:
    _require_admin(principal)
    tool = _get_tool(db, principal.tenant_id, tool_id)
    db_item = ChecklistItem(
        tenant_id=principal.tenant_id,
        tool_id=tool.id,
        item_name=item.item_name,
        required=item.required,
        created_by=principal.user_id,
        updated_by=principal.user_id,
    )
    db.add(db_item)
    db.flush()
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='checklist_items',
        record_id=db_item.id,
        changed_by=principal.user_id,
        action='INSERT',
        tenant_id=principal.tenant_id,
        new_values=sqlalchemy_to_dict(db_item),
    ))
    db.commit()
    db.refresh(db_item)
    return db_item


def update_item(db: Session, principal: Principal, item_id: int, item: ChecklistItemUpdate) -> Optional[ChecklistItem]:
    _require_admin(principal)
    db_item = get_item(db, principal.tenant_id, item_id)
    if db_item is None:
        return None
    old_values = sqlalchemy_to_dict(db_item)
    update_data = item.model_dump(exclude_unset=True)
    if "item_name" in update_data:
        name = (update_data["item_name"] or "").strip()
        if not name:
            raise ValidationError("item_name must not be empty")
        update_data["item_name"] = name
    for key, value in update_data.items():
        setattr(db_item, key, value)
    db_item.updated_by = principal.user_id
    db.flush()
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='checklist_items',
        record_id=item_id,
        changed_by=principal.user_id,
        action='UPDATE',
        tenant_id=principal.tenant_id,
        old_values=old_values,
        new_values=sqlalchemy_to_dict(db_item),
    ))
    db.commit()
    db.refresh(db_item)
    return db_item


def delete_item(db: Session, principal: Principal, item_id: int) -> bool:
    """Delete a checklist item. Reports filed against it go with it."""
    _require_admin(principal)
    db_item = get_item(db, principal.tenant_id, item_id)
    if db_item is None:
        return False
    old_values = sqlalchemy_to_dict(db_item)
    db.delete(db_item)
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='checklist_items',
        record_id=item_id,
        changed_by=principal.user_id,
        action='DELETE',
        tenant_id=principal.tenant_id,
        old_values=old_values,
    ))
    db.commit()
    return True
