from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from crud.audit_log import create_audit_log
from models.tool_groups import ToolGroup, ToolGroupMember
from models.tools import Tool
from schemas.audit_log import AuditLogCreate
from schemas.tool_groups import ToolGroupCreate, ToolGroupUpdate
from utils.errors import AuthorizationError, ValidationError
from utils.tenancy import Principal


def _require_admin(principal: Principal):
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can manage tool groups")


def _check_tools(db: Session, tenant_id: str, tool_ids: List[int]) -> List[int]:
    ids = list(dict.fromkeys(int(t) for t in tool_ids))
    if not ids:
        return ids
    found = {tid for (tid,) in db.query(Tool.id).filter(Tool.tenant_id == tenant_id, Tool.id.in_(ids)).all()}
    if len(found) != len(ids):
        raise AuthorizationError("One or more tools are not in the same company")
    return ids


def get_group(db: Session, tenant_id: str, group_id: int) -> Optional[ToolGroup]:
    return db.query(ToolGroup).filter(ToolGroup.id == group_id, ToolGroup.tenant_id == tenant_id).first()


def tool_ids_for_group(db: Session, tenant_id: str, group_id: int) -> Optional[List[int]]:
    """Member tool ids, or None when the group is not in the tenant."""
    if get_group(db, tenant_id, group_id) is None:
        return None
    rows = db.query(ToolGroupMember.tool_id).filter(
        ToolGroupMember.tenant_id == tenant_id,
        ToolGroupMember.group_id == group_id,
    ).order_by(ToolGroupMember.tool_id).all()
    return [tool_id for (tool_id,) in rows]


def group_to_dict(db: Session, group: ToolGroup) -> dict:
    tool_ids = tool_ids_for_group(db, group.tenant_id, group.id) or []
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "member_count": len(tool_ids),
        "tool_ids": tool_ids,
        "created_at": group.created_at,
    }


def list_groups(db: Session, tenant_id: str) -> List[dict]:
    counts = dict(
        db.query(ToolGroupMember.group_id, func.count(ToolGroupMember.id)).filter(
            ToolGroupMember.tenant_id == tenant_id
        ).group_by(ToolGroupMember.group_id).all()
    )
    groups = db.query(ToolGroup).filter(ToolGroup.tenant_id == tenant_id).order_by(ToolGroup.name).all()
    return [
        {
            "id": g.id,
            "name": g.name,
            "description": g.description,
            "member_count": counts.get(g.id, 0),
            "created_at": g.created_at,
        }
        for g in groups
    ]


def create_group(db: Session, principal: Principal, data: ToolGroupCreate) -> ToolGroup:
    _require_admin(principal)
    name = data.name.strip()
    if not name:
        raise ValidationError("Group name is required")
    existing = db.query(ToolGroup).filter(ToolGroup.tenant_id == principal.tenant_id, ToolGroup.name == name).first()
    if existing:
        raise ValidationError("Tool group with this name already exists")
    tool_ids = _check_tools(db, principal.tenant_id, data.tool_ids)

    group = ToolGroup(
        tenant_id=principal.tenant_id,
        name=name,
        description=data.description,
        created_by=principal.user_id,
        updated_by=principal.user_id,
    )
    db.add(group)
    db.flush()
    for tool_id in tool_ids:
        db.add(ToolGroupMember(tenant_id=principal.tenant_id, group_id=group.id, tool_id=tool_id))
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='tool_groups',
        record_id=group.id,
        changed_by=principal.user_id,
        action='INSERT',
        tenant_id=principal.tenant_id,
        new_values={"name": name, "tool_ids": tool_ids},
    ))
    db.commit()
    db.refresh(group)
    return group


def update_group(db: Session, principal: Principal, group_id: int, data: ToolGroupUpdate) -> Optional[ToolGroup]:
    _require_admin(principal)
    group = get_group(db, principal.tenant_id, group_id)
    if group is None:
        return None
    update_data = data.model_dump(exclude_unset=True)
    if "name" in update_data:
        name = (update_data["name"] or "").strip()
        if not name:
            raise ValidationError("Group name is required")
        update_data["name"] = name
    for key, value in update_data.items():
        setattr(group, key, value)
    group.updated_by = principal.user_id
    db.commit()
    db.refresh(group)
    return group


def add_members(db: Session, principal: Principal, group_id: int, tool_ids: List[int]) -> Optional[ToolGroup]:
    _require_admin(principal)
    group = get_group(db, principal.tenant_id, group_id)
    if group is None:
        return None
    ids = _check_tools(db, principal.tenant_id, tool_ids)
    existing = set(tool_ids_for_group(db, principal.tenant_id, group_id) or [])
    for tool_id in ids:
        if tool_id not in existing:
            db.add(ToolGroupMember(tenant_id=principal.tenant_id, group_id=group.id, tool_id=tool_id))
    db.commit()
    db.refresh(group)
    return group


def remove_members(db: Session, principal: Principal, group_id: int, tool_ids: List[int]) -> Optional[ToolGroup]:
    _require_admin(principal)
    group = get_group(db, principal.tenant_id, group_id)
    if group is None:
        return None
    db.query(ToolGroupMember).filter(
        ToolGroupMember.tenant_id == principal.tenant_id,
        ToolGroupMember.group_id == group_id,
        ToolGroupMember.tool_id.in_([int(t) for t in tool_ids]),
    ).delete(synchronize_session=False)
    db.commit()
    db.refresh(group)
    return group


def delete_group(db: Session, principal: Principal, group_id: int) -> bool:
    _require_admin(principal)
    group = get_group(db, principal.tenant_id, group_id)
    if group is None:
        return False
    db.delete(group)
    create_audit_log(db=db, log_entry=AuditLogCreate(
        table_name='tool_groups',
        record_id=group_id,
        changed_by=principal.user_id,
        action='DELETE',
        tenant_id=principal.tenant_id,
        old_values={"name": group.name},
    ))
    db.commit()
    return True
