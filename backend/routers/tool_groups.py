from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from crud import tool_groups as crud_tool_groups
from database import get_db
from schemas.tool_groups import ToolGroup, ToolGroupCreate, ToolGroupMembers, ToolGroupUpdate
from utils.tenancy import Principal, get_principal

router = APIRouter(prefix="/tool-groups", tags=["Tool Groups"])


def _group_or_404(db: Session, group):
    if group is None:
        raise HTTPException(status_code=404, detail="Tool group not found")
    return crud_tool_groups.group_to_dict(db, group)


@router.get("/", response_model=List[ToolGroup])
def read_tool_groups(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return crud_tool_groups.list_groups(db, principal.tenant_id)


@router.get("/{group_id}", response_model=ToolGroup)
def read_tool_group(group_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _group_or_404(db, crud_tool_groups.get_group(db, principal.tenant_id, group_id))


@router.post("/", response_model=ToolGroup, status_code=status.HTTP_201_CREATED)
def create_tool_group(data: ToolGroupCreate, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return crud_tool_groups.group_to_dict(db, crud_tool_groups.create_group(db, principal, data))


@router.patch("/{group_id}", response_model=ToolGroup)
def update_tool_group(group_id: int, data: ToolGroupUpdate, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _group_or_404(db, crud_tool_groups.update_group(db, principal, group_id, data))


@router.post("/{group_id}/members", response_model=ToolGroup)
def add_tool_group_members(group_id: int, data: ToolGroupMembers, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _group_or_404(db, crud_tool_groups.add_members(db, principal, group_id, data.tool_ids))


@router.delete("/{group_id}/members", response_model=ToolGroup)
def remove_tool_group_members(group_id: int, data: ToolGroupMembers, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _group_or_404(db, crud_tool_groups.remove_members(db, principal, group_id, data.tool_ids))


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tool_group(group_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if not crud_tool_groups.delete_group(db, principal, group_id):
        raise HTTPException(status_code=404, detail="Tool group not found")
