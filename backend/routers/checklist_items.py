from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from crud import checklist_items as crud_checklist_items
from crud import tools as crud_tools
from database import get_db
from schemas.checklist_items import ChecklistItem, ChecklistItemCreate, ChecklistItemUpdate
from utils.tenancy import Principal, get_principal

router = APIRouter(tags=["Checklist Items"])
logger = logging.getLogger("checklist_items")


@router.get("/tools/{tool_id}/checklist", response_model=List[ChecklistItem])
def read_checklist(
    tool_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    if crud_tools.get_tool(db, principal.tenant_id, tool_id) is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    return crud_checklist_items.items_for(db, principal.tenant_id, tool_id)


@router.post("/tools/{tool_id}/checklist", response_model=ChecklistItem, status_code=status.HTTP_201_CREATED)
def add_checklist_item(
    tool_id: int,
    item: ChecklistItemCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    db_item = crud_checklist_items.add_item(db, principal, tool_id, item)
    logger.info(f"Checklist item '{db_item.item_name}' added to tool {tool_id} by user {principal.user_id} for tenant {principal.tenant_id}")
    return db_item


@router.patch("/checklist-items/{item_id}", response_model=ChecklistItem)
def update_checklist_item(
    item_id: int,
    item: ChecklistItemUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    db_item = crud_checklist_items.update_item(db, principal, item_id, item)
    if db_item is None:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    return db_item


@router.delete("/checklist-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_checklist_item(
    item_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    if not crud_checklist_items.delete_item(db, principal, item_id):
        raise HTTPException(status_code=404, detail="Checklist item not found")
    logger.info(f"Checklist item {item_id} deleted by user {principal.user_id} for tenant {principal.tenant_id}")
