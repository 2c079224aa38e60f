from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from crud import users as crud_users
from database import get_db
from schemas.users import User
from utils.tenancy import Principal, get_principal

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/", response_model=List[User])
def read_users(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    """Active users of the caller's company, for choosing a transfer recipient."""
    return crud_users.list_users(db, principal.tenant_id)


@router.get("/me", response_model=User)
def read_current_user(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    db_user = crud_users.get_user(db, principal.tenant_id, principal.user_id)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return db_user
