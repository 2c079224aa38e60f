from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from crud import location_aliases as crud_location_aliases
from database import get_db
from schemas.location_aliases import LocationAlias, LocationAliasCreate
from utils.tenancy import Principal, get_principal

router = APIRouter(prefix="/location-aliases", tags=["Location Aliases"])


@router.get("/", response_model=List[LocationAlias])
def read_location_aliases(db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return crud_location_aliases.get_aliases(db, principal.tenant_id)


@router.put("/", response_model=LocationAlias)
def upsert_location_alias(data: LocationAliasCreate, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    """Create an alias, or repoint an existing alias (matched case-insensitively)."""
    return crud_location_aliases.upsert_alias(db, principal, data)


@router.delete("/{alias_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location_alias(alias_id: int, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    if not crud_location_aliases.delete_alias(db, principal, alias_id):
        raise HTTPException(status_code=404, detail="Location alias not found")
