from typing import List, Optional

from sqlalchemy.orm import Session

from models.location_aliases import LocationAlias
from schemas.location_aliases import LocationAliasCreate
from utils.errors import AuthorizationError, ValidationError
from utils.tenancy import Principal


def _alias_key(value: str) -> str:
    return " ".join((value or "").split()).lower()


def normalize_location(db: Session, tenant_id: str, raw_location: str) -> str:
    """Map a typed location onto the tenant's standard spelling, if an alias exists."""
    location = " ".join((raw_location or "").split())
    if not location:
        return location
    alias = db.query(LocationAlias).filter(
        LocationAlias.tenant_id == tenant_id,
        LocationAlias.alias_key == _alias_key(location),
    ).first()
    return alias.normalized_location if alias else location


def get_aliases(db: Session, tenant_id: str) -> List[LocationAlias]:
    return db.query(LocationAlias).filter(LocationAlias.tenant_id == tenant_id).order_by(LocationAlias.alias).all()


def upsert_alias(db: Session, principal: Principal, data: LocationAliasCreate) -> LocationAlias:
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can manage location aliases")
    alias = " ".join(data.alias.split())
    normalized = " ".join(data.normalized_location.split())
    if not alias or not normalized:
        raise ValidationError("alias and normalized_location are required")

    db_alias = db.query(LocationAlias).filter(
        LocationAlias.tenant_id == principal.tenant_id,
        LocationAlias.alias_key == _alias_key(alias),
    ).first()
    if db_alias:
        db_alias.alias = alias
        db_alias.normalized_location = normalized
        db_alias.updated_by = principal.user_id
    else:
        db_alias = LocationAlias(
            tenant_id=principal.tenant_id,
            alias=alias,
            alias_key=_alias_key(alias),
            normalized_location=normalized,
            created_by=principal.user_id,
            updated_by=principal.user_id,
        )
        db.add(db_alias)
    db.commit()
    db.refresh(db_alias)
    return db_alias


def delete_alias(db: Session, principal: Principal, alias_id: int) -> Optional[bool]:
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can manage location aliases")
    db_alias = db.query(LocationAlias).filter(
        LocationAlias.id == alias_id,
        LocationAlias.tenant_id == principal.tenant_id,
    ).first()
    if db_alias is None:
        return False
    db.delete(db_alias)
    db.commit()
    return True
