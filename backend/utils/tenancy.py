from typing import NamedTuple

from fastapi import Depends, HTTPException, status

from utils.auth_utils import TENANT_CLAIM, get_current_user, get_user_groups


class Principal(NamedTuple):
    """The authenticated caller, threaded explicitly through every ledger call."""
    user_id: str
    tenant_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def principal_from_claims(claims: dict) -> Principal:
    user_id = claims.get("sub")
    tenant_id = claims.get(TENANT_CLAIM)
    if not user_id or not tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has no subject or tenant")
    role = "admin" if "admin" in get_user_groups(claims) else "member"
    return Principal(user_id=str(user_id), tenant_id=str(tenant_id), role=role)


def get_principal(user: dict = Depends(get_current_user)) -> Principal:
    return principal_from_claims(user)


def get_tenant_id(principal: Principal = Depends(get_principal)) -> str:
    return principal.tenant_id
