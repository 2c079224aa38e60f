import pytest
from fastapi import HTTPException

from utils import display_user_name, tool_number_sort_key
from utils.tenancy import principal_from_claims


def test_tool_numbers_sort_numerically_before_other_numbers():
    numbers = ["10", "T-10", "2", "b", "T-2", "1", "A"]
    assert sorted(numbers, key=tool_number_sort_key) == ["1", "2", "10", "A", "b", "T-2", "T-10"]


def test_display_name_prefers_live_then_snapshot():
    assert display_user_name("Bob Smith", "Bob") == "Bob Smith"
    assert display_user_name(None, "Bob") == "Bob"
    assert display_user_name(None, None) == "Deleted user"


def test_principal_from_claims_reads_tenant_and_role():
    principal = principal_from_claims({"sub": "u1", "custom:tenant_id": "acme", "cognito:groups": ["admin", "ops"]})
    assert principal.tenant_id == "acme"
    assert principal.is_admin


def test_principal_accepts_comma_separated_groups():
    principal = principal_from_claims({"sub": "u1", "custom:tenant_id": "acme", "cognito:groups": "ops, admin"})
    assert principal.role == "admin"


def test_principal_without_tenant_is_rejected():
    with pytest.raises(HTTPException) as excinfo:
        principal_from_claims({"sub": "u1"})
    assert excinfo.value.status_code == 401
