import pytest

from crud import checklist_items as crud_checklist_items
from crud import inspection_reports as crud_inspection_reports
from crud import transfers as crud_transfers
from models.inspection_reports import InspectionReport
from schemas.inspection_reports import ChecklistMark
from schemas.transfers import TransferRequest
from utils.errors import ValidationError

TENANT = "acme"


def _item_id(tool, name):
    return next(i.id for i in tool.checklist_items if i.item_name == name)


def _transfer(db, principal, tool_ids, reports=(), **fields):
    payload = {"location": "Shop", "stored_at": "n/a", "acknowledge_issues": True}
    payload.update(fields)
    return crud_transfers.request_transfer(
        db, principal, TransferRequest(tool_ids=tool_ids, checklist_reports=list(reports), **payload)
    )


def test_report_without_parent_event_is_rejected(db, users, make_tool):
    tool = make_tool("1", checklist=["Blade"])
    mark = ChecklistMark(checklist_item_id=_item_id(tool, "Blade"), status="damaged")

    with pytest.raises(ValidationError):
        crud_inspection_reports.file_reports(db, TENANT, 99999, [mark])

    assert db.query(InspectionReport).count() == 0


def test_report_against_event_of_other_tenant_is_rejected(db, users, principals, make_tool):
    tool = make_tool("1", tenant_id="globex", checklist=["Blade"])
    outcome = _transfer(db, principals["zed"], [tool.id], to_user_id="zed")
    mark = ChecklistMark(checklist_item_id=_item_id(tool, "Blade"), status="damaged")

    with pytest.raises(ValidationError):
        crud_inspection_reports.file_reports(db, TENANT, outcome["transaction_ids"][0], [mark])


def test_file_reports_rejects_item_of_another_tool(db, users, principals, make_tool):
    a = make_tool("1", checklist=["Blade"])
    b = make_tool("2", checklist=["Cord"])
    outcome = _transfer(db, principals["alice"], [a.id], to_user_id="bob")

    with pytest.raises(ValidationError):
        crud_inspection_reports.file_reports(
            db, TENANT, outcome["transaction_ids"][0],
            [ChecklistMark(checklist_item_id=_item_id(b, "Cord"), status="damaged")],
        )


def test_issues_stay_open_across_later_transfers(db, users, principals, make_tool):
    tool = make_tool("8", checklist=["Blade", "Guard"])
    _transfer(db, principals["alice"], [tool.id], to_user_id="bob", reports=[
        {"tool_id": tool.id, "checklist_item_id": _item_id(tool, "Blade"), "status": "needs-replacement"},
    ])
    _transfer(db, principals["bob"], [tool.id], to_user_id="carol")
    _transfer(db, principals["carol"], [tool.id], to_user_id="alice", reports=[
        {"tool_id": tool.id, "checklist_item_id": _item_id(tool, "Guard"), "status": "damaged", "comments": " bent "},
    ])

    issues = crud_inspection_reports.open_issues_for(db, TENANT, tool.id)

    assert {i["item_name"] for i in issues} == {"Blade", "Guard"}
    guard = next(i for i in issues if i["item_name"] == "Guard")
    assert guard["comments"] == "bent"
    assert crud_inspection_reports.issue_counts_for(db, TENANT, [tool.id]) == {tool.id: 2}


def test_tool_without_reports_has_no_issues(db, users, principals, make_tool):
    tool = make_tool("3", checklist=["Blade"])
    _transfer(db, principals["alice"], [tool.id], to_user_id="bob")

    assert crud_inspection_reports.open_issues_for(db, TENANT, tool.id) == []
    assert crud_inspection_reports.issue_counts_for(db, TENANT, [tool.id]) == {tool.id: 0}


def test_deleting_checklist_item_removes_its_reports(db, users, principals, make_tool):
    tool = make_tool("4", checklist=["Blade"])
    item_id = _item_id(tool, "Blade")
    _transfer(db, principals["alice"], [tool.id], to_user_id="bob", reports=[
        {"tool_id": tool.id, "checklist_item_id": item_id, "status": "damaged"},
    ])

    assert crud_checklist_items.delete_item(db, principals["alice"], item_id) is True

    assert db.query(InspectionReport).count() == 0
    assert crud_inspection_reports.open_issues_for(db, TENANT, tool.id) == []


def test_reports_are_grouped_by_event(db, users, principals, make_tool):
    tool = make_tool("5", checklist=["Blade", "Cord"])
    outcome = _transfer(db, principals["alice"], [tool.id], to_user_id="bob", reports=[
        {"tool_id": tool.id, "checklist_item_id": _item_id(tool, "Blade"), "status": "damaged"},
        {"tool_id": tool.id, "checklist_item_id": _item_id(tool, "Cord"), "status": "needs-replacement"},
    ])
    event_id = outcome["transaction_ids"][0]

    grouped = crud_inspection_reports.reports_by_event(db, TENANT, [event_id])

    assert [r.status for r in grouped[event_id]] == ["damaged", "needs-replacement"]
