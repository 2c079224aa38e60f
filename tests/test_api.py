from models.audit_log import AuditLog
from models.custody_events import CustodyEvent
from models.inspection_reports import InspectionReport
from models.transfer_batches import TransferBatch


def _create_tool(client, number, name=None, checklist=()):
    response = client.post("/tools/", json={"number": number, "name": name or f"Tool {number}"})
    assert response.status_code == 201, response.text
    tool = response.json()
    for item_name in checklist:
        r = client.post(f"/tools/{tool['id']}/checklist", json={"item_name": item_name})
        assert r.status_code == 201, r.text
    return tool


def _batch(client, tool_ids, **fields):
    payload = {"tool_ids": tool_ids, "location": "Truck 7", "stored_at": "on-truck"}
    payload.update(fields)
    return client.post("/transfers/batch", json=payload)


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200


def test_tools_are_listed_in_numeric_order(client, users):
    for number in ("2", "10", "1", "T-3"):
        _create_tool(client, number)

    response = client.get("/tools/")

    assert response.status_code == 200
    assert [t["number"] for t in response.json()] == ["1", "2", "10", "T-3"]


def test_tool_list_shows_custody_and_counts(client, users):
    tool = _create_tool(client, "5", "Core drill", checklist=["Bit", "Water feed"])
    _batch(client, [tool["id"]], to_user_id="bob")

    entry = client.get(f"/tools/{tool['id']}").json()

    assert entry["owner_id"] == "bob"
    assert entry["owner_name"] == "Bob Tech"
    assert entry["location"] == "Truck 7"
    assert entry["stored_at"] == "on-truck"
    assert entry["checklist_count"] == 2
    assert entry["open_issue_count"] == 0


def test_unassigned_tool_has_empty_custody(client, users):
    tool = _create_tool(client, "6")

    entry = client.get(f"/tools/{tool['id']}").json()

    assert entry["owner_id"] is None
    assert entry["location"] is None


def test_my_tools_and_search(client, users):
    drill = _create_tool(client, "1", "Hammer drill")
    _create_tool(client, "2", "Ladder")
    _batch(client, [drill["id"]], to_user_id="bob")

    client.login("bob")
    mine = client.get("/tools/mine").json()
    found = client.get("/tools/search", params={"q": "drill"}).json()

    assert [t["id"] for t in mine] == [drill["id"]]
    assert [t["number"] for t in found] == ["1"]


def test_only_admins_change_the_catalog(client, users):
    client.login("bob")
    response = client.post("/tools/", json={"number": "1", "name": "Saw"})

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Only tenant admins can manage tools",
        "retryable": False,
    }


def test_duplicate_tool_number_is_rejected(client, users):
    _create_tool(client, "1")
    response = client.post("/tools/", json={"number": "1", "name": "Other"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_update_tool_writes_audit_log(client, users, db):
    tool = _create_tool(client, "1", "Saw")

    response = client.patch(f"/tools/{tool['id']}", json={"name": "Circular saw"})

    assert response.status_code == 200
    assert response.json()["name"] == "Circular saw"
    actions = [row.action for row in db.query(AuditLog).filter(AuditLog.table_name == "tools").order_by(AuditLog.id)]
    assert actions == ["INSERT", "UPDATE"]


def test_delete_tool_removes_history_and_reports(client, users, db):
    tool = _create_tool(client, "1", checklist=["Blade"])
    item_id = client.get(f"/tools/{tool['id']}/checklist").json()[0]["id"]
    _batch(client, [tool["id"]], to_user_id="bob", checklist_reports=[
        {"tool_id": tool["id"], "checklist_item_id": item_id, "status": "damaged"},
    ])

    response = client.delete(f"/tools/{tool['id']}")

    assert response.status_code == 204
    assert client.get(f"/tools/{tool['id']}").status_code == 404
    assert db.query(CustodyEvent).count() == 0
    assert db.query(InspectionReport).count() == 0


def test_history_is_newest_first_with_reports(client, users):
    tool = _create_tool(client, "1", checklist=["Blade"])
    item_id = client.get(f"/tools/{tool['id']}/checklist").json()[0]["id"]
    _batch(client, [tool["id"]], to_user_id="bob", location="Truck 1")
    _batch(client, [tool["id"]], to_user_id="carol", location="Job 9", stored_at="on-site", checklist_reports=[
        {"tool_id": tool["id"], "checklist_item_id": item_id, "status": "needs-replacement", "comments": "dull"},
    ], acknowledge_issues=True)

    history = client.get(f"/tools/{tool['id']}/history").json()

    assert history["total"] == 2
    assert [e["location"] for e in history["data"]] == ["Job 9", "Truck 1"]
    latest = history["data"][0]
    assert latest["from_user_name"] == "Bob Tech"
    assert latest["reports"][0]["item_name"] == "Blade"
    assert latest["reports"][0]["comments"] == "dull"


def test_checklist_is_sorted_and_admin_only(client, users):
    tool = _create_tool(client, "1", checklist=["Trigger", "Blade"])

    names = [i["item_name"] for i in client.get(f"/tools/{tool['id']}/checklist").json()]
    assert names == ["Blade", "Trigger"]

    client.login("bob")
    response = client.post(f"/tools/{tool['id']}/checklist", json={"item_name": "Cord"})
    assert response.status_code == 403


def test_batch_transfer_over_http(client, users):
    a, b = _create_tool(client, "1"), _create_tool(client, "2")

    response = _batch(client, [a["id"], b["id"]], to_user_id="carol")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["state"] == "committed"
    assert len(body["transaction_ids"]) == 2


def test_warning_then_acknowledged_transfer_over_http(client, users, db):
    tool = _create_tool(client, "1", checklist=["Guard"])
    item_id = client.get(f"/tools/{tool['id']}/checklist").json()[0]["id"]
    _batch(client, [tool["id"]], to_user_id="bob", checklist_reports=[
        {"tool_id": tool["id"], "checklist_item_id": item_id, "status": "damaged"},
    ])
    events_before = db.query(CustodyEvent).count()

    client.login("bob")
    warned = _batch(client, [tool["id"]], to_user_id="carol")

    assert warned.status_code == 200
    body = warned.json()
    assert body["success"] is False
    assert body["state"] == "warned"
    assert body["requires_acknowledgement"] is True
    assert body["open_issues"][0]["item_name"] == "Guard"
    assert db.query(CustodyEvent).count() == events_before

    confirmed = _batch(client, [tool["id"]], to_user_id="carol", acknowledge_issues=True)
    assert confirmed.json()["state"] == "committed"


def test_preview_open_issues(client, users):
    tool = _create_tool(client, "1", checklist=["Guard"])
    item_id = client.get(f"/tools/{tool['id']}/checklist").json()[0]["id"]
    _batch(client, [tool["id"]], to_user_id="bob", checklist_reports=[
        {"tool_id": tool["id"], "checklist_item_id": item_id, "status": "damaged"},
    ])

    issues = client.get("/transfers/open-issues", params={"tool_ids": [tool["id"]]}).json()
    assert [i["checklist_item_id"] for i in issues] == [item_id]
    assert client.get(f"/tools/{tool['id']}/open-issues").json() == issues


def test_cross_tenant_transfer_is_forbidden(client, users, db):
    tool = _create_tool(client, "1")

    client.login("zed")
    response = _batch(client, [tool["id"]], to_user_id="zed")

    assert response.status_code == 403
    assert response.json()["success"] is False
    assert db.query(CustodyEvent).count() == 0
    assert db.query(TransferBatch).count() == 0


def test_cross_tenant_tool_is_not_visible(client, users):
    tool = _create_tool(client, "1")

    client.login("zed")
    assert client.get(f"/tools/{tool['id']}").status_code == 404
    assert client.get("/tools/").json() == []


def test_validation_error_over_http(client, users):
    tool = _create_tool(client, "1")

    response = _batch(client, [tool["id"]], to_user_id="bob", stored_at="garage")

    assert response.status_code == 400
    assert response.json()["retryable"] is False


def test_single_tool_transfer_endpoint(client, users):
    tool = _create_tool(client, "1")

    response = client.post(f"/transfers/tools/{tool['id']}", json={"claim_for_self": True, "location": "Shop", "stored_at": "n/a"})

    assert response.status_code == 200
    assert client.get(f"/tools/{tool['id']}").json()["owner_id"] == "alice"


def test_group_transfer_endpoint(client, users):
    a, b, c = _create_tool(client, "1"), _create_tool(client, "2"), _create_tool(client, "3")
    group = client.post("/tool-groups/", json={"name": "Van kit", "tool_ids": [a["id"], b["id"]]})
    assert group.status_code == 201
    group_id = group.json()["id"]
    assert group.json()["member_count"] == 2

    response = client.post(f"/transfers/groups/{group_id}", json={"to_user_id": "bob", "location": "Van 3", "stored_at": "on-truck"})

    assert response.status_code == 200
    assert len(response.json()["transaction_ids"]) == 2
    owners = {t["id"]: t["owner_id"] for t in client.get("/tools/").json()}
    assert owners == {a["id"]: "bob", b["id"]: "bob", c["id"]: None}


def test_group_membership_changes(client, users):
    a, b = _create_tool(client, "1"), _create_tool(client, "2")
    group_id = client.post("/tool-groups/", json={"name": "Kit"}).json()["id"]

    added = client.post(f"/tool-groups/{group_id}/members", json={"tool_ids": [a["id"], b["id"]]})
    assert added.json()["tool_ids"] == sorted([a["id"], b["id"]])

    removed = client.request("DELETE", f"/tool-groups/{group_id}/members", json={"tool_ids": [a["id"]]})
    assert removed.json()["tool_ids"] == [b["id"]]

    assert client.delete(f"/tool-groups/{group_id}").status_code == 204
    assert client.get(f"/tool-groups/{group_id}").status_code == 404


def test_location_alias_endpoints(client, users):
    created = client.put("/location-aliases/", json={"alias": "yard", "normalized_location": "Main Yard"})
    assert created.status_code == 200
    alias_id = created.json()["id"]

    tool = _create_tool(client, "1")
    _batch(client, [tool["id"]], to_user_id="bob", location="YARD")
    assert client.get(f"/tools/{tool['id']}").json()["location"] == "Main Yard"

    assert client.delete(f"/location-aliases/{alias_id}").status_code == 204
    assert client.get("/location-aliases/").json() == []


def test_notifications_endpoint(client, users):
    tool = _create_tool(client, "1")
    event_id = _batch(client, [tool["id"]], to_user_id="bob").json()["transaction_ids"][0]

    client.login("bob")
    notices = client.get("/notifications/").json()
    assert [n["id"] for n in notices] == [event_id]
    assert notices[0]["tool_number"] == "1"

    dismissed = client.get("/notifications/", params={"dismissed": [event_id]}).json()
    assert dismissed == []


def test_users_directory_is_scoped_to_tenant(client, users):
    response = client.get("/users/")

    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == ["alice", "bob", "carol"]

    client.login("bob")
    me = client.get("/users/me").json()
    assert me["name"] == "Bob Tech"
    assert me["role"] == "member"


def test_tool_audit_log_requires_admin_group(client, users):
    tool = _create_tool(client, "1", "Saw")
    client.patch(f"/tools/{tool['id']}", json={"name": "Band saw"})

    trail = client.get(f"/tools/{tool['id']}/audit-log").json()
    assert [row["action"] for row in trail] == ["UPDATE", "INSERT"]
    assert trail[0]["new_values"]["name"] == "Band saw"

    client.login("carol")
    assert client.get(f"/tools/{tool['id']}/audit-log").status_code == 403


def test_admin_lists_every_transfer_with_filters(client, users):
    drill = _create_tool(client, "1", "Hammer drill")
    saw = _create_tool(client, "2", "Saw")
    _batch(client, [drill["id"], saw["id"]], to_user_id="bob")
    _batch(client, [saw["id"]], to_user_id="carol", location="Job 44", stored_at="on-site")

    page = client.get("/transfers/").json()
    assert page["total"] == 3
    assert page["data"][0]["location"] == "Job 44"
    assert page["data"][0]["tool_number"] == "2"
    assert page["data"][0]["from_user_name"] == "Bob Tech"

    assert client.get("/transfers/", params={"tool_id": drill["id"]}).json()["total"] == 1
    assert client.get("/transfers/", params={"user_id": "carol"}).json()["total"] == 1
    assert client.get("/transfers/", params={"user_id": "bob"}).json()["total"] == 3
    assert client.get("/transfers/", params={"stored_at": "on-truck"}).json()["total"] == 2
    assert client.get("/transfers/", params={"q": "hammer"}).json()["total"] == 1

    paged = client.get("/transfers/", params={"offset": 1, "limit": 1}).json()
    assert paged["total"] == 3
    assert len(paged["data"]) == 1

    client.login("zed")
    assert client.get("/transfers/").json() == {"data": [], "total": 0}

    client.login("bob")
    assert client.get("/transfers/").status_code == 403


def test_admin_lists_every_inspection_report_with_filters(client, users):
    tool = _create_tool(client, "1", "Grinder", checklist=["Guard", "Disc"])
    items = {i["item_name"]: i["id"] for i in client.get(f"/tools/{tool['id']}/checklist").json()}
    _batch(client, [tool["id"]], to_user_id="bob", checklist_reports=[
        {"tool_id": tool["id"], "checklist_item_id": items["Guard"], "status": "damaged", "comments": "cracked"},
    ])

    client.login("bob")
    _batch(client, [tool["id"]], to_user_id="carol", acknowledge_issues=True, checklist_reports=[
        {"tool_id": tool["id"], "checklist_item_id": items["Disc"], "status": "needs-replacement"},
    ])
    assert client.get("/inspection-reports/").status_code == 403

    client.login("alice")
    page = client.get("/inspection-reports/").json()
    assert page["total"] == 2
    newest = page["data"][0]
    assert newest["item_name"] == "Disc"
    assert newest["reported_by"] == "bob"
    assert newest["to_user_name"] == "Carol Tech"
    assert newest["tool_number"] == "1"

    damaged = client.get("/inspection-reports/", params={"status": "damaged"}).json()
    assert [r["comments"] for r in damaged["data"]] == ["cracked"]
    assert client.get("/inspection-reports/", params={"q": "grinder"}).json()["total"] == 2
    assert client.get("/inspection-reports/", params={"user_id": "carol"}).json()["total"] == 1
    assert client.get("/inspection-reports/", params={"tool_id": tool["id"], "limit": 1}).json()["total"] == 2
    assert client.get("/inspection-reports/", params={"status": "lost"}).status_code == 400
