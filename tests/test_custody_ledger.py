from datetime import datetime, timedelta

import pytest
import pytz

from crud import custody_events as crud_custody_events
from crud import transfers as crud_transfers
from schemas.transfers import TransferRequest
from utils.errors import AuthorizationError

TENANT = "acme"


def _transfer(db, principal, tool_ids, **fields):
    payload = {"location": "Main yard", "stored_at": "on-site", "acknowledge_issues": True}
    payload.update(fields)
    return crud_transfers.request_transfer(db, principal, TransferRequest(tool_ids=tool_ids, **payload))


def test_latest_for_unassigned_tool_is_empty_state(db, users, make_tool):
    tool = make_tool("1")

    assert crud_custody_events.latest_for(db, TENANT, tool.id) is None
    state = crud_custody_events.current_state(None)
    assert state.owner_id is None
    assert state.location is None
    assert state.stored_at is None


def test_latest_for_matches_last_of_sequential_transfers(db, users, principals, make_tool):
    tool = make_tool("7")
    moves = [
        ("bob", "Truck 4", "on-truck"),
        ("carol", "Job 118 basement", "on-site"),
        ("alice", "Shop", "n/a"),
        ("bob", "Truck 9", "on-truck"),
    ]
    for to_user, location, stored_at in moves:
        _transfer(db, principals["alice"], [tool.id], to_user_id=to_user, location=location, stored_at=stored_at)

        latest = crud_custody_events.latest_for(db, TENANT, tool.id)
        assert (latest.to_user_id, latest.location, latest.stored_at) == (to_user, location, stored_at)

    assert crud_custody_events.count_events(db, TENANT, [tool.id]) == len(moves)


def test_latest_batch_resolves_many_tools(db, users, principals, make_tool):
    a, b, c = make_tool("1"), make_tool("2"), make_tool("3")
    _transfer(db, principals["alice"], [a.id, b.id], to_user_id="bob", location="Truck 1")
    _transfer(db, principals["alice"], [b.id], to_user_id="carol", location="Job 5")

    latest = crud_custody_events.latest_batch(db, TENANT, [a.id, b.id, c.id])

    assert set(latest) == {a.id, b.id}
    assert latest[a.id].to_user_id == "bob"
    assert latest[b.id].to_user_id == "carol"
    assert latest[b.id].location == "Job 5"


def test_same_timestamp_breaks_tie_on_insertion_order(db, users, make_tool):
    tool = make_tool("5")
    same_instant = datetime(2026, 3, 1, 12, 0, tzinfo=pytz.utc)
    first = crud_custody_events.append_event(
        db, TENANT, tool, from_user=None, to_user=users["bob"],
        location="Truck 1", stored_at="on-truck", timestamp=same_instant,
    )
    second = crud_custody_events.append_event(
        db, TENANT, tool, from_user=users["bob"], to_user=users["carol"],
        location="Truck 2", stored_at="on-truck", timestamp=same_instant,
    )
    db.commit()

    assert second.id > first.id
    assert crud_custody_events.latest_for(db, TENANT, tool.id).id == second.id
    assert crud_custody_events.latest_batch(db, TENANT, [tool.id])[tool.id].id == second.id


def test_later_timestamp_wins_over_higher_id(db, users, make_tool):
    tool = make_tool("6")
    now = datetime(2026, 3, 1, 12, 0, tzinfo=pytz.utc)
    newer = crud_custody_events.append_event(
        db, TENANT, tool, from_user=None, to_user=users["carol"],
        location="Job 1", stored_at="on-site", timestamp=now,
    )
    crud_custody_events.append_event(
        db, TENANT, tool, from_user=None, to_user=users["bob"],
        location="Backfilled", stored_at="n/a", timestamp=now - timedelta(days=1),
    )
    db.commit()

    assert crud_custody_events.latest_for(db, TENANT, tool.id).id == newer.id


def test_ledger_reads_are_scoped_by_tenant(db, users, principals, make_tool):
    tool = make_tool("1")
    _transfer(db, principals["alice"], [tool.id], to_user_id="bob")

    assert crud_custody_events.latest_for(db, "globex", tool.id) is None
    assert crud_custody_events.latest_batch(db, "globex", [tool.id]) == {}


def test_events_snapshot_user_names(db, users, principals, make_tool):
    tool = make_tool("3")
    _transfer(db, principals["alice"], [tool.id], to_user_id="bob")
    _transfer(db, principals["alice"], [tool.id], to_user_id="carol")

    latest = crud_custody_events.latest_for(db, TENANT, tool.id)
    assert latest.from_user_id == "bob"
    assert latest.from_user_name == "Bob Tech"
    assert latest.to_user_name == "Carol Tech"


def test_append_rejects_tool_of_another_tenant(db, users, make_tool):
    foreign = make_tool("1", tenant_id="globex")

    with pytest.raises(AuthorizationError):
        crud_custody_events.append_event(
            db, TENANT, foreign, from_user=None, to_user=users["bob"],
            location="Truck 1", stored_at="on-truck",
        )

    db.rollback()
    assert crud_custody_events.count_events(db, "globex") == 0
