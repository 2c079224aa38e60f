"""
Transfer Orchestrator

Moves custody of one or many tools in a single database transaction:

    draft -> (open issues?) -> warned -> confirmed -> committed
    draft -> committed                      (no open issues)

A request is first validated and authorized without touching the ledger. If any
selected tool has open inspection reports and the caller has not acknowledged
them, ``OpenIssuesWarning`` is raised carrying the full issue list. Otherwise
the tools rows are locked, owners and issues are read again, and the batch
header, one custody event per tool, the tools' cached owners and the
inspection reports are written and committed together; any failure rolls the
whole batch back.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional
import logging

import pytz
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from crud import checklist_items as crud_checklist_items
from crud import custody_events as crud_custody_events
from crud import inspection_reports as crud_inspection_reports
from crud import location_aliases as crud_location_aliases
from crud import tool_groups as crud_tool_groups
from crud import users as crud_users
from models.audit_mixin import utc_now
from models.custody_events import STORED_AT_VALUES
from models.inspection_reports import REPORT_STATUSES
from models.tools import Tool
from models.transfer_batches import TransferBatch
from models.users import User
from schemas.transfers import TransferRequest, TransferRequestBase, TransferState
from utils.errors import (
    AuthorizationError,
    ConflictError,
    LedgerError,
    OpenIssuesWarning,
    PersistenceError,
    ValidationError,
)
from utils.tenancy import Principal

logger = logging.getLogger(__name__)

# Postgres error codes meaning "another writer got there first; try again"
RETRYABLE_PGCODES = {
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available
    "57014",  # query_canceled (statement timeout while waiting on a row lock)
}


def _unique_tool_ids(tool_ids) -> List[int]:
    return list(OrderedDict.fromkeys(int(t) for t in tool_ids or []))


def _validate_request(request: TransferRequest):
    tool_ids = _unique_tool_ids(request.tool_ids)
    if not tool_ids:
        raise ValidationError("At least one tool must be selected")

    location = " ".join((request.location or "").split())
    if not location:
        raise ValidationError("Location is required")

    stored_at = (request.stored_at or "").strip().lower()
    if stored_at not in STORED_AT_VALUES:
        raise ValidationError(f"stored_at must be one of {', '.join(STORED_AT_VALUES)}")

    reports_by_tool: Dict[int, list] = {tool_id: [] for tool_id in tool_ids}
    for report in request.checklist_reports:
        if report.status not in REPORT_STATUSES:
            raise ValidationError(f"Invalid report status '{report.status}'; expected one of {', '.join(REPORT_STATUSES)}")
        if report.tool_id not in reports_by_tool:
            raise ValidationError(f"Checklist report names tool {report.tool_id}, which is not part of this transfer")
        reports_by_tool[report.tool_id].append(report)

    return tool_ids, location, stored_at, reports_by_tool


def _load_tools(db: Session, tenant_id: str, tool_ids: List[int], lock: bool = False) -> Dict[int, Tool]:
    query = db.query(Tool).filter(Tool.tenant_id == tenant_id, Tool.id.in_(tool_ids))
    if lock:
        # Ascending id order so overlapping batches take locks in the same order
        query = query.order_by(Tool.id).with_for_update().populate_existing()
    tools = {tool.id: tool for tool in query.all()}
    if len(tools) != len(tool_ids):
        raise AuthorizationError("One or more tools are not in the same company")
    return tools


def _resolve_recipient(db: Session, principal: Principal, request: TransferRequestBase, owners: Dict[int, Optional[str]]) -> Optional[User]:
    """
    Explicit recipient, else the caller when claiming, else nobody (returned to pool).

    Returning to the pool is only allowed when the caller holds every tool;
    otherwise the recipient would be ambiguous.
    """
    if request.to_user_id:
        recipient = crud_users.get_active_user(db, principal.tenant_id, request.to_user_id)
        if recipient is None:
            raise AuthorizationError("Target user not found or not in the same company")
        return recipient

    if request.claim_for_self:
        return crud_users.get_active_user(db, principal.tenant_id, principal.user_id)

    if _not_held_by(owners, principal.user_id):
        raise ValidationError("A recipient is required: choose a user or claim the tools yourself")
    return None


def _owners_from(latest: Dict[int, object], tools: Dict[int, Tool]) -> Dict[int, Optional[str]]:
    # The cached owner only matters for tools that have no ledger events yet
    return {
        tool_id: (latest[tool_id].to_user_id if tool_id in latest else tool.current_owner)
        for tool_id, tool in tools.items()
    }


def _ledger_owners(db: Session, tenant_id: str, tools: Dict[int, Tool]) -> Dict[int, Optional[str]]:
    return _owners_from(crud_custody_events.latest_batch(db, tenant_id, tools.keys()), tools)


def _not_held_by(owners: Dict[int, Optional[str]], user_id: str) -> List[int]:
    return [tool_id for tool_id, owner in owners.items() if owner != user_id]


def _flatten_issues(issues_by_tool: Dict[int, list], tool_ids: List[int]) -> list:
    issues = []
    for tool_id in tool_ids:
        issues.extend(issues_by_tool.get(tool_id, []))
    return issues


def preview_open_issues(db: Session, principal: Principal, tool_ids) -> list:
    """Open issues of the selected tools, for the review screen before a transfer."""
    ids = _unique_tool_ids(tool_ids)
    if not ids:
        return []
    _load_tools(db, principal.tenant_id, ids)
    return _flatten_issues(crud_inspection_reports.open_issues_for_tools(db, principal.tenant_id, ids), ids)


def _is_retryable(error: OperationalError) -> bool:
    return getattr(error.orig, "pgcode", None) in RETRYABLE_PGCODES


def request_transfer(db: Session, principal: Principal, request: TransferRequest) -> dict:
    """
    Validate, gate on open issues, and commit a (batch) custody transfer.

    Returns ``{"success": True, "state": "committed", "batch_id", "transaction_ids"}``.
    Raises ``OpenIssuesWarning`` when issues exist and were not acknowledged,
    and ``ValidationError`` / ``AuthorizationError`` before any write.
    """
    tool_ids, location, stored_at, reports_by_tool = _validate_request(request)
    tenant_id = principal.tenant_id

    actor = crud_users.get_active_user(db, tenant_id, principal.user_id)
    if actor is None:
        raise AuthorizationError("User not found")

    tools = _load_tools(db, tenant_id, tool_ids)

    item_ids = crud_checklist_items.item_ids_by_tool(db, tenant_id, tool_ids)
    for tool_id, reports in reports_by_tool.items():
        crud_inspection_reports.validate_marks(reports, item_ids[tool_id], tools[tool_id].number)

    owners = _ledger_owners(db, tenant_id, tools)
    recipient = _resolve_recipient(db, principal, request, owners)

    issues = _flatten_issues(crud_inspection_reports.open_issues_for_tools(db, tenant_id, tool_ids), tool_ids)
    _gate_on_issues(db, principal, tool_ids, issues, request.acknowledge_issues)

    try:
        event_ids, batch_id, issues = _commit_batch(
            db, principal, actor, tool_ids, recipient, location, stored_at,
            request.notes, reports_by_tool, request.acknowledge_issues,
        )
    except LedgerError:
        db.rollback()
        raise
    except OperationalError as e:
        db.rollback()
        logger.error(f"Transfer of tools {tool_ids} for tenant {tenant_id} rolled back: {e}")
        if _is_retryable(e):
            raise ConflictError("Another transfer of these tools was in progress; please retry") from e
        raise PersistenceError("The transfer could not be saved; please retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transfer of tools {tool_ids} for tenant {tenant_id} rolled back: {e}")
        raise PersistenceError("The transfer could not be saved; please retry") from e
    except Exception as e:
        db.rollback()
        logger.exception(f"Transfer of tools {tool_ids} for tenant {tenant_id} rolled back")
        raise PersistenceError("The transfer could not be saved; please retry") from e

    state = TransferState.COMMITTED
    logger.info(
        f"Batch {batch_id}: {len(event_ids)} tool(s) transferred to "
        f"{recipient.id if recipient else 'pool'} by user {principal.user_id} for tenant {tenant_id}"
        + (f" with {len(issues)} acknowledged issue(s)" if issues else "")
    )
    return {
        "success": True,
        "state": state,
        "batch_id": batch_id,
        "transaction_ids": event_ids,
    }


def _gate_on_issues(db: Session, principal: Principal, tool_ids: List[int], issues: list, acknowledged: bool):
    if issues and not acknowledged:
        logger.info(f"Transfer of tools {tool_ids} by user {principal.user_id} for tenant {principal.tenant_id} halted: {len(issues)} open issue(s)")
        # Nothing was written; release the read snapshot
        db.rollback()
        raise OpenIssuesWarning(issues)


def _transfer_notes(notes: Optional[str], principal: Principal, recipient: Optional[User], issues: list) -> Optional[str]:
    notes = (notes or "").strip() or None
    if issues and recipient is not None and recipient.id == principal.user_id:
        ack_note = f"Claimed with {len(issues)} open issue(s) acknowledged"
        notes = f"{notes}\n{ack_note}" if notes else ack_note
    return notes


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive
    return value.replace(tzinfo=pytz.utc) if value.tzinfo is None else value


def _commit_batch(db: Session, principal: Principal, actor: User, tool_ids: List[int], recipient: Optional[User],
                  location: str, stored_at: str, notes: Optional[str], reports_by_tool: Dict[int, list],
                  acknowledged: bool):
    """
    Lock, re-check and write the batch. Returns ``(event_ids, batch_id, issues)``.

    Everything that decides the outcome (prior owners, the return-to-pool
    rule and the open-issue gate) is read again after the lock, so a transfer
    committed by another request in the meantime is taken into account.
    """
    tenant_id = principal.tenant_id

    tools = _load_tools(db, tenant_id, tool_ids, lock=True)
    latest = crud_custody_events.latest_batch(db, tenant_id, tool_ids)
    prior_owner_ids = _owners_from(latest, tools)
    if recipient is None and _not_held_by(prior_owner_ids, principal.user_id):
        raise ConflictError("Custody of the selected tools changed while the transfer was in progress; review and retry")

    issues = _flatten_issues(crud_inspection_reports.open_issues_for_tools(db, tenant_id, tool_ids), tool_ids)
    _gate_on_issues(db, principal, tool_ids, issues, acknowledged)
    notes = _transfer_notes(notes, principal, recipient, issues)

    prior_owners = crud_users.users_by_ids(db, tenant_id, prior_owner_ids.values())
    normalized_location = crud_location_aliases.normalize_location(db, tenant_id, location)
    now = utc_now()

    batch = TransferBatch(
        tenant_id=tenant_id,
        created_by=actor.id,
        to_user_id=recipient.id if recipient else None,
        location=normalized_location,
        stored_at=stored_at,
        notes=notes,
        created_at=now,
    )
    db.add(batch)
    db.flush()

    event_ids = []
    for tool_id in tool_ids:
        tool = tools[tool_id]
        prior = latest.get(tool_id)
        # Never order a new event before the tool's previous one, whatever the
        # local clock says; equal timestamps fall back to id order.
        timestamp = max(now, _as_utc(prior.timestamp)) if prior is not None else now
        event = crud_custody_events.append_event(
            db,
            tenant_id,
            tool,
            from_user=prior_owners.get(prior_owner_ids[tool_id]),
            to_user=recipient,
            location=normalized_location,
            stored_at=stored_at,
            notes=notes,
            batch_id=batch.id,
            timestamp=timestamp,
            created_by=actor.id,
            from_user_name=prior.to_user_name if prior is not None else None,
        )
        tool.current_owner = recipient.id if recipient else None
        tool.updated_by = actor.id
        crud_inspection_reports.file_reports(db, tenant_id, event.id, reports_by_tool.get(tool_id, []))
        event_ids.append(event.id)

    db.commit()
    return event_ids, batch.id, issues


def transfer_single_tool(db: Session, principal: Principal, tool_id: int, request: TransferRequestBase) -> dict:
    return request_transfer(db, principal, TransferRequest(tool_ids=[tool_id], **request.model_dump()))


def transfer_group(db: Session, principal: Principal, group_id: int, request: TransferRequestBase) -> dict:
    """Transfer every tool of a tool group as one batch."""
    tool_ids = crud_tool_groups.tool_ids_for_group(db, principal.tenant_id, group_id)
    if tool_ids is None:
        raise AuthorizationError("Tool group not found or not in the same company")
    if not tool_ids:
        raise ValidationError("Tool group has no tools")
    return request_transfer(db, principal, TransferRequest(tool_ids=tool_ids, **request.model_dump()))
