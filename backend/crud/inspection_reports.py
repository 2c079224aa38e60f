from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.checklist_items import ChecklistItem
from models.custody_events import CustodyEvent
from models.inspection_reports import InspectionReport, REPORT_STATUSES
from models.tools import Tool
from schemas.inspection_reports import ChecklistMark
from utils.errors import AuthorizationError, ValidationError
from utils.tenancy import Principal


def _open_issue_query(db: Session, tenant_id: str, tool_ids: Optional[List[int]] = None):
    # A report counts against a tool when it was filed on one of the tool's
    # events and its checklist item still belongs to that same tool.
    query = db.query(InspectionReport, CustodyEvent, ChecklistItem, Tool).join(
        CustodyEvent, InspectionReport.custody_event_id == CustodyEvent.id
    ).join(
        ChecklistItem, InspectionReport.checklist_item_id == ChecklistItem.id
    ).join(
        Tool, CustodyEvent.tool_id == Tool.id
    ).filter(
        InspectionReport.tenant_id == tenant_id,
        CustodyEvent.tenant_id == tenant_id,
        ChecklistItem.tool_id == CustodyEvent.tool_id,
    )
    if tool_ids is not None:
        query = query.filter(CustodyEvent.tool_id.in_(tool_ids))
    return query


def _to_issue(report: InspectionReport, event: CustodyEvent, item: ChecklistItem, tool: Tool) -> dict:
    return {
        "report_id": report.id,
        "tool_id": event.tool_id,
        "tool_number": tool.number,
        "tool_name": tool.name,
        "custody_event_id": event.id,
        "checklist_item_id": item.id,
        "item_name": item.item_name,
        "status": report.status,
        "comments": report.comments,
        "created_at": report.created_at,
    }


def open_issues_for_tools(db: Session, tenant_id: str, tool_ids: Iterable[int]) -> Dict[int, List[dict]]:
    """Open issues grouped by tool, newest first, in one query."""
    ids = list(dict.fromkeys(int(t) for t in tool_ids))
    result = {tool_id: [] for tool_id in ids}
    if not ids:
        return result
    rows = _open_issue_query(db, tenant_id, ids).order_by(
        InspectionReport.created_at.desc(), InspectionReport.id.desc()
    ).all()
    for report, event, item, tool in rows:
        result[event.tool_id].append(_to_issue(report, event, item, tool))
    return result


def open_issues_for(db: Session, tenant_id: str, tool_id: int) -> List[dict]:
    """
    Every report ever filed for the tool.

    Reports have no resolved state, so this only grows over the tool's life.
    """
    return open_issues_for_tools(db, tenant_id, [tool_id])[int(tool_id)]


def issue_counts_for(db: Session, tenant_id: str, tool_ids: Iterable[int]) -> Dict[int, int]:
    ids = list({int(t) for t in tool_ids})
    counts = {tool_id: 0 for tool_id in ids}
    if not ids:
        return counts
    rows = db.query(CustodyEvent.tool_id, func.count(InspectionReport.id)).join(
        InspectionReport, InspectionReport.custody_event_id == CustodyEvent.id
    ).join(
        ChecklistItem, InspectionReport.checklist_item_id == ChecklistItem.id
    ).filter(
        InspectionReport.tenant_id == tenant_id,
        CustodyEvent.tenant_id == tenant_id,
        CustodyEvent.tool_id.in_(ids),
        ChecklistItem.tool_id == CustodyEvent.tool_id,
    ).group_by(CustodyEvent.tool_id).all()
    counts.update({tool_id: count for tool_id, count in rows})
    return counts


def validate_marks(marks: Iterable[ChecklistMark], allowed_item_ids: set, tool_label: str):
    """Reject marks with an unknown status or a checklist item that is not the tool's."""
    for mark in marks:
        status = getattr(mark.status, "value", mark.status)
        if status not in REPORT_STATUSES:
            raise ValidationError(f"Invalid report status '{status}'; expected one of {', '.join(REPORT_STATUSES)}")
        if mark.checklist_item_id not in allowed_item_ids:
            raise ValidationError(f"Checklist item {mark.checklist_item_id} does not belong to tool {tool_label}")


def file_reports(db: Session, tenant_id: str, event_id: int, marks: Iterable[ChecklistMark]) -> List[InspectionReport]:
    """
    Attach inspection reports to an existing custody event.

    Flushes but never commits; the caller's transaction covers the event and
    its reports together. A report cannot be filed without its parent event.
    """
    marks = list(marks)
    event = db.query(CustodyEvent).filter(
        CustodyEvent.id == event_id,
        CustodyEvent.tenant_id == tenant_id,
    ).first()
    if event is None:
        raise ValidationError(f"Custody event {event_id} not found")
    if not marks:
        return []

    allowed = {
        item_id for (item_id,) in db.query(ChecklistItem.id).filter(
            ChecklistItem.tenant_id == tenant_id,
            ChecklistItem.tool_id == event.tool_id,
        ).all()
    }
    validate_marks(marks, allowed, str(event.tool_id))

    reports = []
    for mark in marks:
        report = InspectionReport(
            tenant_id=tenant_id,
            custody_event_id=event.id,
            checklist_item_id=mark.checklist_item_id,
            status=getattr(mark.status, "value", mark.status),
            comments=(mark.comments or "").strip() or None,
        )
        db.add(report)
        reports.append(report)
    db.flush()
    return reports


def reports_by_event(db: Session, tenant_id: str, event_ids: Iterable[int]) -> Dict[int, List[InspectionReport]]:
    grouped = defaultdict(list)
    ids = list(event_ids)
    if not ids:
        return grouped
    rows = db.query(InspectionReport).filter(
        InspectionReport.tenant_id == tenant_id,
        InspectionReport.custody_event_id.in_(ids),
    ).order_by(InspectionReport.id).all()
    for report in rows:
        grouped[report.custody_event_id].append(report)
    return grouped


def list_reports(db: Session, principal: Principal, tool_id: Optional[int] = None, user_id: Optional[str] = None,
                 status: Optional[str] = None, search: Optional[str] = None,
                 offset: int = 0, limit: int = 50) -> dict:
    """
    Every inspection report of the tenant, newest first, for the admin reports view.

    ``user_id`` matches the giver, the receiver or whoever filed the transfer.
    """
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can view all inspection reports")
    if status and status not in REPORT_STATUSES:
        raise ValidationError(f"Invalid report status '{status}'; expected one of {', '.join(REPORT_STATUSES)}")

    query = _open_issue_query(db, principal.tenant_id)
    if tool_id is not None:
        query = query.filter(CustodyEvent.tool_id == tool_id)
    if user_id:
        query = query.filter(or_(
            CustodyEvent.from_user_id == user_id,
            CustodyEvent.to_user_id == user_id,
            CustodyEvent.created_by == user_id,
        ))
    if status:
        query = query.filter(InspectionReport.status == status)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            Tool.number.ilike(pattern),
            Tool.name.ilike(pattern),
            ChecklistItem.item_name.ilike(pattern),
            InspectionReport.status.ilike(pattern),
            InspectionReport.comments.ilike(pattern),
            CustodyEvent.from_user_name.ilike(pattern),
            CustodyEvent.to_user_name.ilike(pattern),
        ))

    total = query.count()
    rows = query.order_by(
        InspectionReport.created_at.desc(), InspectionReport.id.desc()
    ).offset(offset).limit(limit).all()

    data = []
    for report, event, item, tool in rows:
        entry = _to_issue(report, event, item, tool)
        entry.update({
            "from_user_name": event.from_user_name,
            "to_user_name": event.to_user_name,
            "reported_by": event.created_by,
            "event_timestamp": event.timestamp,
        })
        data.append(entry)
    return {"data": data, "total": total}
