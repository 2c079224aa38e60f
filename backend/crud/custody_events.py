from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from models.custody_events import CustodyEvent
from models.inspection_reports import InspectionReport
from models.tools import Tool
from models.users import User
from schemas.custody_events import CustodyState
from utils import display_user_name
from utils.errors import AuthorizationError
from utils.tenancy import Principal
import logging

logger = logging.getLogger(__name__)


def append_event(
    db: Session,
    tenant_id: str,
    tool: Tool,
    from_user: Optional[User],
    to_user: Optional[User],
    location: str,
    stored_at: str,
    notes: Optional[str] = None,
    batch_id: Optional[int] = None,
    timestamp: Optional[datetime] = None,
    created_by: Optional[str] = None,
    from_user_name: Optional[str] = None,
) -> CustodyEvent:
    """
    Append one custody event for ``tool`` and flush it so its id is available.

    Never commits: the caller owns the transaction, and the tool's cached owner
    must be updated in that same transaction. ``from_user_name`` is the name
    snapshot kept when the prior owner's account no longer exists.
    """
    if tool.tenant_id != tenant_id:
        raise AuthorizationError("Tool not found or not in the same company")

    event = CustodyEvent(
        tenant_id=tenant_id,
        tool_id=tool.id,
        batch_id=batch_id,
        from_user_id=from_user.id if from_user else None,
        from_user_name=from_user.name if from_user else from_user_name,
        to_user_id=to_user.id if to_user else None,
        to_user_name=to_user.name if to_user else None,
        location=location,
        stored_at=stored_at,
        notes=notes,
        created_by=created_by,
    )
    if timestamp is not None:
        event.timestamp = timestamp
    db.add(event)
    db.flush()
    return event


def latest_for(db: Session, tenant_id: str, tool_id: int) -> Optional[CustodyEvent]:
    """Latest event for a tool, or None when the tool has never been transferred."""
    return db.query(CustodyEvent).filter(
        CustodyEvent.tenant_id == tenant_id,
        CustodyEvent.tool_id == tool_id,
    ).order_by(CustodyEvent.timestamp.desc(), CustodyEvent.id.desc()).first()


def latest_batch(db: Session, tenant_id: str, tool_ids: Iterable[int]) -> Dict[int, CustodyEvent]:
    """
    Latest event for each of ``tool_ids`` in a single query.

    Tools without events are simply absent from the result.
    """
    ids = list({int(t) for t in tool_ids})
    if not ids:
        return {}

    ranked = db.query(
        CustodyEvent.id.label("event_id"),
        func.row_number().over(
            partition_by=CustodyEvent.tool_id,
            order_by=(CustodyEvent.timestamp.desc(), CustodyEvent.id.desc()),
        ).label("rn"),
    ).filter(
        CustodyEvent.tenant_id == tenant_id,
        CustodyEvent.tool_id.in_(ids),
    ).subquery()

    events = db.query(CustodyEvent).join(
        ranked, CustodyEvent.id == ranked.c.event_id
    ).filter(ranked.c.rn == 1).options(selectinload(CustodyEvent.to_user)).all()

    return {e.tool_id: e for e in events}


def latest_held_by(db: Session, tenant_id: str, user_id: str) -> List[CustodyEvent]:
    """Latest events, one per tool, whose recipient is ``user_id``; newest first."""
    ranked = db.query(
        CustodyEvent.id.label("event_id"),
        CustodyEvent.to_user_id.label("to_user_id"),
        func.row_number().over(
            partition_by=CustodyEvent.tool_id,
            order_by=(CustodyEvent.timestamp.desc(), CustodyEvent.id.desc()),
        ).label("rn"),
    ).filter(CustodyEvent.tenant_id == tenant_id).subquery()

    return db.query(CustodyEvent).join(
        ranked, CustodyEvent.id == ranked.c.event_id
    ).filter(
        ranked.c.rn == 1,
        ranked.c.to_user_id == user_id,
    ).options(
        selectinload(CustodyEvent.tool),
        selectinload(CustodyEvent.from_user),
    ).order_by(CustodyEvent.timestamp.desc(), CustodyEvent.id.desc()).all()


def current_state(event: Optional[CustodyEvent]) -> CustodyState:
    """Derive the owner/location view from a latest event; None is the unassigned state."""
    if event is None:
        return CustodyState()
    live_name = event.to_user.name if event.to_user is not None else None
    return CustodyState(
        owner_id=event.to_user_id,
        owner_name=display_user_name(live_name, event.to_user_name) if (event.to_user_id or event.to_user_name) else None,
        location=event.location,
        stored_at=event.stored_at,
        last_event_id=event.id,
        last_transfer_at=event.timestamp,
    )


def history_for(db: Session, tenant_id: str, tool_id: int, offset: int = 0, limit: int = 50) -> dict:
    """Events of one tool, newest first, with their inspection reports loaded."""
    query = db.query(CustodyEvent).filter(
        CustodyEvent.tenant_id == tenant_id,
        CustodyEvent.tool_id == tool_id,
    )
    total = query.count()
    results = query.options(
        selectinload(CustodyEvent.reports).selectinload(InspectionReport.checklist_item),
        selectinload(CustodyEvent.from_user),
        selectinload(CustodyEvent.to_user),
    ).order_by(
        CustodyEvent.timestamp.desc(), CustodyEvent.id.desc()
    ).offset(offset).limit(limit).all()

    return {
        "data": results,
        "total": total,
    }


def list_events(db: Session, principal: Principal, tool_id: Optional[int] = None, user_id: Optional[str] = None,
                stored_at: Optional[str] = None, search: Optional[str] = None,
                start: Optional[datetime] = None, end: Optional[datetime] = None,
                offset: int = 0, limit: int = 50) -> dict:
    """
    Every transfer of the tenant, newest first, for the admin transactions view.

    ``user_id`` matches either side of the transfer. ``search`` matches tool
    number and name, the user name snapshots, location, storage and notes.
    """
    if not principal.is_admin:
        raise AuthorizationError("Only tenant admins can view all transfers")

    query = db.query(CustodyEvent).join(Tool, CustodyEvent.tool_id == Tool.id).filter(
        CustodyEvent.tenant_id == principal.tenant_id,
    )
    if tool_id is not None:
        query = query.filter(CustodyEvent.tool_id == tool_id)
    if user_id:
        query = query.filter(or_(CustodyEvent.from_user_id == user_id, CustodyEvent.to_user_id == user_id))
    if stored_at:
        query = query.filter(CustodyEvent.stored_at == stored_at)
    if start is not None:
        query = query.filter(CustodyEvent.timestamp >= start)
    if end is not None:
        query = query.filter(CustodyEvent.timestamp <= end)
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(
            Tool.number.ilike(pattern),
            Tool.name.ilike(pattern),
            CustodyEvent.from_user_name.ilike(pattern),
            CustodyEvent.to_user_name.ilike(pattern),
            CustodyEvent.location.ilike(pattern),
            CustodyEvent.stored_at.ilike(pattern),
            CustodyEvent.notes.ilike(pattern),
        ))

    total = query.count()
    results = query.options(
        selectinload(CustodyEvent.tool),
        selectinload(CustodyEvent.reports).selectinload(InspectionReport.checklist_item),
        selectinload(CustodyEvent.from_user),
        selectinload(CustodyEvent.to_user),
    ).order_by(
        CustodyEvent.timestamp.desc(), CustodyEvent.id.desc()
    ).offset(offset).limit(limit).all()

    return {
        "data": results,
        "total": total,
    }


def count_events(db: Session, tenant_id: str, tool_ids: Optional[Iterable[int]] = None) -> int:
    query = db.query(func.count(CustodyEvent.id)).filter(CustodyEvent.tenant_id == tenant_id)
    if tool_ids is not None:
        query = query.filter(CustodyEvent.tool_id.in_(list(tool_ids)))
    return query.scalar() or 0


def event_to_dict(event: CustodyEvent) -> dict:
    """Serialise an event for API responses, preferring live user names over snapshots."""
    from_live = event.from_user.name if event.from_user is not None else None
    to_live = event.to_user.name if event.to_user is not None else None
    return {
        "id": event.id,
        "tool_id": event.tool_id,
        "tool_number": event.tool.number if event.tool is not None else None,
        "tool_name": event.tool.name if event.tool is not None else None,
        "batch_id": event.batch_id,
        "from_user_id": event.from_user_id,
        "to_user_id": event.to_user_id,
        "from_user_name": display_user_name(from_live, event.from_user_name) if (event.from_user_id or event.from_user_name) else None,
        "to_user_name": display_user_name(to_live, event.to_user_name) if (event.to_user_id or event.to_user_name) else None,
        "location": event.location,
        "stored_at": event.stored_at,
        "notes": event.notes,
        "timestamp": event.timestamp,
        "reports": [
            {
                "id": r.id,
                "checklist_item_id": r.checklist_item_id,
                "item_name": r.checklist_item.item_name if r.checklist_item else None,
                "status": r.status,
                "comments": r.comments,
                "created_at": r.created_at,
            }
            for r in event.reports
        ],
    }
