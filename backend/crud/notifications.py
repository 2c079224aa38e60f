from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from crud import custody_events as crud_custody_events
from crud import inspection_reports as crud_inspection_reports
from utils import display_user_name


def notifications_for(db: Session, tenant_id: str, user_id: str,
                      dismissed_event_ids: Optional[Iterable[int]] = None, limit: int = 50) -> List[dict]:
    """
    "Tool X was just given to you" notices, rebuilt from the ledger on every call.

    One notice per tool whose latest event names ``user_id`` as recipient. The
    client keeps its own list of acknowledged event ids; those hide a notice
    only when the tool has no open issues.
    """
    dismissed = {int(e) for e in (dismissed_event_ids or [])}
    events = crud_custody_events.latest_held_by(db, tenant_id, user_id)
    issues = crud_inspection_reports.open_issues_for_tools(db, tenant_id, [e.tool_id for e in events])

    notifications = []
    for event in events:
        tool_issues = issues.get(event.tool_id, [])
        has_issues = len(tool_issues) > 0
        if event.id in dismissed and not has_issues:
            continue
        live_from = event.from_user.name if event.from_user is not None else None
        notifications.append({
            "id": event.id,
            "tool_id": event.tool_id,
            "tool_number": event.tool.number,
            "tool_name": event.tool.name,
            "from_user_id": event.from_user_id,
            "from_user_name": display_user_name(live_from, event.from_user_name) if (event.from_user_id or event.from_user_name) else "Unassigned",
            "timestamp": event.timestamp,
            "location": event.location,
            "stored_at": event.stored_at,
            "notes": event.notes,
            "has_issues": has_issues,
            "issue_count": len(tool_issues),
            "dismissible": not has_issues,
            "reports": tool_issues,
        })
        if len(notifications) >= limit:
            break
    return notifications
