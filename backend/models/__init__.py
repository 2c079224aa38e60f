from models.users import User
from models.tools import Tool
from models.transfer_batches import TransferBatch
from models.custody_events import CustodyEvent
from models.checklist_items import ChecklistItem
from models.inspection_reports import InspectionReport
from models.tool_groups import ToolGroup, ToolGroupMember
from models.location_aliases import LocationAlias
from models.audit_log import AuditLog

__all__ = ['AuditLog', 'ChecklistItem', 'CustodyEvent', 'InspectionReport', 'LocationAlias', 'Tool', 'ToolGroup', 'ToolGroupMember', 'TransferBatch', 'User',]
