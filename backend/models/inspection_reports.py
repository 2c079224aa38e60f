from sqlalchemy import CheckConstraint, Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import utc_now

REPORT_STATUSES = ("damaged", "needs-replacement")


class InspectionReport(Base):
    """A defect observed on a checklist item during one custody transfer.

    There is no resolved flag: every report stays open for the life of the tool.
    """
    __tablename__ = "inspection_reports"
    __table_args__ = (
        CheckConstraint("status IN ('damaged', 'needs-replacement')", name="ck_inspection_reports_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    custody_event_id = Column(Integer, ForeignKey("custody_events.id", ondelete="CASCADE"), nullable=False, index=True)
    checklist_item_id = Column(Integer, ForeignKey("checklist_items.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False)  # one of REPORT_STATUSES
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    custody_event = relationship("CustodyEvent", back_populates="reports")
    checklist_item = relationship("ChecklistItem", back_populates="reports")
