from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class ChecklistItem(Base, TimestampMixin):
    __tablename__ = "checklist_items"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="CASCADE"), nullable=False, index=True)
    item_name = Column(String, nullable=False)
    required = Column(Boolean, default=False, nullable=False)

    tool = relationship("Tool", back_populates="checklist_items")
    reports = relationship(
        "InspectionReport",
        back_populates="checklist_item",
        cascade="all, delete-orphan",
    )
