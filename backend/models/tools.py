from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class Tool(Base, TimestampMixin):
    __tablename__ = "tools"
    __table_args__ = (UniqueConstraint('number', 'tenant_id', name='_tools_number_tenant_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    number = Column(String, nullable=False)  # Display key, e.g. "12" or "T-7"
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    photo_url = Column(String, nullable=True)
    # Cached pointer to the latest custody event's recipient.
    # Only written together with a ledger append.
    current_owner = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    owner = relationship("User", foreign_keys=[current_owner])
    custody_events = relationship(
        "CustodyEvent",
        back_populates="tool",
        cascade="all, delete-orphan",
    )
    checklist_items = relationship(
        "ChecklistItem",
        back_populates="tool",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.item_name",
    )
    group_memberships = relationship(
        "ToolGroupMember",
        back_populates="tool",
        cascade="all, delete-orphan",
    )
