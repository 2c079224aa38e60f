from sqlalchemy import CheckConstraint, Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import utc_now

STORED_AT_VALUES = ("on-truck", "on-site", "n/a")


class CustodyEvent(Base):
    """One row of the append-only custody ledger.

    The latest row per tool, ordered by (timestamp, id), is the tool's current
    owner and location.
    """
    __tablename__ = "custody_events"
    __table_args__ = (
        Index("ix_custody_events_tool_latest", "tenant_id", "tool_id", "timestamp", "id"),
        Index("ix_custody_events_to_user", "tenant_id", "to_user_id"),
        CheckConstraint("stored_at IN ('on-truck', 'on-site', 'n/a')", name="ck_custody_events_stored_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="CASCADE"), nullable=False)
    batch_id = Column(Integer, ForeignKey("transfer_batches.id", ondelete="SET NULL"), nullable=True, index=True)
    from_user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    to_user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # Snapshots so history still reads correctly after a user is deleted
    from_user_name = Column(String, nullable=True)
    to_user_name = Column(String, nullable=True)
    location = Column(String, nullable=False)
    stored_at = Column(String, nullable=False)  # one of STORED_AT_VALUES
    notes = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_by = Column(String, nullable=True)

    tool = relationship("Tool", back_populates="custody_events")
    batch = relationship("TransferBatch", back_populates="events")
    from_user = relationship("User", foreign_keys=[from_user_id])
    to_user = relationship("User", foreign_keys=[to_user_id])
    reports = relationship(
        "InspectionReport",
        back_populates="custody_event",
        cascade="all, delete-orphan",
        order_by="InspectionReport.id",
    )
