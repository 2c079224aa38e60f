from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import utc_now


class TransferBatch(Base):
    """Header row for one committed transfer request (one or many tools)."""
    __tablename__ = "transfer_batches"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    created_by = Column(String, nullable=True)
    to_user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    location = Column(String, nullable=False)
    stored_at = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    events = relationship("CustodyEvent", back_populates="batch")
