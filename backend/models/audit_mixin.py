from sqlalchemy import Column, DateTime, String
from datetime import datetime
import pytz


def utc_now():
    return datetime.now(pytz.utc)


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Used by the catalog tables (tools, checklist items, groups, aliases).
    Ledger rows do not use it: they are never updated, so they carry their own
    server-assigned timestamp instead.
    """
    # DateTime(timezone=True) ensures the timezone info is persisted in the database.
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), onupdate=utc_now)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
