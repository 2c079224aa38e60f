from sqlalchemy import Column, Integer, String, UniqueConstraint
from database import Base
from models.audit_mixin import TimestampMixin


class LocationAlias(Base, TimestampMixin):
    __tablename__ = "location_aliases"
    __table_args__ = (UniqueConstraint('alias_key', 'tenant_id', name='_location_aliases_alias_tenant_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    alias = Column(String, nullable=False)
    alias_key = Column(String, nullable=False)  # lower-cased, trimmed alias used for lookups
    normalized_location = Column(String, nullable=False)
