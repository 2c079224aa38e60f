from database import Base
from sqlalchemy import Column, String, Boolean
from models.audit_mixin import TimestampMixin


class User(Base, TimestampMixin):
    """A principal known to the identity provider, mirrored per tenant.

    The id is the provider's subject claim. Only the display name and tenant
    membership matter to the ledger.
    """
    __tablename__ = 'users'

    id = Column(String, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    role = Column(String, nullable=False, default="member")  # "admin" or "member"
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, name={self.name}, tenant_id={self.tenant_id}, role={self.role})>"
