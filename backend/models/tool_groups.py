from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin


class ToolGroup(Base, TimestampMixin):
    __tablename__ = "tool_groups"
    __table_args__ = (UniqueConstraint('name', 'tenant_id', name='_tool_groups_name_tenant_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    members = relationship("ToolGroupMember", back_populates="group", cascade="all, delete-orphan")


class ToolGroupMember(Base):
    __tablename__ = "tool_group_members"
    __table_args__ = (UniqueConstraint('group_id', 'tool_id', name='_tool_group_members_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    group_id = Column(Integer, ForeignKey("tool_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="CASCADE"), nullable=False, index=True)

    group = relationship("ToolGroup", back_populates="members")
    tool = relationship("Tool", back_populates="group_memberships")
