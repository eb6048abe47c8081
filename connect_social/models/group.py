"""SQLAlchemy ORM models for group chats."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from connect_social.database import Base
from .base import CreatedAtMixin, TimestampMixin, utcnow


class Group(TimestampMixin, Base):
    __tablename__ = "group_chats"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=False, default="", server_default="")
    avatar_url = Column(String(1024), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    creator = relationship("Profile")
    members = relationship("GroupMember", back_populates="group", passive_deletes=True)
    messages = relationship("GroupMessage", back_populates="group", passive_deletes=True)


class GroupMember(Base):
    __tablename__ = "group_chat_members"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    group_id = Column(UUID(as_uuid=True), ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=False, index=True)
    profile_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(16), nullable=False, default="member", server_default="member")
    joined_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    group = relationship("Group", back_populates="members")
    profile = relationship("Profile")

    __table_args__ = (
        UniqueConstraint("group_id", "profile_id", name="uq_group_chat_members_pair"),
        CheckConstraint("role IN ('member', 'admin')", name="ck_group_chat_members_role"),
    )


class GroupMessage(CreatedAtMixin, Base):
    __tablename__ = "group_chat_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    group_id = Column(UUID(as_uuid=True), ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)

    group = relationship("Group", back_populates="messages")
    sender = relationship("Profile")


__all__ = ["Group", "GroupMember", "GroupMessage"]
