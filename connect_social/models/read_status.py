"""SQLAlchemy ORM model tracking the last-read marker per chat."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from connect_social.database import Base
from .base import utcnow


class ReadStatus(Base):
    __tablename__ = "chat_read_status"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    profile_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    conversation_id = Column(
        UUID(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=True, index=True
    )
    group_id = Column(UUID(as_uuid=True), ForeignKey("group_chats.id", ondelete="CASCADE"), nullable=True, index=True)
    last_read_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("profile_id", "conversation_id", name="uq_chat_read_status_conversation"),
        UniqueConstraint("profile_id", "group_id", name="uq_chat_read_status_group"),
        CheckConstraint(
            "(conversation_id IS NULL AND group_id IS NOT NULL) OR (conversation_id IS NOT NULL AND group_id IS NULL)",
            name="ck_chat_read_status_single_target",
        ),
    )


__all__ = ["ReadStatus"]
