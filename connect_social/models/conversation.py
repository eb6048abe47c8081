"""SQLAlchemy ORM models for 1:1 conversations and their messages."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from connect_social.database import Base
from .base import CreatedAtMixin, TimestampMixin


class Conversation(TimestampMixin, Base):
    """Direct channel keyed by the canonical (lower, higher) profile pair."""

    __tablename__ = "conversations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_1 = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_2 = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    messages = relationship("Message", back_populates="conversation", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("user_1", "user_2", name="uq_conversations_pair"),
        CheckConstraint("user_1 < user_2", name="ck_conversations_canonical_order"),
    )

    def involves(self, profile_id: uuid.UUID) -> bool:
        return profile_id in {self.user_1, self.user_2}

    def other_participant(self, profile_id: uuid.UUID) -> uuid.UUID:
        return self.user_2 if self.user_1 == profile_id else self.user_1


class Message(CreatedAtMixin, Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        UUID(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("Profile")


__all__ = ["Conversation", "Message"]
