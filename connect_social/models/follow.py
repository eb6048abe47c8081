"""SQLAlchemy ORM models for follow edges and the follow request workflow."""
from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import column_property, relationship

from connect_social.database import Base
from .base import CreatedAtMixin, TimestampMixin


class Follow(CreatedAtMixin, Base):
    """Directed edge follower → following. Only created by the acceptance trigger."""

    __tablename__ = "follows"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    follower_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    follower = relationship("Profile", foreign_keys=[follower_id])
    following = relationship("Profile", foreign_keys=[following_id])

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
    )


class FollowRequest(TimestampMixin, Base):
    __tablename__ = "follow_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    # Old value is kept on assignment so transitions can be checked against it.
    status = column_property(
        Column(String(16), nullable=False, default="pending", server_default="pending"), active_history=True
    )

    sender = relationship("Profile", foreign_keys=[sender_id])
    receiver = relationship("Profile", foreign_keys=[receiver_id])

    __table_args__ = (
        UniqueConstraint("sender_id", "receiver_id", name="uq_follow_requests_pair"),
        CheckConstraint("sender_id <> receiver_id", name="ck_follow_requests_no_self"),
        CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name="ck_follow_requests_status"),
    )


__all__ = ["Follow", "FollowRequest"]
