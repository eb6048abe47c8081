"""SQLAlchemy ORM model for profiles owned by external identities."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from connect_social.database import Base
from .base import TimestampMixin


class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Stable identifier supplied by the identity provider; one profile per identity.
    user_id = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(150), unique=True, nullable=False, index=True)
    avatar_url = Column(String(1024), nullable=True)
    bio = Column(Text, nullable=False, default="", server_default="")
    provider_id = Column(String(255), nullable=True)

    posts = relationship("Post", back_populates="author", passive_deletes=True)


__all__ = ["Profile"]
