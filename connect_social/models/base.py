"""Utility mixins shared across ORM models."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreatedAtMixin:
    """Insert timestamp populated client-side so triggers can read it back."""

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class TimestampMixin(CreatedAtMixin):
    """Reusable timestamp columns with timezone-aware defaults.

    ``updated_at`` is bumped on every ORM update; request schemas never expose it.
    """

    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


__all__ = ["CreatedAtMixin", "TimestampMixin", "utcnow"]
