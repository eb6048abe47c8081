"""Schemas for profile endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    avatar_url: str | None = None


class ProfileUpdateRequest(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=150, pattern=r"^[a-z0-9_]+$")
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = Field(None, max_length=1024)

    @field_validator("avatar_url", mode="before")
    def clean_avatar(cls, v):
        if v in ("", "None"):
            return None
        return v


__all__ = ["ProfileResponse", "ProfileSummary", "ProfileUpdateRequest"]
