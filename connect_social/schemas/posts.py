"""Pydantic schemas for feed resources."""
from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    """Payload used by API clients when constructing a post."""

    content: str = Field(..., min_length=1, max_length=5000)
    image_url: str | None = Field(None, max_length=1024)
    post_type: Literal["text", "image", "blog"] = "text"


class PostUpdate(BaseModel):
    content: str | None = Field(None, min_length=1, max_length=5000)
    image_url: str | None = Field(None, max_length=1024)
    post_type: Literal["text", "image", "blog"] | None = None


class PostResponse(BaseModel):
    """Serialized representation of a persisted post."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    author_id: UUID
    content: str
    image_url: str | None = None
    post_type: str
    created_at: datetime
    updated_at: datetime
    username: str | None = None
    avatar_url: str | None = None
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    liked_by_me: bool = False


class PostFeedResponse(BaseModel):
    """Envelope used when returning a collection of posts."""

    items: list[PostResponse]


class PostEngagementResponse(BaseModel):
    """Counters returned after a like, unlike or share."""

    post_id: UUID
    likes_count: int
    comments_count: int
    shares_count: int
    liked_by_me: bool


class PostCommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    parent_id: UUID | None = None


class PostCommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    author_id: UUID
    username: str | None = None
    avatar_url: str | None = None
    content: str
    parent_id: UUID | None = None
    created_at: datetime
    replies: list["PostCommentResponse"] = Field(default_factory=list)


class PostCommentListResponse(BaseModel):
    items: list[PostCommentResponse]


PostCommentResponse.model_rebuild()


__all__ = [
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "PostFeedResponse",
    "PostEngagementResponse",
    "PostCommentCreate",
    "PostCommentResponse",
    "PostCommentListResponse",
]
