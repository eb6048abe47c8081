"""Schemas supporting follow request and follower APIs."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .profiles import ProfileSummary


class FollowRequestCreate(BaseModel):
    receiver_id: UUID


class FollowRequestRespond(BaseModel):
    action: Literal["accept", "reject"]


class FollowRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    status: Literal["pending", "accepted", "rejected"]
    created_at: datetime
    updated_at: datetime


class FollowRequestListResponse(BaseModel):
    items: List[FollowRequestResponse]


class FollowStatsResponse(BaseModel):
    profile_id: UUID
    followers_count: int
    following_count: int
    is_following: bool


class RelationshipResponse(BaseModel):
    profile_id: UUID
    is_following: bool
    is_followed_by: bool
    is_mutual: bool
    outgoing_request_status: Literal["pending", "accepted", "rejected"] | None = None


class ProfileListResponse(BaseModel):
    items: List[ProfileSummary]


class FollowActionResponse(BaseModel):
    profile_id: UUID
    status: Literal["unfollowed", "cancelled", "noop"]


__all__ = [
    "FollowRequestCreate",
    "FollowRequestRespond",
    "FollowRequestResponse",
    "FollowRequestListResponse",
    "FollowStatsResponse",
    "RelationshipResponse",
    "ProfileListResponse",
    "FollowActionResponse",
]
