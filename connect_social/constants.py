"""Project-wide constant values."""
from __future__ import annotations

FOLLOW_REQUEST_PENDING = "pending"
FOLLOW_REQUEST_ACCEPTED = "accepted"
FOLLOW_REQUEST_REJECTED = "rejected"

GROUP_ROLE_MEMBER = "member"
GROUP_ROLE_ADMIN = "admin"

POST_TYPES = ("text", "image", "blog")

GROUP_MEMBER_VISIBILITY_MEMBERS = "members"
GROUP_MEMBER_VISIBILITY_OWN_AND_CREATOR = "own_and_creator"

__all__ = [
    "FOLLOW_REQUEST_PENDING",
    "FOLLOW_REQUEST_ACCEPTED",
    "FOLLOW_REQUEST_REJECTED",
    "GROUP_ROLE_MEMBER",
    "GROUP_ROLE_ADMIN",
    "POST_TYPES",
    "GROUP_MEMBER_VISIBILITY_MEMBERS",
    "GROUP_MEMBER_VISIBILITY_OWN_AND_CREATOR",
]
