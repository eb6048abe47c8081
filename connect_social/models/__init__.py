"""Convenience exports for ORM models."""
from .base import utcnow
from .conversation import Conversation, Message
from .follow import Follow, FollowRequest
from .group import Group, GroupMember, GroupMessage
from .post import Comment, Like, Post
from .profile import Profile
from .read_status import ReadStatus

__all__ = [
    "Comment",
    "Conversation",
    "Follow",
    "FollowRequest",
    "Group",
    "GroupMember",
    "GroupMessage",
    "Like",
    "Message",
    "Post",
    "Profile",
    "ReadStatus",
    "utcnow",
]

# Consistency triggers hook mapper events on the classes above.
from .. import triggers as _triggers  # noqa: E402,F401
