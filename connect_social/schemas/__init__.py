"""Convenience exports for schema layer."""
from .follow import (
    FollowActionResponse,
    FollowRequestCreate,
    FollowRequestListResponse,
    FollowRequestRespond,
    FollowRequestResponse,
    FollowStatsResponse,
    ProfileListResponse,
    RelationshipResponse,
)
from .messages import (
    ConversationCreate,
    ConversationListResponse,
    ConversationResponse,
    ConversationSummary,
    GroupChatCreate,
    GroupChatListResponse,
    GroupChatResponse,
    GroupChatUpdate,
    GroupMemberAdd,
    GroupMemberListResponse,
    GroupMemberResponse,
    GroupMemberRoleUpdate,
    GroupMessageResponse,
    GroupMessageThreadResponse,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
    ReadStatusResponse,
    ReadStatusUpdate,
)
from .posts import (
    PostCommentCreate,
    PostCommentListResponse,
    PostCommentResponse,
    PostCreate,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
    PostUpdate,
)
from .profiles import ProfileResponse, ProfileSummary, ProfileUpdateRequest

__all__ = [
    "FollowActionResponse",
    "FollowRequestCreate",
    "FollowRequestListResponse",
    "FollowRequestRespond",
    "FollowRequestResponse",
    "FollowStatsResponse",
    "ProfileListResponse",
    "RelationshipResponse",
    "ConversationCreate",
    "ConversationListResponse",
    "ConversationResponse",
    "ConversationSummary",
    "GroupChatCreate",
    "GroupChatListResponse",
    "GroupChatResponse",
    "GroupChatUpdate",
    "GroupMemberAdd",
    "GroupMemberListResponse",
    "GroupMemberResponse",
    "GroupMemberRoleUpdate",
    "GroupMessageResponse",
    "GroupMessageThreadResponse",
    "MessageResponse",
    "MessageSendRequest",
    "MessageThreadResponse",
    "ReadStatusResponse",
    "ReadStatusUpdate",
    "PostCommentCreate",
    "PostCommentListResponse",
    "PostCommentResponse",
    "PostCreate",
    "PostEngagementResponse",
    "PostFeedResponse",
    "PostResponse",
    "PostUpdate",
    "ProfileResponse",
    "ProfileSummary",
    "ProfileUpdateRequest",
]
