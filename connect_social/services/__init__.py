"""Convenience exports for service layer."""
from .auth_service import (
    IdentityClaims,
    authenticate_token,
    create_identity_token,
    decode_identity_token,
    get_current_profile,
    get_viewer_session,
    provision_profile,
)
from .conversation_service import (
    get_conversation,
    get_or_create_conversation,
    list_conversations,
    list_messages,
    ordered_pair,
    send_message,
)
from .follow_service import (
    FollowStats,
    Relationship,
    cancel_request,
    delete_request,
    get_follow_stats,
    get_relationship,
    is_following,
    is_mutual,
    list_followers,
    list_following,
    list_incoming_requests,
    list_mutuals,
    list_outgoing_requests,
    request_follow,
    respond_to_request,
    unfollow,
)
from .group_service import (
    add_member,
    create_group,
    get_group,
    list_group_messages,
    list_groups,
    list_members,
    remove_member,
    send_group_message,
    update_group,
    update_member_role,
)
from .message_stream import conversation_channel, group_channel, message_stream_manager
from .post_service import (
    create_comment,
    create_post,
    delete_comment,
    delete_post,
    engagement_snapshot,
    get_post,
    like_post,
    list_comments,
    list_feed,
    list_profile_posts,
    share_post,
    unlike_post,
    update_post,
)
from .profile_service import get_profile, get_profile_by_username, search_profiles, update_profile
from .read_status_service import get_read_status, mark_read, unread_count

__all__ = [
    "IdentityClaims",
    "authenticate_token",
    "create_identity_token",
    "decode_identity_token",
    "get_current_profile",
    "get_viewer_session",
    "provision_profile",
    "get_conversation",
    "get_or_create_conversation",
    "list_conversations",
    "list_messages",
    "ordered_pair",
    "send_message",
    "FollowStats",
    "Relationship",
    "cancel_request",
    "delete_request",
    "get_follow_stats",
    "get_relationship",
    "is_following",
    "is_mutual",
    "list_followers",
    "list_following",
    "list_incoming_requests",
    "list_mutuals",
    "list_outgoing_requests",
    "request_follow",
    "respond_to_request",
    "unfollow",
    "add_member",
    "create_group",
    "get_group",
    "list_group_messages",
    "list_groups",
    "list_members",
    "remove_member",
    "send_group_message",
    "update_group",
    "update_member_role",
    "conversation_channel",
    "group_channel",
    "message_stream_manager",
    "create_comment",
    "create_post",
    "delete_comment",
    "delete_post",
    "engagement_snapshot",
    "get_post",
    "like_post",
    "list_comments",
    "list_feed",
    "list_profile_posts",
    "share_post",
    "unlike_post",
    "update_post",
    "get_profile",
    "get_profile_by_username",
    "search_profiles",
    "update_profile",
    "get_read_status",
    "mark_read",
    "unread_count",
]
