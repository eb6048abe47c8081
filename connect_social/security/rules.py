"""Table policies for every client-reachable table.

Installed once at import against the shared :data:`row_security` registry.
Read rules that need membership facts about ``group_chat_members`` go through
the privileged subqueries in :mod:`.helpers`; they never ask the registry for
the members table's own filter.
"""
from __future__ import annotations

from sqlalchemy import and_, or_, true

from ..config import get_settings
from ..constants import (
    FOLLOW_REQUEST_ACCEPTED,
    FOLLOW_REQUEST_PENDING,
    FOLLOW_REQUEST_REJECTED,
    GROUP_MEMBER_VISIBILITY_MEMBERS,
    GROUP_MEMBER_VISIBILITY_OWN_AND_CREATOR,
)
from ..models import (
    Comment,
    Conversation,
    Follow,
    FollowRequest,
    Group,
    GroupMember,
    GroupMessage,
    Like,
    Message,
    Post,
    Profile,
    ReadStatus,
)
from ..triggers import previous_value
from . import helpers
from .policies import PolicyContext, RowSecurity, TablePolicy, row_security, unchanged, visible_ids


def _everyone(_ctx: PolicyContext):
    return true()


def _mutual_follow_required() -> bool:
    return get_settings().dm_require_mutual_follow


# --- profiles and feed ----------------------------------------------------


PROFILE_POLICY = TablePolicy(
    select=_everyone,
    insert=lambda ctx, row: row.user_id == ctx.auth_uid,
    update=lambda ctx: Profile.user_id == ctx.auth_uid,
    update_check=lambda ctx, row: row.user_id == ctx.auth_uid and unchanged(row, "user_id"),
)

POST_POLICY = TablePolicy(
    select=_everyone,
    insert=lambda ctx, row: row.author_id == ctx.profile_id,
    update=lambda ctx: Post.author_id == ctx.profile_id,
    # Counters belong to the triggers.
    update_check=lambda ctx, row: row.author_id == ctx.profile_id
    and unchanged(row, "author_id", "likes_count", "comments_count", "shares_count"),
    delete=lambda ctx: Post.author_id == ctx.profile_id,
)

COMMENT_POLICY = TablePolicy(
    select=_everyone,
    insert=lambda ctx, row: row.author_id == ctx.profile_id,
    delete=lambda ctx: Comment.author_id == ctx.profile_id,
)

LIKE_POLICY = TablePolicy(
    select=_everyone,
    insert=lambda ctx, row: row.user_id == ctx.profile_id,
    delete=lambda ctx: Like.user_id == ctx.profile_id,
)


# --- relationship ledger --------------------------------------------------


# No insert rule: edges only appear through the acceptance trigger.
FOLLOW_POLICY = TablePolicy(
    select=_everyone,
    delete=lambda ctx: Follow.follower_id == ctx.profile_id,
)


def _follow_request_transition_allowed(ctx: PolicyContext, row: FollowRequest) -> bool:
    if not unchanged(row, "sender_id", "receiver_id"):
        return False
    if row.receiver_id == ctx.profile_id:
        # Answers are final: only a pending request can be accepted or rejected.
        if previous_value(row, "status") != FOLLOW_REQUEST_PENDING:
            return False
        return row.status in (FOLLOW_REQUEST_ACCEPTED, FOLLOW_REQUEST_REJECTED)
    if row.sender_id == ctx.profile_id:
        return row.status == FOLLOW_REQUEST_PENDING
    return False


FOLLOW_REQUEST_POLICY = TablePolicy(
    select=lambda ctx: or_(FollowRequest.sender_id == ctx.profile_id, FollowRequest.receiver_id == ctx.profile_id),
    insert=lambda ctx, row: row.sender_id == ctx.profile_id and row.status in (None, FOLLOW_REQUEST_PENDING),
    update=lambda ctx: or_(FollowRequest.receiver_id == ctx.profile_id, FollowRequest.sender_id == ctx.profile_id),
    update_check=_follow_request_transition_allowed,
    delete=lambda ctx: or_(
        and_(FollowRequest.sender_id == ctx.profile_id, FollowRequest.status == FOLLOW_REQUEST_PENDING),
        FollowRequest.receiver_id == ctx.profile_id,
    ),
)


# --- direct messages ------------------------------------------------------


def _may_open_conversation(ctx: PolicyContext, row: Conversation) -> bool:
    if ctx.profile_id is None or not row.involves(ctx.profile_id):
        return False
    if _mutual_follow_required():
        return helpers.are_mutual_followers(ctx.session, row.user_1, row.user_2)
    return True


def _may_send_message(ctx: PolicyContext, row: Message) -> bool:
    if row.sender_id != ctx.profile_id:
        return False
    if not helpers.is_conversation_participant(ctx.session, row.conversation_id, ctx.profile_id):
        return False
    if _mutual_follow_required():
        pair = helpers.conversation_participants(ctx.session, row.conversation_id)
        return pair is not None and helpers.are_mutual_followers(ctx.session, *pair)
    return True


CONVERSATION_POLICY = TablePolicy(
    select=lambda ctx: or_(Conversation.user_1 == ctx.profile_id, Conversation.user_2 == ctx.profile_id),
    insert=_may_open_conversation,
)

# Messages are immutable: no update or delete rule.
MESSAGE_POLICY = TablePolicy(
    select=lambda ctx: Message.conversation_id.in_(visible_ids(Conversation, ctx)),
    insert=_may_send_message,
)


# --- group chats ----------------------------------------------------------


def _may_add_member(ctx: PolicyContext, row: GroupMember) -> bool:
    session = ctx.session
    if helpers.is_group_admin(session, row.group_id, ctx.profile_id):
        return True
    if not helpers.group_has_members(session, row.group_id):
        return True
    return ctx.profile_id is not None and helpers.group_creator_id(session, row.group_id) == ctx.profile_id


def _may_change_member(ctx: PolicyContext, row: GroupMember) -> bool:
    return unchanged(row, "group_id", "profile_id") and helpers.is_group_admin(ctx.session, row.group_id, ctx.profile_id)


def group_member_policy(mode: str = GROUP_MEMBER_VISIBILITY_MEMBERS) -> TablePolicy:
    """Policy for ``group_chat_members`` under the given visibility mode.

    ``members`` lets every member see the whole roster through the privileged
    membership subquery. ``own_and_creator`` is the degraded fallback: a caller
    sees their own row plus every row of the groups they created.
    """

    if mode == GROUP_MEMBER_VISIBILITY_MEMBERS:
        def select_rule(ctx: PolicyContext):
            return GroupMember.group_id.in_(helpers.member_group_ids(ctx.profile_id))
    elif mode == GROUP_MEMBER_VISIBILITY_OWN_AND_CREATOR:
        def select_rule(ctx: PolicyContext):
            return or_(
                GroupMember.profile_id == ctx.profile_id,
                GroupMember.group_id.in_(helpers.created_group_ids(ctx.profile_id)),
            )
    else:
        raise ValueError(f"Unknown group member visibility mode: {mode!r}")

    return TablePolicy(
        select=select_rule,
        insert=_may_add_member,
        update=lambda ctx: GroupMember.group_id.in_(helpers.admin_group_ids(ctx.profile_id)),
        update_check=_may_change_member,
        delete=lambda ctx: or_(
            GroupMember.group_id.in_(helpers.admin_group_ids(ctx.profile_id)),
            GroupMember.profile_id == ctx.profile_id,
        ),
    )


GROUP_POLICY = TablePolicy(
    select=lambda ctx: Group.id.in_(helpers.member_group_ids(ctx.profile_id)),
    insert=lambda ctx, row: row.created_by == ctx.profile_id,
    update=lambda ctx: Group.id.in_(helpers.admin_group_ids(ctx.profile_id)),
    update_check=lambda ctx, row: unchanged(row, "created_by"),
)

GROUP_MESSAGE_POLICY = TablePolicy(
    select=lambda ctx: GroupMessage.group_id.in_(helpers.member_group_ids(ctx.profile_id)),
    insert=lambda ctx, row: row.sender_id == ctx.profile_id
    and helpers.is_group_member(ctx.session, row.group_id, ctx.profile_id),
)


# --- read markers ---------------------------------------------------------


READ_STATUS_POLICY = TablePolicy(
    select=lambda ctx: ReadStatus.profile_id == ctx.profile_id,
    insert=lambda ctx, row: row.profile_id == ctx.profile_id,
    update=lambda ctx: ReadStatus.profile_id == ctx.profile_id,
    update_check=lambda ctx, row: row.profile_id == ctx.profile_id,
    delete=lambda ctx: ReadStatus.profile_id == ctx.profile_id,
)


def install_policies(registry: RowSecurity, *, group_member_visibility: str = GROUP_MEMBER_VISIBILITY_MEMBERS) -> None:
    registry.register(Profile, PROFILE_POLICY)
    registry.register(Post, POST_POLICY)
    registry.register(Comment, COMMENT_POLICY)
    registry.register(Like, LIKE_POLICY)
    registry.register(Follow, FOLLOW_POLICY)
    registry.register(FollowRequest, FOLLOW_REQUEST_POLICY)
    registry.register(Conversation, CONVERSATION_POLICY)
    registry.register(Message, MESSAGE_POLICY)
    registry.register(Group, GROUP_POLICY)
    registry.register(GroupMember, group_member_policy(group_member_visibility))
    registry.register(GroupMessage, GROUP_MESSAGE_POLICY)
    registry.register(ReadStatus, READ_STATUS_POLICY)


install_policies(row_security, group_member_visibility=get_settings().group_member_visibility)


__all__ = ["group_member_policy", "install_policies"]
