"""Privileged, side-effect-free membership and relationship checks.

These read the underlying tables directly and never apply row security. A
policy that has to ask "is the caller a member of this group?" while
protecting ``group_chat_members`` must come through here: asking through the
filtered path would evaluate the protected relation's policy from inside
itself.
"""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, and_, exists, func, select
from sqlalchemy.orm import Session, aliased

from ..constants import GROUP_ROLE_ADMIN
from ..models import Conversation, Follow, Group, GroupMember


def _exists(session: Session, *criteria) -> bool:
    with session.no_autoflush:
        return bool(session.scalar(select(exists().where(*criteria))))


# SQL-expression forms, embedded by read filters as subqueries.


def member_group_ids(profile_id: UUID | None) -> Select:
    return select(GroupMember.group_id).where(GroupMember.profile_id == profile_id)


def admin_group_ids(profile_id: UUID | None) -> Select:
    return select(GroupMember.group_id).where(
        GroupMember.profile_id == profile_id, GroupMember.role == GROUP_ROLE_ADMIN
    )


def created_group_ids(profile_id: UUID | None) -> Select:
    return select(Group.id).where(Group.created_by == profile_id)


# Boolean forms, used by write checks and services.


def is_group_member(session: Session, group_id: UUID, profile_id: UUID | None) -> bool:
    if profile_id is None:
        return False
    return _exists(session, GroupMember.group_id == group_id, GroupMember.profile_id == profile_id)


def is_group_admin(session: Session, group_id: UUID, profile_id: UUID | None) -> bool:
    if profile_id is None:
        return False
    return _exists(
        session,
        GroupMember.group_id == group_id,
        GroupMember.profile_id == profile_id,
        GroupMember.role == GROUP_ROLE_ADMIN,
    )


def group_has_members(session: Session, group_id: UUID) -> bool:
    return _exists(session, GroupMember.group_id == group_id)


def group_creator_id(session: Session, group_id: UUID) -> UUID | None:
    with session.no_autoflush:
        return session.scalar(select(Group.created_by).where(Group.id == group_id))


def count_group_admins(session: Session, group_id: UUID) -> int:
    with session.no_autoflush:
        total = session.scalar(
            select(func.count())
            .select_from(GroupMember)
            .where(GroupMember.group_id == group_id, GroupMember.role == GROUP_ROLE_ADMIN)
        )
    return int(total or 0)


def is_following(session: Session, follower_id: UUID | None, following_id: UUID | None) -> bool:
    if follower_id is None or following_id is None:
        return False
    return _exists(session, Follow.follower_id == follower_id, Follow.following_id == following_id)


def are_mutual_followers(session: Session, profile_a: UUID | None, profile_b: UUID | None) -> bool:
    """True iff both directed edges a→b and b→a exist."""

    if profile_a is None or profile_b is None or profile_a == profile_b:
        return False
    reverse = aliased(Follow)
    return _exists(
        session,
        Follow.follower_id == profile_a,
        Follow.following_id == profile_b,
        exists().where(and_(reverse.follower_id == profile_b, reverse.following_id == profile_a)),
    )


def is_conversation_participant(session: Session, conversation_id: UUID, profile_id: UUID | None) -> bool:
    if profile_id is None:
        return False
    return _exists(
        session,
        Conversation.id == conversation_id,
        (Conversation.user_1 == profile_id) | (Conversation.user_2 == profile_id),
    )


def conversation_participants(session: Session, conversation_id: UUID) -> tuple[UUID, UUID] | None:
    with session.no_autoflush:
        row = session.execute(
            select(Conversation.user_1, Conversation.user_2).where(Conversation.id == conversation_id)
        ).first()
    if row is None:
        return None
    return row[0], row[1]


__all__ = [
    "member_group_ids",
    "admin_group_ids",
    "created_group_ids",
    "is_group_member",
    "is_group_admin",
    "group_has_members",
    "group_creator_id",
    "count_group_admins",
    "is_following",
    "are_mutual_followers",
    "is_conversation_participant",
    "conversation_participants",
]
