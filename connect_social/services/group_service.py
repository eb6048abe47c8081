"""Group chats: creation, roster management and group messages."""
from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants import GROUP_ROLE_ADMIN, GROUP_ROLE_MEMBER
from ..models import Group, GroupMember, GroupMessage
from ..security import PolicyViolationError, helpers, visible
from .persistence import commit_or_raise, flush_or_raise
from .read_status_service import unread_count

logger = logging.getLogger(__name__)

_DEFAULT_PAGE = 100


def create_group(
    db: Session,
    *,
    viewer_id: UUID,
    name: str,
    description: str = "",
    avatar_url: str | None = None,
    member_ids: Iterable[UUID] = (),
) -> Group:
    """Create a group; the creator becomes its first admin."""

    title = name.strip()
    if not title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group name cannot be empty")

    group = Group(name=title, description=description.strip(), avatar_url=avatar_url, created_by=viewer_id)
    db.add(group)
    flush_or_raise(db, detail="Unable to create group")

    for profile_id in dict.fromkeys(member_ids):
        if profile_id == viewer_id:
            continue
        db.add(GroupMember(group_id=group.id, profile_id=profile_id, role=GROUP_ROLE_MEMBER))
    commit_or_raise(db, detail="Unable to add group members", refresh=(group,))

    logger.info("Group %s created by %s", group.id, viewer_id)
    return group


def get_group(db: Session, group_id: UUID) -> Group:
    group = db.scalar(visible(db, Group).where(Group.id == group_id))
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


def list_groups(db: Session, *, viewer_id: UUID) -> list[dict[str, Any]]:
    groups = db.scalars(visible(db, Group).order_by(Group.updated_at.desc())).all()
    return [
        {
            "id": group.id,
            "name": group.name,
            "description": group.description,
            "avatar_url": group.avatar_url,
            "created_by": group.created_by,
            "created_at": group.created_at,
            "updated_at": group.updated_at,
            "unread_count": unread_count(db, viewer_id=viewer_id, group_id=group.id),
        }
        for group in groups
    ]


def update_group(db: Session, *, group_id: UUID, changes: dict[str, Any]) -> Group:
    group = get_group(db, group_id)
    if "name" in changes:
        if changes["name"] is None or not changes["name"].strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Group name cannot be empty")
        group.name = changes["name"].strip()
    if "description" in changes:
        group.description = (changes["description"] or "").strip()
    if "avatar_url" in changes:
        group.avatar_url = changes["avatar_url"] or None
    commit_or_raise(db, detail="Unable to update group", refresh=(group,))
    return group


def list_members(db: Session, *, group_id: UUID) -> list[GroupMember]:
    """Members visible to the caller; empty when the caller is not in the group."""

    stmt = visible(db, GroupMember).where(GroupMember.group_id == group_id).order_by(GroupMember.joined_at)
    return list(db.scalars(stmt))


def _find_member(db: Session, group_id: UUID, profile_id: UUID) -> GroupMember | None:
    return db.scalar(
        visible(db, GroupMember).where(GroupMember.group_id == group_id, GroupMember.profile_id == profile_id)
    )


def _get_member_or_404(db: Session, group_id: UUID, profile_id: UUID) -> GroupMember:
    member = _find_member(db, group_id, profile_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group member not found")
    return member


def add_member(db: Session, *, group_id: UUID, profile_id: UUID, role: str = GROUP_ROLE_MEMBER) -> GroupMember:
    get_group(db, group_id)

    member = GroupMember(group_id=group_id, profile_id=profile_id, role=role)
    db.add(member)
    try:
        commit_or_raise(db, detail="Unable to add group member", refresh=(member,))
    except IntegrityError:
        existing = _find_member(db, group_id, profile_id)
        if existing is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Group member conflict")
        return existing
    logger.info("Profile %s joined group %s as %s", profile_id, group_id, role)
    return member


def _guard_last_admin(db: Session, member: GroupMember) -> None:
    if member.role == GROUP_ROLE_ADMIN and helpers.count_group_admins(db, member.group_id) <= 1:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A group must keep at least one admin")


def _ensure_allowed(db: Session, member: GroupMember, command: str) -> None:
    allowed = db.scalar(select(visible(db, GroupMember, command=command).where(GroupMember.id == member.id).exists()))
    if not allowed:
        raise PolicyViolationError(GroupMember.__tablename__, command, new_row=False)


def update_member_role(db: Session, *, group_id: UUID, profile_id: UUID, role: str) -> GroupMember:
    member = _get_member_or_404(db, group_id, profile_id)
    if member.role == role:
        return member
    _ensure_allowed(db, member, "update")
    if role != GROUP_ROLE_ADMIN:
        _guard_last_admin(db, member)

    member.role = role
    commit_or_raise(db, detail="Unable to update group member", refresh=(member,))
    return member


def remove_member(db: Session, *, group_id: UUID, profile_id: UUID) -> None:
    """Admins may remove anyone; members may leave on their own."""

    member = _get_member_or_404(db, group_id, profile_id)
    _ensure_allowed(db, member, "delete")
    _guard_last_admin(db, member)

    db.delete(member)
    commit_or_raise(db, detail="Unable to remove group member")
    logger.info("Profile %s left group %s", profile_id, group_id)


def send_group_message(db: Session, *, viewer_id: UUID, group_id: UUID, content: str) -> GroupMessage:
    body = content.strip()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content cannot be empty")

    message = GroupMessage(group_id=group_id, sender_id=viewer_id, content=body)
    db.add(message)
    commit_or_raise(db, detail="Unable to send group message", refresh=(message,))
    return message


def list_group_messages(db: Session, *, group_id: UUID, limit: int = _DEFAULT_PAGE) -> list[GroupMessage]:
    recent = (
        visible(db, GroupMessage)
        .where(GroupMessage.group_id == group_id)
        .order_by(GroupMessage.created_at.desc(), GroupMessage.id.desc())
        .limit(limit)
    )
    return list(reversed(db.scalars(recent).all()))


__all__ = [
    "create_group",
    "get_group",
    "list_groups",
    "update_group",
    "list_members",
    "add_member",
    "update_member_role",
    "remove_member",
    "send_group_message",
    "list_group_messages",
]
