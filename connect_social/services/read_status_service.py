"""Per-chat read markers and unread counters."""
from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Conversation, Group, GroupMessage, Message, ReadStatus, utcnow
from ..security import visible
from .persistence import commit_or_raise


def _require_single_target(conversation_id: UUID | None, group_id: UUID | None) -> None:
    if (conversation_id is None) == (group_id is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Exactly one of conversation_id or group_id is required",
        )


def _target_criteria(conversation_id: UUID | None, group_id: UUID | None):
    if conversation_id is not None:
        return ReadStatus.conversation_id == conversation_id
    return ReadStatus.group_id == group_id


def get_read_status(
    db: Session, *, viewer_id: UUID, conversation_id: UUID | None = None, group_id: UUID | None = None
) -> ReadStatus | None:
    _require_single_target(conversation_id, group_id)
    return db.scalar(
        visible(db, ReadStatus).where(ReadStatus.profile_id == viewer_id, _target_criteria(conversation_id, group_id))
    )


def mark_read(
    db: Session, *, viewer_id: UUID, conversation_id: UUID | None = None, group_id: UUID | None = None
) -> ReadStatus:
    """Upsert ``last_read_at = now`` for one chat the viewer can see."""

    _require_single_target(conversation_id, group_id)
    if conversation_id is not None:
        target = db.scalar(visible(db, Conversation).where(Conversation.id == conversation_id))
    else:
        target = db.scalar(visible(db, Group).where(Group.id == group_id))
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")

    record = get_read_status(db, viewer_id=viewer_id, conversation_id=conversation_id, group_id=group_id)
    if record is None:
        record = ReadStatus(profile_id=viewer_id, conversation_id=conversation_id, group_id=group_id)
        db.add(record)
    else:
        record.last_read_at = utcnow()

    try:
        commit_or_raise(db, detail="Unable to update read status", refresh=(record,))
    except IntegrityError:
        # Marked concurrently; move the winner's marker forward instead.
        record = get_read_status(db, viewer_id=viewer_id, conversation_id=conversation_id, group_id=group_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Read status conflict")
        record.last_read_at = utcnow()
        commit_or_raise(db, detail="Unable to update read status", refresh=(record,))
    return record


def unread_count(
    db: Session, *, viewer_id: UUID, conversation_id: UUID | None = None, group_id: UUID | None = None
) -> int:
    """Messages newer than the viewer's marker and sent by someone else."""

    record = get_read_status(db, viewer_id=viewer_id, conversation_id=conversation_id, group_id=group_id)
    if conversation_id is not None:
        messages = visible(db, Message).where(Message.conversation_id == conversation_id, Message.sender_id != viewer_id)
        if record is not None:
            messages = messages.where(Message.created_at > record.last_read_at)
    else:
        messages = visible(db, GroupMessage).where(GroupMessage.group_id == group_id, GroupMessage.sender_id != viewer_id)
        if record is not None:
            messages = messages.where(GroupMessage.created_at > record.last_read_at)

    total = db.scalar(select(func.count()).select_from(messages.subquery()))
    return int(total or 0)


__all__ = ["get_read_status", "mark_read", "unread_count"]
