"""Direct conversations between two profiles and their messages."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Conversation, Message, Profile
from ..security import visible
from .persistence import commit_or_raise
from .read_status_service import unread_count

logger = logging.getLogger(__name__)

_DEFAULT_PAGE = 100


def ordered_pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    return (a, b) if str(a) < str(b) else (b, a)


def _find_conversation(db: Session, first: UUID, second: UUID) -> Conversation | None:
    user_1, user_2 = ordered_pair(first, second)
    return db.scalar(visible(db, Conversation).where(Conversation.user_1 == user_1, Conversation.user_2 == user_2))


def get_or_create_conversation(db: Session, *, viewer_id: UUID, other_id: UUID) -> Conversation:
    """Return the single conversation for the pair, opening it when allowed."""

    if viewer_id == other_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot start a conversation with yourself")
    if db.scalar(visible(db, Profile).where(Profile.id == other_id)) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Participant does not exist")

    existing = _find_conversation(db, viewer_id, other_id)
    if existing is not None:
        return existing

    user_1, user_2 = ordered_pair(viewer_id, other_id)
    conversation = Conversation(user_1=user_1, user_2=user_2)
    db.add(conversation)
    try:
        commit_or_raise(db, detail="Unable to start conversation", refresh=(conversation,))
    except IntegrityError:
        existing = _find_conversation(db, viewer_id, other_id)
        if existing is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conversation conflict")
        return existing

    logger.info("Conversation %s opened between %s and %s", conversation.id, user_1, user_2)
    return conversation


def get_conversation(db: Session, conversation_id: UUID) -> Conversation:
    conversation = db.scalar(visible(db, Conversation).where(Conversation.id == conversation_id))
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


def send_message(db: Session, *, viewer_id: UUID, conversation_id: UUID, content: str) -> Message:
    body = content.strip()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content cannot be empty")

    message = Message(conversation_id=conversation_id, sender_id=viewer_id, content=body)
    db.add(message)
    commit_or_raise(db, detail="Unable to send message", refresh=(message,))
    return message


def list_messages(db: Session, *, conversation_id: UUID, limit: int = _DEFAULT_PAGE) -> list[Message]:
    """Oldest first; empty when the conversation is not visible."""

    recent = (
        visible(db, Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
    )
    return list(reversed(db.scalars(recent).all()))


def _last_message(db: Session, conversation_id: UUID) -> Message | None:
    return db.scalar(
        visible(db, Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(1)
    )


def list_conversations(db: Session, *, viewer_id: UUID) -> list[dict[str, Any]]:
    """Most recently active first, with the other participant, last message and unread count."""

    conversations = db.scalars(visible(db, Conversation).order_by(Conversation.updated_at.desc())).all()
    other_ids = {conversation.other_participant(viewer_id) for conversation in conversations}
    profiles = {}
    if other_ids:
        profiles = {profile.id: profile for profile in db.scalars(visible(db, Profile).where(Profile.id.in_(other_ids)))}

    records: list[dict[str, Any]] = []
    for conversation in conversations:
        records.append(
            {
                "id": conversation.id,
                "user_1": conversation.user_1,
                "user_2": conversation.user_2,
                "created_at": conversation.created_at,
                "updated_at": conversation.updated_at,
                "other_participant": profiles.get(conversation.other_participant(viewer_id)),
                "last_message": _last_message(db, conversation.id),
                "unread_count": unread_count(db, viewer_id=viewer_id, conversation_id=conversation.id),
            }
        )
    return records


__all__ = [
    "ordered_pair",
    "get_or_create_conversation",
    "get_conversation",
    "send_message",
    "list_messages",
    "list_conversations",
]
