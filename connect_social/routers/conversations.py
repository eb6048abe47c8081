"""Direct message API routes."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import (
    ConversationCreate,
    ConversationListResponse,
    ConversationResponse,
    ConversationSummary,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
    ProfileSummary,
    ReadStatusResponse,
)
from ..services import (
    conversation_channel,
    get_conversation,
    get_current_profile,
    get_or_create_conversation,
    get_viewer_session,
    list_conversations,
    list_messages,
    mark_read,
    message_stream_manager,
    send_message,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])
logger = logging.getLogger(__name__)


def _to_summary(record: dict[str, Any]) -> ConversationSummary:
    other = record.get("other_participant")
    last_message = record.get("last_message")
    return ConversationSummary(
        **{key: value for key, value in record.items() if key not in {"other_participant", "last_message"}},
        other_participant=ProfileSummary.model_validate(other) if other is not None else None,
        last_message=MessageResponse.model_validate(last_message) if last_message is not None else None,
    )


async def _broadcast_message(message: MessageResponse) -> None:
    try:
        await message_stream_manager.broadcast(
            conversation_channel(message.conversation_id),
            {"type": "message.created", "message": message.model_dump(mode="json")},
        )
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Failed to broadcast message %s", message.id)


@router.get("", response_model=ConversationListResponse)
async def list_conversations_endpoint(
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> ConversationListResponse:
    records = list_conversations(db, viewer_id=current_profile.id)
    return ConversationListResponse(items=[_to_summary(record) for record in records])


@router.post("", response_model=ConversationResponse)
async def open_conversation(
    payload: ConversationCreate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> ConversationResponse:
    conversation = get_or_create_conversation(db, viewer_id=current_profile.id, other_id=payload.profile_id)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def retrieve_conversation(conversation_id: UUID, db: Session = Depends(get_viewer_session)) -> ConversationResponse:
    return ConversationResponse.model_validate(get_conversation(db, conversation_id))


@router.get("/{conversation_id}/messages", response_model=MessageThreadResponse)
async def thread_endpoint(
    conversation_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_viewer_session),
) -> MessageThreadResponse:
    messages = list_messages(db, conversation_id=conversation_id, limit=limit)
    return MessageThreadResponse(
        conversation_id=conversation_id, messages=[MessageResponse.model_validate(item) for item in messages]
    )


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_endpoint(
    conversation_id: UUID,
    payload: MessageSendRequest,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> MessageResponse:
    message = send_message(db, viewer_id=current_profile.id, conversation_id=conversation_id, content=payload.content)
    response = MessageResponse.model_validate(message)
    await _broadcast_message(response)
    return response


@router.post("/{conversation_id}/read", response_model=ReadStatusResponse)
async def mark_conversation_read(
    conversation_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> ReadStatusResponse:
    record = mark_read(db, viewer_id=current_profile.id, conversation_id=conversation_id)
    return ReadStatusResponse.model_validate(record)


__all__ = ["router"]
