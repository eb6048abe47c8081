"""Read marker API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import ReadStatusResponse, ReadStatusUpdate
from ..services import get_current_profile, get_viewer_session, mark_read, unread_count

router = APIRouter(prefix="/read-status", tags=["read-status"])


@router.post("", response_model=ReadStatusResponse)
async def mark_read_endpoint(
    payload: ReadStatusUpdate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> ReadStatusResponse:
    record = mark_read(
        db, viewer_id=current_profile.id, conversation_id=payload.conversation_id, group_id=payload.group_id
    )
    return ReadStatusResponse.model_validate(record)


@router.get("/unread", response_model=dict)
async def unread_count_endpoint(
    conversation_id: UUID | None = Query(None),
    group_id: UUID | None = Query(None),
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> dict[str, int]:
    count = unread_count(db, viewer_id=current_profile.id, conversation_id=conversation_id, group_id=group_id)
    return {"unread_count": count}


__all__ = ["router"]
