"""Group chat API routes."""
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..models import Profile
from ..schemas import (
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
    MessageSendRequest,
    ReadStatusResponse,
)
from ..services import (
    add_member,
    create_group,
    get_current_profile,
    get_group,
    get_viewer_session,
    group_channel,
    list_group_messages,
    list_groups,
    list_members,
    mark_read,
    message_stream_manager,
    remove_member,
    send_group_message,
    unread_count,
    update_group,
    update_member_role,
)

router = APIRouter(prefix="/groups", tags=["groups"])
logger = logging.getLogger(__name__)


@router.get("", response_model=GroupChatListResponse)
async def list_groups_endpoint(
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> GroupChatListResponse:
    records = list_groups(db, viewer_id=current_profile.id)
    return GroupChatListResponse(items=[GroupChatResponse.model_validate(record) for record in records])


@router.post("", response_model=GroupChatResponse, status_code=status.HTTP_201_CREATED)
async def create_group_endpoint(
    payload: GroupChatCreate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> GroupChatResponse:
    group = create_group(
        db,
        viewer_id=current_profile.id,
        name=payload.name,
        description=payload.description,
        avatar_url=payload.avatar_url,
        member_ids=payload.member_ids,
    )
    return GroupChatResponse.model_validate(group)


@router.get("/{group_id}", response_model=GroupChatResponse)
async def retrieve_group(
    group_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> GroupChatResponse:
    group = get_group(db, group_id)
    response = GroupChatResponse.model_validate(group)
    response.unread_count = unread_count(db, viewer_id=current_profile.id, group_id=group_id)
    return response


@router.patch("/{group_id}", response_model=GroupChatResponse)
async def update_group_endpoint(
    group_id: UUID,
    payload: GroupChatUpdate,
    db: Session = Depends(get_viewer_session),
) -> GroupChatResponse:
    group = update_group(db, group_id=group_id, changes=payload.model_dump(exclude_unset=True))
    return GroupChatResponse.model_validate(group)


@router.get("/{group_id}/members", response_model=GroupMemberListResponse)
async def list_members_endpoint(group_id: UUID, db: Session = Depends(get_viewer_session)) -> GroupMemberListResponse:
    members = list_members(db, group_id=group_id)
    return GroupMemberListResponse(items=[GroupMemberResponse.model_validate(member) for member in members])


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member_endpoint(
    group_id: UUID,
    payload: GroupMemberAdd,
    db: Session = Depends(get_viewer_session),
) -> GroupMemberResponse:
    member = add_member(db, group_id=group_id, profile_id=payload.profile_id, role=payload.role)
    return GroupMemberResponse.model_validate(member)


@router.patch("/{group_id}/members/{profile_id}", response_model=GroupMemberResponse)
async def update_member_role_endpoint(
    group_id: UUID,
    profile_id: UUID,
    payload: GroupMemberRoleUpdate,
    db: Session = Depends(get_viewer_session),
) -> GroupMemberResponse:
    member = update_member_role(db, group_id=group_id, profile_id=profile_id, role=payload.role)
    return GroupMemberResponse.model_validate(member)


@router.delete("/{group_id}/members/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member_endpoint(
    group_id: UUID,
    profile_id: UUID,
    db: Session = Depends(get_viewer_session),
) -> Response:
    remove_member(db, group_id=group_id, profile_id=profile_id)
    await message_stream_manager.drop_subscriber(group_channel(group_id), profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{group_id}/messages", response_model=GroupMessageThreadResponse)
async def group_thread_endpoint(
    group_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_viewer_session),
) -> GroupMessageThreadResponse:
    messages = list_group_messages(db, group_id=group_id, limit=limit)
    return GroupMessageThreadResponse(
        group_id=group_id, messages=[GroupMessageResponse.model_validate(item) for item in messages]
    )


@router.post("/{group_id}/messages", response_model=GroupMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_group_message_endpoint(
    group_id: UUID,
    payload: MessageSendRequest,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> GroupMessageResponse:
    message = send_group_message(db, viewer_id=current_profile.id, group_id=group_id, content=payload.content)
    response = GroupMessageResponse.model_validate(message)
    try:
        await message_stream_manager.broadcast(
            group_channel(group_id), {"type": "message.created", "message": response.model_dump(mode="json")}
        )
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Failed to broadcast group message %s", response.id)
    return response


@router.post("/{group_id}/read", response_model=ReadStatusResponse)
async def mark_group_read(
    group_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_viewer_session),
) -> ReadStatusResponse:
    record = mark_read(db, viewer_id=current_profile.id, group_id=group_id)
    return ReadStatusResponse.model_validate(record)


__all__ = ["router"]
