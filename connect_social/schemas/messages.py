"""Schemas used by direct message and group chat endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .profiles import ProfileSummary


class ConversationCreate(BaseModel):
    profile_id: UUID = Field(..., description="The other participant")


class MessageSendRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_1: UUID
    user_2: UUID
    created_at: datetime
    updated_at: datetime


class ConversationSummary(ConversationResponse):
    other_participant: ProfileSummary | None = None
    last_message: MessageResponse | None = None
    unread_count: int = 0


class ConversationListResponse(BaseModel):
    items: List[ConversationSummary]


class MessageThreadResponse(BaseModel):
    conversation_id: UUID
    messages: List[MessageResponse]


class GroupChatCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field("", max_length=1000)
    avatar_url: str | None = Field(None, max_length=1024)
    member_ids: List[UUID] = Field(default_factory=list)


class GroupChatUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = Field(None, max_length=1000)
    avatar_url: str | None = Field(None, max_length=1024)


class GroupChatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    avatar_url: str | None = None
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    unread_count: int = 0


class GroupChatListResponse(BaseModel):
    items: List[GroupChatResponse]


class GroupMemberAdd(BaseModel):
    profile_id: UUID
    role: Literal["member", "admin"] = "member"


class GroupMemberRoleUpdate(BaseModel):
    role: Literal["member", "admin"]


class GroupMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    profile_id: UUID
    role: Literal["member", "admin"]
    joined_at: datetime


class GroupMemberListResponse(BaseModel):
    items: List[GroupMemberResponse]


class GroupMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime


class GroupMessageThreadResponse(BaseModel):
    group_id: UUID
    messages: List[GroupMessageResponse]


class ReadStatusUpdate(BaseModel):
    conversation_id: UUID | None = None
    group_id: UUID | None = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "ReadStatusUpdate":
        if (self.conversation_id is None) == (self.group_id is None):
            raise ValueError("Exactly one of conversation_id or group_id is required")
        return self


class ReadStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    profile_id: UUID
    conversation_id: UUID | None = None
    group_id: UUID | None = None
    last_read_at: datetime
    unread_count: int = 0


__all__ = [
    "ConversationCreate",
    "MessageSendRequest",
    "MessageResponse",
    "ConversationResponse",
    "ConversationSummary",
    "ConversationListResponse",
    "MessageThreadResponse",
    "GroupChatCreate",
    "GroupChatUpdate",
    "GroupChatResponse",
    "GroupChatListResponse",
    "GroupMemberAdd",
    "GroupMemberRoleUpdate",
    "GroupMemberResponse",
    "GroupMemberListResponse",
    "GroupMessageResponse",
    "GroupMessageThreadResponse",
    "ReadStatusUpdate",
    "ReadStatusResponse",
]
