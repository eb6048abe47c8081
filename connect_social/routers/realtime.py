"""WebSocket endpoints delivering chat messages as they are stored."""
from __future__ import annotations

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.websockets import WebSocket, WebSocketDisconnect
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import Conversation, Group
from ..security import visible
from ..services import authenticate_token, conversation_channel, group_channel, message_stream_manager

router = APIRouter(prefix="/ws", tags=["realtime"])
logger = logging.getLogger(__name__)


def _can_subscribe(db: Session, model: type, target_id: UUID) -> bool:
    return bool(db.scalar(select(visible(db, model).where(model.id == target_id).exists())))


async def _serve_channel(websocket: WebSocket, channel: str, db: Session, token: str, model: type, target_id: UUID) -> None:
    try:
        profile = authenticate_token(db, token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not _can_subscribe(db, model, target_id):
        logger.info("Profile %s refused subscription to %s", profile.id, channel)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    # The connection can outlive any single transaction.
    db.close()

    await message_stream_manager.connect(channel, websocket, profile_id=profile.id)
    logger.info("Profile %s subscribed to %s", profile.id, channel)
    await websocket.send_text(json.dumps({"type": "ready", "channel": channel}))
    try:
        while True:
            try:
                payload = await websocket.receive_text()
            except (WebSocketDisconnect, RuntimeError):
                # Also raised once the manager has closed this socket.
                break
            if payload.strip().lower() == "ping":
                await websocket.send_text(json.dumps({"type": "pong", "channel": channel}))
    finally:
        await message_stream_manager.disconnect(websocket)
        logger.info("Profile %s left %s", profile.id, channel)


@router.websocket("/conversations/{conversation_id}")
async def conversation_socket(
    websocket: WebSocket,
    conversation_id: UUID,
    token: str = Query(..., alias="token"),
    db: Session = Depends(get_session),
) -> None:
    await _serve_channel(websocket, conversation_channel(conversation_id), db, token, Conversation, conversation_id)


@router.websocket("/groups/{group_id}")
async def group_socket(
    websocket: WebSocket,
    group_id: UUID,
    token: str = Query(..., alias="token"),
    db: Session = Depends(get_session),
) -> None:
    await _serve_channel(websocket, group_channel(group_id), db, token, Group, group_id)


__all__ = ["router"]
