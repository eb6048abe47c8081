"""Realtime channel fan-out and WebSocket subscription checks."""
from __future__ import annotations

import asyncio
import json
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from connect_social.main import app
from connect_social.services import create_identity_token, group_channel
from connect_social.services.message_stream import MessageStreamManager


class _FakeSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.sent: list[str] = []
        self.broken = broken
        self.closed_with: int | None = None

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code


def test_broadcast_reaches_only_channel_subscribers():
    manager = MessageStreamManager()
    listener = _FakeSocket()
    elsewhere = _FakeSocket()

    async def scenario() -> int:
        await manager.connect("conversation:a", listener)
        await manager.connect("conversation:b", elsewhere)
        return await manager.broadcast("conversation:a", {"type": "message.created", "id": 1})

    assert asyncio.run(scenario()) == 1
    assert listener.accepted
    assert [json.loads(item) for item in listener.sent] == [{"type": "message.created", "id": 1}]
    assert elsewhere.sent == []


def test_stale_subscribers_are_dropped():
    manager = MessageStreamManager()
    healthy = _FakeSocket()
    broken = _FakeSocket(broken=True)

    async def scenario() -> int:
        await manager.connect("group:g", healthy)
        await manager.connect("group:g", broken)
        return await manager.broadcast("group:g", {"type": "ping"})

    assert asyncio.run(scenario()) == 1
    assert manager.subscriber_count("group:g") == 1

    asyncio.run(manager.disconnect(healthy))
    assert manager.subscriber_count("group:g") == 0
    assert asyncio.run(manager.broadcast(None, {"type": "ping"})) == 0


def test_socket_subscription_requires_membership(authed_client, profile_factory):
    owner = profile_factory("owner")
    outsider = profile_factory("outsider")
    group_id = authed_client(owner).post("/groups", json={"name": "Live"}).json()["id"]

    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect(f"/ws/groups/{group_id}?token=garbage"):
                pass
        assert excinfo.value.code == 1008

        outsider_token = create_identity_token(outsider.user_id)
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect(f"/ws/groups/{group_id}?token={outsider_token}"):
                pass
        assert excinfo.value.code == 1008

        owner_token = create_identity_token(owner.user_id)
        with client.websocket_connect(f"/ws/groups/{group_id}?token={owner_token}") as socket:
            assert socket.receive_json() == {"type": "ready", "channel": group_channel(group_id)}
            socket.send_text("ping")
            assert socket.receive_json() == {"type": "pong", "channel": group_channel(group_id)}


def test_dropped_profile_stops_receiving_channel_events():
    manager = MessageStreamManager()
    kept = _FakeSocket()
    removed = _FakeSocket()
    kept_id, removed_id = uuid4(), uuid4()

    async def scenario() -> tuple[int, int]:
        await manager.connect("group:g", kept, profile_id=kept_id)
        await manager.connect("group:g", removed, profile_id=removed_id)
        dropped = await manager.drop_subscriber("group:g", removed_id)
        return dropped, await manager.broadcast("group:g", {"type": "message.created"})

    assert asyncio.run(scenario()) == (1, 1)
    assert removed.closed_with == 1008
    assert removed.sent == []
    assert kept.closed_with is None
    assert len(kept.sent) == 1
    assert asyncio.run(manager.drop_subscriber("group:g", removed_id)) == 0


def test_removing_a_member_closes_their_group_socket(authed_client, profile_factory, monkeypatch):
    owner = profile_factory("owner")
    member = profile_factory("member")
    group_id = authed_client(owner).post("/groups", json={"name": "Live", "member_ids": [str(member.id)]}).json()["id"]

    manager = MessageStreamManager()
    monkeypatch.setattr("connect_social.routers.groups.message_stream_manager", manager)
    member_socket = _FakeSocket()
    asyncio.run(manager.connect(group_channel(group_id), member_socket, profile_id=member.id))

    removed = authed_client(owner).delete(f"/groups/{group_id}/members/{member.id}")
    assert removed.status_code == 204
    assert member_socket.closed_with == 1008
    assert manager.subscriber_count(group_channel(group_id)) == 0

    sent = authed_client(owner).post(f"/groups/{group_id}/messages", json={"content": "after removal"})
    assert sent.status_code == 201
    assert member_socket.sent == []
