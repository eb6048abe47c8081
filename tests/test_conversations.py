"""Direct conversations: pairing, the follow gate and participant-only access."""
from __future__ import annotations

from sqlalchemy import func, select

from connect_social.config import get_settings
from connect_social.database import SessionLocal
from connect_social.models import Conversation, Message


def _conversation_count() -> int:
    with SessionLocal() as session:
        return session.scalar(select(func.count()).select_from(Conversation))


def test_pair_maps_to_one_conversation_in_either_order(authed_client, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    follow(alice, bob, mutual=True)

    from_alice = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)})
    from_bob = authed_client(bob).post("/conversations", json={"profile_id": str(alice.id)})

    assert from_alice.status_code == 200
    assert from_alice.json()["id"] == from_bob.json()["id"]
    body = from_alice.json()
    assert str(body["user_1"]) < str(body["user_2"])
    assert {body["user_1"], body["user_2"]} == {str(alice.id), str(bob.id)}
    assert _conversation_count() == 1


def test_opening_requires_mutual_follow(authed_client, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    follow(alice, bob)

    response = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)})
    assert response.status_code == 403
    assert _conversation_count() == 0


def test_follow_gate_can_be_switched_off(monkeypatch, authed_client, profile_factory):
    monkeypatch.setattr(get_settings(), "dm_require_mutual_follow", False)
    alice = profile_factory("alice")
    bob = profile_factory("bob")

    response = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)})
    assert response.status_code == 200

    sent = authed_client(bob).post(f"/conversations/{response.json()['id']}/messages", json={"content": "hey"})
    assert sent.status_code == 201


def test_self_and_unknown_participants_are_rejected(authed_client, profile_factory):
    alice = profile_factory("alice")
    client = authed_client(alice)

    assert client.post("/conversations", json={"profile_id": str(alice.id)}).status_code == 400
    assert client.post("/conversations", json={"profile_id": "00000000-0000-0000-0000-000000000001"}).status_code == 400


def test_outsiders_see_nothing_and_cannot_post(authed_client, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    eve = profile_factory("eve")
    follow(alice, bob, mutual=True)

    conversation_id = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)}).json()["id"]
    authed_client(alice).post(f"/conversations/{conversation_id}/messages", json={"content": "private"})

    outsider = authed_client(eve)
    assert outsider.get(f"/conversations/{conversation_id}").status_code == 404
    assert outsider.get(f"/conversations/{conversation_id}/messages").json()["messages"] == []
    assert outsider.get("/conversations").json()["items"] == []
    assert outsider.post(f"/conversations/{conversation_id}/messages", json={"content": "hi"}).status_code == 403
    assert outsider.post(f"/conversations/{conversation_id}/read").status_code == 404

    with SessionLocal() as session:
        assert session.scalar(select(func.count()).select_from(Message)) == 1


def test_sending_bumps_activity_and_tracks_unread(authed_client, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    carol = profile_factory("carol")
    follow(alice, bob, mutual=True)
    follow(alice, carol, mutual=True)

    with_bob = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)}).json()
    with_carol = authed_client(alice).post("/conversations", json={"profile_id": str(carol.id)}).json()

    sent = authed_client(bob).post(f"/conversations/{with_bob['id']}/messages", json={"content": "  hello  "})
    assert sent.status_code == 201
    assert sent.json()["content"] == "hello"
    assert sent.json()["sender_id"] == str(bob.id)

    refreshed = authed_client(alice).get(f"/conversations/{with_bob['id']}").json()
    assert refreshed["updated_at"] > with_bob["updated_at"]

    listing = authed_client(alice).get("/conversations").json()["items"]
    assert [item["id"] for item in listing] == [with_bob["id"], with_carol["id"]]
    assert listing[0]["other_participant"]["username"] == "bob"
    assert listing[0]["last_message"]["content"] == "hello"
    assert listing[0]["unread_count"] == 1
    assert listing[1]["last_message"] is None

    marked = authed_client(alice).post(f"/conversations/{with_bob['id']}/read")
    assert marked.status_code == 200
    listing = authed_client(alice).get("/conversations").json()["items"]
    assert listing[0]["unread_count"] == 0

    # Own messages never count as unread.
    authed_client(alice).post(f"/conversations/{with_bob['id']}/messages", json={"content": "reply"})
    listing = authed_client(alice).get("/conversations").json()["items"]
    assert listing[0]["unread_count"] == 0


def test_thread_is_oldest_first_and_limited(authed_client, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    follow(alice, bob, mutual=True)
    conversation_id = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)}).json()["id"]

    for text in ("one", "two", "three"):
        authed_client(alice).post(f"/conversations/{conversation_id}/messages", json={"content": text})

    thread = authed_client(bob).get(f"/conversations/{conversation_id}/messages").json()["messages"]
    assert [item["content"] for item in thread] == ["one", "two", "three"]

    latest = authed_client(bob).get(f"/conversations/{conversation_id}/messages", params={"limit": 2}).json()
    assert [item["content"] for item in latest["messages"]] == ["two", "three"]


def test_messages_stop_when_follow_lapses(authed_client, profile_factory, follow):
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    follow(alice, bob, mutual=True)
    conversation_id = authed_client(alice).post("/conversations", json={"profile_id": str(bob.id)}).json()["id"]

    assert authed_client(bob).delete(f"/follows/{alice.id}").json()["status"] == "unfollowed"

    response = authed_client(alice).post(f"/conversations/{conversation_id}/messages", json={"content": "still there?"})
    assert response.status_code == 403
    assert authed_client(alice).get(f"/conversations/{conversation_id}").status_code == 200
