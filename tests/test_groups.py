"""Group chats: creator admin, roster rules and group messages."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from connect_social.database import SessionLocal
from connect_social.models import GroupMember


def _roles(group_id) -> dict:
    with SessionLocal() as session:
        rows = session.scalars(select(GroupMember).where(GroupMember.group_id == UUID(str(group_id)))).all()
        return {row.profile_id: row.role for row in rows}


def _create_group(client, name="Hikers", **extra):
    response = client.post("/groups", json={"name": name, **extra})
    assert response.status_code == 201
    return response.json()


def test_creator_becomes_admin_and_initial_members_join(authed_client, profile_factory):
    owner = profile_factory("owner")
    friend = profile_factory("friend")

    group = _create_group(authed_client(owner), member_ids=[str(friend.id), str(owner.id)])

    assert group["created_by"] == str(owner.id)
    assert _roles(group["id"]) == {owner.id: "admin", friend.id: "member"}

    listing = authed_client(friend).get("/groups").json()["items"]
    assert [item["id"] for item in listing] == [group["id"]]

    roster = authed_client(friend).get(f"/groups/{group['id']}/members").json()["items"]
    assert {item["profile_id"] for item in roster} == {str(owner.id), str(friend.id)}


def test_outsiders_cannot_see_the_group(authed_client, profile_factory):
    owner = profile_factory("owner")
    outsider = profile_factory("outsider")
    group = _create_group(authed_client(owner))

    client = authed_client(outsider)
    assert client.get("/groups").json()["items"] == []
    assert client.get(f"/groups/{group['id']}").status_code == 404
    assert client.get(f"/groups/{group['id']}/members").json()["items"] == []
    assert client.get(f"/groups/{group['id']}/messages").json()["messages"] == []
    assert client.post(f"/groups/{group['id']}/messages", json={"content": "hi"}).status_code == 403


def test_only_admins_add_members(authed_client, profile_factory):
    owner = profile_factory("owner")
    member = profile_factory("member")
    newcomer = profile_factory("newcomer")
    group = _create_group(authed_client(owner), member_ids=[str(member.id)])

    denied = authed_client(member).post(f"/groups/{group['id']}/members", json={"profile_id": str(newcomer.id)})
    assert denied.status_code == 403

    added = authed_client(owner).post(f"/groups/{group['id']}/members", json={"profile_id": str(newcomer.id)})
    assert added.status_code == 201
    assert added.json()["role"] == "member"

    again = authed_client(owner).post(f"/groups/{group['id']}/members", json={"profile_id": str(newcomer.id)})
    assert again.status_code == 201
    assert again.json()["id"] == added.json()["id"]


def test_role_changes_are_admin_only(authed_client, profile_factory):
    owner = profile_factory("owner")
    member = profile_factory("member")
    group = _create_group(authed_client(owner), member_ids=[str(member.id)])

    self_promotion = authed_client(member).patch(
        f"/groups/{group['id']}/members/{member.id}", json={"role": "admin"}
    )
    assert self_promotion.status_code == 403

    promoted = authed_client(owner).patch(f"/groups/{group['id']}/members/{member.id}", json={"role": "admin"})
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"

    # With a second admin in place the owner can step down.
    demoted = authed_client(owner).patch(f"/groups/{group['id']}/members/{owner.id}", json={"role": "member"})
    assert demoted.json()["role"] == "member"
    assert _roles(group["id"]) == {owner.id: "member", member.id: "admin"}


def test_last_admin_is_kept(authed_client, profile_factory):
    owner = profile_factory("owner")
    member = profile_factory("member")
    group = _create_group(authed_client(owner), member_ids=[str(member.id)])

    demote = authed_client(owner).patch(f"/groups/{group['id']}/members/{owner.id}", json={"role": "member"})
    assert demote.status_code == 409

    leave = authed_client(owner).delete(f"/groups/{group['id']}/members/{owner.id}")
    assert leave.status_code == 409
    assert _roles(group["id"])[owner.id] == "admin"


def test_members_leave_and_admins_remove(authed_client, profile_factory):
    owner = profile_factory("owner")
    alice = profile_factory("alice")
    bob = profile_factory("bob")
    group = _create_group(authed_client(owner), member_ids=[str(alice.id), str(bob.id)])

    kick_attempt = authed_client(alice).delete(f"/groups/{group['id']}/members/{bob.id}")
    assert kick_attempt.status_code == 403

    assert authed_client(alice).delete(f"/groups/{group['id']}/members/{alice.id}").status_code == 204
    assert authed_client(owner).delete(f"/groups/{group['id']}/members/{bob.id}").status_code == 204
    assert _roles(group["id"]) == {owner.id: "admin"}

    assert authed_client(alice).get(f"/groups/{group['id']}").status_code == 404


def test_only_admins_edit_group_details(authed_client, profile_factory):
    owner = profile_factory("owner")
    member = profile_factory("member")
    group = _create_group(authed_client(owner), member_ids=[str(member.id)])

    denied = authed_client(member).patch(f"/groups/{group['id']}", json={"name": "Renamed"})
    assert denied.status_code == 403

    renamed = authed_client(owner).patch(f"/groups/{group['id']}", json={"name": "  Renamed  ", "description": "trail talk"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Renamed"
    assert renamed.json()["description"] == "trail talk"


def test_group_messages_bump_activity_and_unread(authed_client, profile_factory):
    owner = profile_factory("owner")
    member = profile_factory("member")
    first = _create_group(authed_client(owner), name="First", member_ids=[str(member.id)])
    second = _create_group(authed_client(owner), name="Second", member_ids=[str(member.id)])

    sent = authed_client(member).post(f"/groups/{first['id']}/messages", json={"content": "hello all"})
    assert sent.status_code == 201
    assert sent.json()["group_id"] == first["id"]

    listing = authed_client(owner).get("/groups").json()["items"]
    assert [item["id"] for item in listing] == [first["id"], second["id"]]
    assert listing[0]["unread_count"] == 1
    assert listing[0]["updated_at"] > first["updated_at"]

    detail = authed_client(owner).get(f"/groups/{first['id']}").json()
    assert detail["unread_count"] == 1

    authed_client(owner).post(f"/groups/{first['id']}/read")
    assert authed_client(owner).get(f"/groups/{first['id']}").json()["unread_count"] == 0

    thread = authed_client(owner).get(f"/groups/{first['id']}/messages").json()["messages"]
    assert [item["content"] for item in thread] == ["hello all"]
